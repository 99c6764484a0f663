from __future__ import annotations

import random
import time
from collections.abc import Iterator, Mapping
from typing import Any, Callable

import requests

ANILIST_GRAPHQL_URL = "https://graphql.anilist.co"

AIRING_SCHEDULE_QUERY = """
query ($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    airingSchedules(notYetAired: true, sort: TIME) {
      id
      episode
      airingAt
      media {
        id
        type
        title {
          english
          romaji
          native
        }
        coverImage {
          large
          medium
        }
        description(asHtml: false)
        episodes
        status
      }
    }
  }
}
"""


class AniListClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


class UpstreamUnavailable(AniListClientError):
    """AniList could not be reached (network error, timeout, 429/5xx after retries)."""


class UpstreamProtocolError(AniListClientError):
    """AniList answered, but not with a usable GraphQL payload."""


def _snippet(text: str | None, limit: int = 400) -> str:
    return (text or "")[:limit].replace("\n", " ").strip()


def _retry_delay(attempt: int, retry_after: str | None = None) -> float:
    delay = 1.0 * (2**attempt)
    retry_after = (retry_after or "").strip()
    if retry_after.isdigit():
        delay = max(delay, float(retry_after))
    return delay + random.uniform(0.0, delay * 0.25)


class HttpAniListClient:
    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        url: str = ANILIST_GRAPHQL_URL,
        timeout_seconds: float = 20.0,
        max_attempts: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session or requests.Session()
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max(1, int(max_attempts))
        self._sleep = sleep

    def _post_graphql(self, query: str, variables: Mapping[str, Any]) -> dict[str, Any]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
        }
        body = {"query": query, "variables": dict(variables)}

        resp: requests.Response | None = None
        for attempt in range(self._max_attempts):
            try:
                resp = self._session.post(self._url, json=body, headers=headers, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                if attempt < self._max_attempts - 1:
                    self._sleep(_retry_delay(attempt))
                    continue
                raise UpstreamUnavailable(f"AniList request failed: {exc}") from exc

            if resp.status_code == 200:
                break

            retryable = resp.status_code == 429 or 500 <= resp.status_code < 600
            if retryable and attempt < self._max_attempts - 1:
                self._sleep(_retry_delay(attempt, resp.headers.get("Retry-After")))
                continue

            error_cls = UpstreamUnavailable if retryable else UpstreamProtocolError
            raise error_cls(
                f"AniList request failed with HTTP {resp.status_code}.",
                status_code=resp.status_code,
                body_snippet=_snippet(resp.text),
            )

        if resp is None:
            raise UpstreamUnavailable("AniList request failed (no response).")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamProtocolError(
                "AniList returned non-JSON response.",
                status_code=resp.status_code,
                body_snippet=_snippet(resp.text),
            ) from exc

        if not isinstance(payload, dict):
            raise UpstreamProtocolError("AniList returned unexpected JSON shape (not an object).")

        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            messages: list[str] = []
            for err in errors:
                if isinstance(err, Mapping) and isinstance(err.get("message"), str):
                    messages.append(err["message"])
            summary = "; ".join(messages) if messages else str(errors)
            raise UpstreamProtocolError(f"AniList GraphQL returned errors: {summary}")

        data = payload.get("data")
        if not isinstance(data, Mapping):
            raise UpstreamProtocolError("AniList GraphQL response missing top-level `data`.")
        return payload

    def fetch_airing_schedule_page(self, page: int, per_page: int) -> list[dict[str, Any]]:
        """
        Fetch one page of not-yet-aired airing schedules, soonest first.

        Items are returned raw; use `normalize_airing_schedule` to validate them.
        """

        payload = self._post_graphql(AIRING_SCHEDULE_QUERY, {"page": int(page), "perPage": int(per_page)})
        page_payload = payload["data"].get("Page")
        if page_payload is None:
            return []
        if not isinstance(page_payload, Mapping):
            raise UpstreamProtocolError("AniList response `data.Page` is not an object.")
        schedules = page_payload.get("airingSchedules")
        if schedules is None:
            return []
        if not isinstance(schedules, list):
            raise UpstreamProtocolError("AniList response `data.Page.airingSchedules` is not a list.")
        return [item for item in schedules if isinstance(item, dict)]

    def iter_airing_schedule(self, *, page_limit: int, per_page: int) -> Iterator[list[dict[str, Any]]]:
        """Yield pages 1..page_limit, stopping early at the first empty page."""

        for page in range(1, max(1, int(page_limit)) + 1):
            items = self.fetch_airing_schedule_page(page, per_page)
            if not items:
                return
            yield items
