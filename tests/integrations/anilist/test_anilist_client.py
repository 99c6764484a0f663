from __future__ import annotations

from typing import Any

import pytest
import requests

from anitrack_backend.integrations.anilist.client import (
    AIRING_SCHEDULE_QUERY,
    ANILIST_GRAPHQL_URL,
    HttpAniListClient,
    UpstreamProtocolError,
    UpstreamUnavailable,
)


class _FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        *,
        text: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.headers = headers or {}

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


class _FakeSession:
    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, *, json: Any, headers: dict[str, str], timeout: float) -> _FakeResponse:
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _page(*items: dict[str, Any]) -> _FakeResponse:
    return _FakeResponse(200, {"data": {"Page": {"airingSchedules": list(items)}}})


def _client(session: _FakeSession, sleeps: list[float]) -> HttpAniListClient:
    return HttpAniListClient(session=session, timeout_seconds=5.0, sleep=sleeps.append)


def test_fetch_page_posts_graphql_query_with_paging_variables() -> None:
    session = _FakeSession([_page({"id": 1}, {"id": 2}, "junk")])
    sleeps: list[float] = []

    items = _client(session, sleeps).fetch_airing_schedule_page(2, 25)

    assert items == [{"id": 1}, {"id": 2}]
    call = session.calls[0]
    assert call["url"] == ANILIST_GRAPHQL_URL
    assert call["json"] == {"query": AIRING_SCHEDULE_QUERY, "variables": {"page": 2, "perPage": 25}}
    assert call["timeout"] == 5.0
    assert sleeps == []


def test_retries_server_errors_then_succeeds() -> None:
    session = _FakeSession([_FakeResponse(502, text="bad gateway"), _page({"id": 1})])
    sleeps: list[float] = []

    items = _client(session, sleeps).fetch_airing_schedule_page(1, 50)

    assert items == [{"id": 1}]
    assert len(session.calls) == 2
    assert len(sleeps) == 1


def test_rate_limit_honors_retry_after() -> None:
    session = _FakeSession([_FakeResponse(429, headers={"Retry-After": "7"}), _page()])
    sleeps: list[float] = []

    assert _client(session, sleeps).fetch_airing_schedule_page(1, 50) == []
    assert 7.0 <= sleeps[0] <= 7.0 * 1.25


def test_persistent_unavailability_raises_after_three_attempts() -> None:
    session = _FakeSession([_FakeResponse(503, text="down")] * 3)
    sleeps: list[float] = []

    with pytest.raises(UpstreamUnavailable) as excinfo:
        _client(session, sleeps).fetch_airing_schedule_page(1, 50)

    assert excinfo.value.status_code == 503
    assert excinfo.value.body_snippet == "down"
    assert len(session.calls) == 3
    assert len(sleeps) == 2


def test_transport_errors_raise_upstream_unavailable() -> None:
    session = _FakeSession([requests.ConnectionError("refused")] * 3)

    with pytest.raises(UpstreamUnavailable, match="refused"):
        _client(session, []).fetch_airing_schedule_page(1, 50)
    assert len(session.calls) == 3


def test_client_errors_are_not_retried() -> None:
    session = _FakeSession([_FakeResponse(400, text="bad query")])
    sleeps: list[float] = []

    with pytest.raises(UpstreamProtocolError) as excinfo:
        _client(session, sleeps).fetch_airing_schedule_page(1, 50)

    assert excinfo.value.status_code == 400
    assert sleeps == []


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (_FakeResponse(200, None, text="<html>"), "non-JSON"),
        (_FakeResponse(200, [1, 2]), "not an object"),
        (_FakeResponse(200, {"errors": [{"message": "Too Many Requests"}]}), "Too Many Requests"),
        (_FakeResponse(200, {"data": None}), "missing top-level `data`"),
        (_FakeResponse(200, {"data": {"Page": {"airingSchedules": {"id": 1}}}}), "not a list"),
    ],
)
def test_unusable_payloads_raise_protocol_error(response: _FakeResponse, message: str) -> None:
    with pytest.raises(UpstreamProtocolError, match=message):
        _client(_FakeSession([response]), []).fetch_airing_schedule_page(1, 50)


def test_iter_airing_schedule_stops_at_first_empty_page() -> None:
    session = _FakeSession([_page({"id": 1}), _page(), _page({"id": 3})])

    pages = list(_client(session, []).iter_airing_schedule(page_limit=3, per_page=50))

    assert pages == [[{"id": 1}]]
    assert len(session.calls) == 2


def test_iter_airing_schedule_respects_page_limit() -> None:
    session = _FakeSession([_page({"id": 1}), _page({"id": 2}), _page({"id": 3})])

    pages = list(_client(session, []).iter_airing_schedule(page_limit=2, per_page=50))

    assert pages == [[{"id": 1}], [{"id": 2}]]
    assert [call["json"]["variables"]["page"] for call in session.calls] == [1, 2]
