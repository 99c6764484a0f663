from anitrack_backend.integrations.anilist.client import (
    ANILIST_GRAPHQL_URL,
    AniListClientError,
    HttpAniListClient,
    UpstreamProtocolError,
    UpstreamUnavailable,
)
from anitrack_backend.integrations.anilist.normalize import normalize_airing_schedule, sanitize_text

__all__ = [
    "ANILIST_GRAPHQL_URL",
    "AniListClientError",
    "HttpAniListClient",
    "UpstreamProtocolError",
    "UpstreamUnavailable",
    "normalize_airing_schedule",
    "sanitize_text",
]
