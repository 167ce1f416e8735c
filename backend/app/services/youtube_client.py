"""
YouTube Data API v3 client for batched video metadata.

One videos.list call covers up to 50 IDs and costs a single quota unit,
so every batch goes out as exactly one request.
"""

import logging
import re
import time
from typing import Any, Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import ErrorKind, UpstreamError, ValidationError
from ..models import VideoMetadata

logger = logging.getLogger(__name__)

YOUTUBE_VIDEOS_LIST = "https://www.googleapis.com/youtube/v3/videos"
MAX_IDS_PER_REQUEST = 50
VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


def is_valid_video_id(video_id: str) -> bool:
    return bool(VIDEO_ID_RE.match(video_id or ""))


def validate_batch(ids: list[str]) -> None:
    if not ids:
        raise ValidationError("At least one video ID is required")
    if len(ids) > MAX_IDS_PER_REQUEST:
        raise ValidationError(f"Too many video IDs: {len(ids)} requested, maximum is {MAX_IDS_PER_REQUEST}")
    invalid = [video_id for video_id in ids if not is_valid_video_id(video_id)]
    if invalid:
        raise ValidationError(f"Invalid video ID format: {', '.join(invalid[:5])}")


def build_session(retries: int = 1) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


def parse_video_items(payload: dict[str, Any]) -> list[VideoMetadata]:
    videos: list[VideoMetadata] = []
    seen: set[str] = set()
    for item in payload.get("items") or []:
        if not isinstance(item, dict):
            continue
        video_id = item.get("id")
        if not isinstance(video_id, str) or not video_id or video_id in seen:
            continue
        seen.add(video_id)
        snippet = item.get("snippet") or {}
        stats = item.get("statistics") or {}
        videos.append(
            VideoMetadata(
                id=video_id,
                title=snippet.get("title") or "",
                views=stats.get("viewCount"),
                date=snippet.get("publishedAt"),
            )
        )
    return videos


class YouTubeMetadataClient:
    def __init__(
        self,
        api_key: str,
        timeout: float = 8.0,
        retries: int = 1,
        session: requests.Session | None = None,
        url: str = YOUTUBE_VIDEOS_LIST,
    ):
        if not api_key:
            raise ValueError("YouTube API key is required")
        self.api_key = api_key
        self.timeout = timeout
        # the retry shares the timeout budget
        self.attempt_timeout = timeout / (max(retries, 0) + 1)
        self.url = url
        self.session = session or build_session(retries)

    def fetch_batch(self, ids: Iterable[str]) -> list[VideoMetadata]:
        """
        Fetch metadata for up to 50 IDs in one request.

        Videos the provider does not return (deleted, private) are dropped.
        Raises ValidationError before any network call for bad input and
        UpstreamError for every provider-side failure.
        """
        id_list = list(dict.fromkeys(ids))
        validate_batch(id_list)

        started = time.monotonic()
        try:
            response = self.session.get(
                self.url,
                params={
                    "part": "snippet,statistics",
                    "id": ",".join(id_list),
                    "key": self.api_key,
                },
                timeout=self.attempt_timeout,
            )
        except requests.Timeout as exc:
            # exception text carries the request URL, and the URL carries the key
            logger.warning("YouTube API timed out after %.1fs (%s)", self.timeout, type(exc).__name__)
            raise UpstreamError("YouTube API request timed out", kind=ErrorKind.UPSTREAM_TIMEOUT) from None
        except requests.RequestException as exc:
            logger.warning("YouTube API transport failure (%s)", type(exc).__name__)
            raise UpstreamError("YouTube API is unreachable", kind=ErrorKind.UPSTREAM_TRANSPORT) from None

        duration_ms = int((time.monotonic() - started) * 1000)
        if response.status_code != 200:
            logger.warning(
                "YouTube API error: status=%s reason=%s duration_ms=%d batch=%d",
                response.status_code,
                response.reason,
                duration_ms,
                len(id_list),
            )
            raise UpstreamError.from_status(response.status_code, response.reason)

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError("YouTube API returned malformed JSON", kind=ErrorKind.UPSTREAM_PAYLOAD) from None
        if not isinstance(payload, dict):
            raise UpstreamError("YouTube API returned an unexpected payload", kind=ErrorKind.UPSTREAM_PAYLOAD)
        if payload.get("error"):
            error = payload.get("error") or {}
            status = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise UpstreamError.from_status(status if isinstance(status, int) else 502, str(message or "error payload"))

        videos = parse_video_items(payload)
        logger.info(
            "YouTube metadata fetched: requested=%d returned=%d duration_ms=%d",
            len(id_list),
            len(videos),
            duration_ms,
        )
        return videos
