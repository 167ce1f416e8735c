"""
Metadata pipeline: cache, rate limit, then an ordered chain of sources.

    request -> cache hit?            -> cached
            -> rate limiter rejects? -> RateLimitError
            -> live | fallback | placeholder (first that succeeds)

Cached reads cost no rate-limit budget. Only a live result populates the cache.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from ..errors import (
    ConfigurationError,
    FallbackUnavailableError,
    InternalError,
    MetadataServiceError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)
from ..models import MetadataResponse, MetadataSource, VideoMetadata, utc_now
from .fallback_store import FallbackStore
from .metadata_cache import MetadataCache, canonical_key
from .rate_limiter import RateLimiter
from .youtube_client import YouTubeMetadataClient, validate_batch

logger = logging.getLogger(__name__)

MISSING_IDS_MESSAGE = "Missing required parameter: ids (comma-separated video IDs)"
PLACEHOLDER_TITLE = "Metadata unavailable"


def split_ids_param(raw: str | None) -> list[str]:
    if not raw or not raw.strip():
        raise ValidationError(MISSING_IDS_MESSAGE)
    return raw.split(",")


def canonicalize_ids(ids: Iterable[str]) -> list[str]:
    """Strip, drop blanks and dedupe (first occurrence wins), then validate."""
    cleaned = [video_id.strip() for video_id in ids if isinstance(video_id, str)]
    unique = list(dict.fromkeys(video_id for video_id in cleaned if video_id))
    if not unique:
        raise ValidationError(MISSING_IDS_MESSAGE)
    validate_batch(unique)
    return unique


@dataclass(frozen=True)
class StrategyResult:
    source: MetadataSource
    videos: list[VideoMetadata] = field(default_factory=list)
    error: MetadataServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetadataStrategy(Protocol):
    source: MetadataSource

    def resolve(self, ids: list[str]) -> StrategyResult: ...


class LiveStrategy:
    source = MetadataSource.LIVE

    def __init__(self, client: YouTubeMetadataClient | None):
        self.client = client

    def resolve(self, ids: list[str]) -> StrategyResult:
        if self.client is None:
            return StrategyResult(self.source, error=ConfigurationError("YouTube API key not configured"))
        try:
            videos = self.client.fetch_batch(ids)
        except UpstreamError as exc:
            return StrategyResult(self.source, error=exc)
        return StrategyResult(self.source, videos=videos)


class FallbackStrategy:
    source = MetadataSource.FALLBACK

    def __init__(self, store: FallbackStore):
        self.store = store

    def resolve(self, ids: list[str]) -> StrategyResult:
        videos = self.store.get(ids)
        if not videos:
            return StrategyResult(
                self.source,
                error=FallbackUnavailableError("No fallback metadata for the requested videos"),
            )
        return StrategyResult(self.source, videos=videos)


class PlaceholderStrategy:
    source = MetadataSource.PLACEHOLDER

    def resolve(self, ids: list[str]) -> StrategyResult:
        now = utc_now()
        videos = [VideoMetadata(id=video_id, title=PLACEHOLDER_TITLE, views=0, date=now) for video_id in ids]
        return StrategyResult(self.source, videos=videos)


class MetadataOrchestrator:
    def __init__(
        self,
        cache: MetadataCache,
        rate_limiter: RateLimiter,
        client: YouTubeMetadataClient | None,
        fallback_store: FallbackStore,
        cache_ttl: float | None = None,
    ):
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.client = client
        self.fallback_store = fallback_store
        self.cache_ttl = cache_ttl
        self.strategies: list[MetadataStrategy] = [
            LiveStrategy(client),
            FallbackStrategy(fallback_store),
            PlaceholderStrategy(),
        ]

    def get_metadata(self, ids: Iterable[str], client_key: str) -> MetadataResponse:
        canonical = canonicalize_ids(ids)
        try:
            return self._get_canonical(canonical, client_key)
        except MetadataServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected failure resolving metadata for %d videos", len(canonical))
            raise InternalError("Unexpected failure while resolving metadata") from exc

    def _get_canonical(self, ids: list[str], client_key: str) -> MetadataResponse:
        key = canonical_key(ids)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"source": MetadataSource.CACHED, "error": None})

        if not self.rate_limiter.admit(client_key):
            logger.info("Rate limit exceeded for client %s", client_key)
            raise RateLimitError(client_key)

        failures: list[MetadataServiceError] = []
        for strategy in self.strategies:
            result = strategy.resolve(ids)
            if not result.ok:
                failures.append(result.error)
                continue

            response = MetadataResponse(
                videos=result.videos,
                source=result.source,
                error=self._degradation_message(result.source, failures),
            )
            if result.source is MetadataSource.LIVE:
                self.cache.put(key, response, self.cache_ttl)
            else:
                logger.warning(
                    "Serving %s metadata for %d videos: %s",
                    result.source.value,
                    len(ids),
                    ", ".join(failure.kind.value for failure in failures),
                )
            return response

        raise InternalError("No metadata strategy produced a response")

    @staticmethod
    def _degradation_message(source: MetadataSource, failures: list[MetadataServiceError]) -> str | None:
        if source is MetadataSource.LIVE or not failures:
            return None
        if source is MetadataSource.FALLBACK:
            return failures[0].message
        reasons = "; ".join(failure.message for failure in failures)
        return f"Live and fallback metadata unavailable ({reasons})"
