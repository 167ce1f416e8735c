import logging
import time

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

try:
    from backend.app.config import Settings, load_settings, setup_logging
    from backend.app.errors import MetadataServiceError, RateLimitError, UpstreamError
    from backend.app.models import HealthStatus, MetadataResponse, MetadataSource
    from backend.app.services.fallback_store import FallbackStore
    from backend.app.services.metadata_cache import MetadataCache
    from backend.app.services.orchestrator import MetadataOrchestrator, split_ids_param
    from backend.app.services.rate_limiter import RateLimiter
    from backend.app.services.youtube_client import YouTubeMetadataClient
except ModuleNotFoundError:
    from app.config import Settings, load_settings, setup_logging
    from app.errors import MetadataServiceError, RateLimitError, UpstreamError
    from app.models import HealthStatus, MetadataResponse, MetadataSource
    from app.services.fallback_store import FallbackStore
    from app.services.metadata_cache import MetadataCache
    from app.services.orchestrator import MetadataOrchestrator, split_ids_param
    from app.services.rate_limiter import RateLimiter
    from app.services.youtube_client import YouTubeMetadataClient

logger = logging.getLogger(__name__)

CACHE_CONTROL_FRESH = "public, max-age=21600, s-maxage=21600"
CACHE_CONTROL_DEGRADED = "no-cache"
FRESH_SOURCES = {MetadataSource.LIVE, MetadataSource.CACHED}
HEALTH_PROBE_VIDEO_ID = "dQw4w9WgXcQ"


# ---------------------------
# Helpers
# ---------------------------

def get_client_key(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class AllowListCORSMiddleware(CORSMiddleware):
    """Answers every preflight with 200; unlisted origins just get no Allow-Origin header."""

    def preflight_response(self, request_headers):
        if not self.is_allowed_origin(origin=request_headers["origin"]):
            return PlainTextResponse("OK", status_code=200, headers=dict(self.preflight_headers))
        return super().preflight_response(request_headers)


def build_orchestrator(settings: Settings, client: YouTubeMetadataClient | None = None) -> MetadataOrchestrator:
    if client is None and settings.youtube_api_key:
        client = YouTubeMetadataClient(
            settings.youtube_api_key,
            timeout=settings.upstream_timeout_seconds,
            retries=settings.upstream_retries,
        )
    if client is None:
        logger.warning(
            "YOUTUBE_API_KEY is not configured: live metadata is disabled, "
            "every request will be served from the fallback snapshot or placeholders"
        )

    return MetadataOrchestrator(
        cache=MetadataCache(
            default_ttl=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        ),
        rate_limiter=RateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests,
            sweep_threshold=settings.rate_limit_sweep_threshold,
        ),
        client=client,
        fallback_store=FallbackStore(settings.fallback_snapshot_file),
        cache_ttl=settings.cache_ttl_seconds,
    )


# ---------------------------
# App setup
# ---------------------------

load_dotenv()

SETTINGS = load_settings()
setup_logging(SETTINGS.log_level)
ORCHESTRATOR = build_orchestrator(SETTINGS)

app = FastAPI(title="Video metadata API")

app.add_middleware(
    AllowListCORSMiddleware,
    allow_origins=SETTINGS.allowed_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=3600,
)


@app.exception_handler(MetadataServiceError)
async def metadata_error_handler(_request: Request, exc: MetadataServiceError):
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(max(int(ORCHESTRATOR.rate_limiter.window_seconds), 1))}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
def on_startup_load_fallback():
    ORCHESTRATOR.fallback_store.load()


@app.get("/health", response_model=HealthStatus, response_model_exclude_none=True)
def health(response: Response):
    status = HealthStatus()
    checks = status.checks

    client = ORCHESTRATOR.client
    if client is None:
        checks.environment.status = "failed"
        checks.environment.message = "YouTube API key not configured"
        checks.api.status = "failed"
    else:
        started = time.monotonic()
        try:
            client.fetch_batch([HEALTH_PROBE_VIDEO_ID])
        except UpstreamError as exc:
            checks.api.status = "failed"
            logger.warning("Health check: YouTube API failed (%s)", exc.kind.value)
        else:
            checks.api.response_time = int((time.monotonic() - started) * 1000)

    if not ORCHESTRATOR.fallback_store.available:
        checks.fallback.status = "failed"

    failed = sum(1 for check in (checks.api, checks.fallback, checks.environment) if check.status == "failed")
    if failed > 1:
        status.status = "unhealthy"
        response.status_code = 500
    elif failed == 1:
        status.status = "degraded"
        response.status_code = 503

    response.headers["Cache-Control"] = "no-cache"
    logger.info("Health check completed: status=%s failed_checks=%d", status.status, failed)
    return status


@app.get("/metadata", response_model=MetadataResponse, response_model_exclude_none=True)
def metadata(request: Request, response: Response, ids: str | None = Query(default=None)):
    video_ids = split_ids_param(ids)
    payload = ORCHESTRATOR.get_metadata(video_ids, get_client_key(request))
    response.headers["Cache-Control"] = (
        CACHE_CONTROL_FRESH if payload.source in FRESH_SOURCES else CACHE_CONTROL_DEGRADED
    )
    return payload


@app.options("/metadata")
def metadata_options():
    return Response(status_code=200)
