import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,https://pastelsketchbook.org"
DEFAULT_FALLBACK_FILE = Path(__file__).resolve().parents[1] / "data" / "videos-metadata.json"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_first(*names: str) -> str:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return ""


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return DEFAULT_ALLOWED_ORIGINS.split(",")
    return origins


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the metadata service."""

    youtube_api_key: str | None = None
    allowed_origins: list[str] = field(default_factory=lambda: parse_cors_origins(DEFAULT_ALLOWED_ORIGINS))
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 60
    rate_limit_sweep_threshold: int = 1000
    cache_ttl_seconds: float = 6 * 60 * 60
    cache_max_entries: int = 512
    upstream_timeout_seconds: float = 8.0
    upstream_retries: int = 1
    fallback_snapshot_file: Path = DEFAULT_FALLBACK_FILE
    log_level: str = "INFO"


def load_settings() -> Settings:
    fallback_file = _env_first("FALLBACK_SNAPSHOT_FILE")
    return Settings(
        youtube_api_key=_env_first("YOUTUBE_API_KEY", "VITE_YOUTUBE_API_KEY") or None,
        allowed_origins=parse_cors_origins(_env_first("CORS_ALLOWED_ORIGINS", "ALLOWED_ORIGINS")),
        rate_limit_window_seconds=_env_float("RATE_LIMIT_WINDOW_SECONDS", 60.0),
        rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 60),
        rate_limit_sweep_threshold=_env_int("RATE_LIMIT_SWEEP_THRESHOLD", 1000),
        cache_ttl_seconds=_env_float("METADATA_CACHE_TTL_SECONDS", 6 * 60 * 60),
        cache_max_entries=_env_int("METADATA_CACHE_MAX_ENTRIES", 512),
        upstream_timeout_seconds=_env_float("UPSTREAM_TIMEOUT_SECONDS", 8.0),
        # capped at one retry
        upstream_retries=min(max(_env_int("UPSTREAM_RETRIES", 1), 0), 1),
        fallback_snapshot_file=Path(fallback_file) if fallback_file else DEFAULT_FALLBACK_FILE,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
