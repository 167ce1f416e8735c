from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso8601_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def coerce_view_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        # "12.0" or "1e3" style strings
        try:
            count = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(count, 0)


class MetadataSource(str, Enum):
    LIVE = "live"
    CACHED = "cached"
    FALLBACK = "fallback"
    PLACEHOLDER = "placeholder"


class VideoMetadata(BaseModel):
    """One video as served to the site. Serialized as {id, title, views, date}."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    title: str = ""
    view_count: int = Field(default=0, alias="views")
    published_at: datetime = Field(default_factory=utc_now, alias="date")

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("view_count", mode="before")
    @classmethod
    def _coerce_views(cls, value: Any) -> int:
        return coerce_view_count(value)

    @field_validator("published_at", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> datetime:
        return parse_iso8601_datetime(value) or utc_now()


class MetadataResponse(BaseModel):
    videos: list[VideoMetadata] = Field(default_factory=list)
    source: MetadataSource
    error: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class FallbackSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    videos: list[VideoMetadata] = Field(default_factory=list)
    generated_at: datetime | None = Field(default=None, alias="generatedAt")
    count: int | None = None


CheckState = Literal["ok", "failed"]


class HealthCheck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: CheckState = "ok"
    response_time: int | None = Field(default=None, alias="responseTime")
    message: str | None = None


class HealthChecks(BaseModel):
    api: HealthCheck = Field(default_factory=HealthCheck)
    fallback: HealthCheck = Field(default_factory=HealthCheck)
    environment: HealthCheck = Field(default_factory=HealthCheck)


class HealthStatus(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"] = "healthy"
    timestamp: datetime = Field(default_factory=utc_now)
    checks: HealthChecks = Field(default_factory=HealthChecks)
