import json

import pytest

from backend.app.errors import ErrorKind, UpstreamError
from backend.app.models import VideoMetadata
from backend.app.services.fallback_store import FallbackStore
from backend.app.services.metadata_cache import MetadataCache
from backend.app.services.orchestrator import MetadataOrchestrator
from backend.app.services.rate_limiter import RateLimiter

SNAPSHOT = {
    "videos": [
        {"id": "V2cZl5s4EKU", "title": "Seoul Sketchbook", "views": 48213, "date": "2023-04-02T10:00:12Z"},
        {"id": "L9sxbq8ugoU", "title": "Busan Markets", "views": 22540, "date": "2023-05-07T11:15:43Z"},
        {"id": "vNHblhm9oQo", "title": "Jeju Coastline", "views": 9311, "date": "2023-05-28T08:02:19Z"},
    ],
    "generatedAt": "2025-01-06T03:12:45Z",
    "count": 3,
}


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    def __init__(self, videos_by_id: dict[str, VideoMetadata] | None = None, error: Exception | None = None):
        self.videos_by_id = videos_by_id
        self.error = error
        self.calls: list[list[str]] = []

    def fetch_batch(self, ids):
        ids = list(ids)
        self.calls.append(ids)
        if self.error is not None:
            raise self.error
        if self.videos_by_id is None:
            return [VideoMetadata(id=video_id, title=f"Video {video_id}", views=100) for video_id in ids]
        return [self.videos_by_id[video_id] for video_id in ids if video_id in self.videos_by_id]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "videos-metadata.json"
    path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    return path


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def failing_upstream():
    return FakeUpstream(
        error=UpstreamError.from_status(403, "Forbidden"),
    )


@pytest.fixture
def transport_failure():
    return UpstreamError("YouTube API is unreachable", kind=ErrorKind.UPSTREAM_TRANSPORT)


@pytest.fixture
def build_orchestrator(clock, snapshot_file):
    def _build(client=None, snapshot=None, max_requests: int = 60, window: float = 60):
        return MetadataOrchestrator(
            cache=MetadataCache(clock=clock),
            rate_limiter=RateLimiter(window_seconds=window, max_requests=max_requests, clock=clock),
            client=client,
            fallback_store=FallbackStore(snapshot or snapshot_file),
        )

    return _build
