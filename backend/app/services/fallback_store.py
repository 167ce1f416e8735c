import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from ..models import FallbackSnapshot, VideoMetadata

logger = logging.getLogger(__name__)


class FallbackStore:
    """
    Read-only view of the static metadata snapshot written at build time.

    The file is read once per process. A missing or corrupt file leaves the
    store empty rather than raising, so callers fall through to placeholders.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._loaded = False
        self._snapshot: FallbackSnapshot | None = None
        self._by_id: dict[str, VideoMetadata] = {}

    @property
    def available(self) -> bool:
        self.load()
        return self._snapshot is not None

    @property
    def generated_at(self) -> datetime | None:
        self.load()
        return self._snapshot.generated_at if self._snapshot else None

    def load(self) -> list[VideoMetadata]:
        with self._lock:
            if not self._loaded:
                self._snapshot = self._read_snapshot()
                self._loaded = True
                if self._snapshot is not None:
                    for video in self._snapshot.videos:
                        self._by_id.setdefault(video.id, video)
            return list(self._snapshot.videos) if self._snapshot else []

    def get(self, ids: Iterable[str]) -> list[VideoMetadata]:
        self.load()
        videos = []
        for video_id in dict.fromkeys(ids):
            video = self._by_id.get(video_id)
            if video is not None:
                videos.append(video)
        return videos

    def _read_snapshot(self) -> FallbackSnapshot | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = FallbackSnapshot.model_validate(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as exc:
            logger.warning("Fallback snapshot unavailable at %s: %s", self.path, type(exc).__name__)
            return None
        logger.info(
            "Loaded fallback snapshot: videos=%d generated_at=%s",
            len(snapshot.videos),
            snapshot.generated_at.isoformat() if snapshot.generated_at else "unknown",
        )
        return snapshot
