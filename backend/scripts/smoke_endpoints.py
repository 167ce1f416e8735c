from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

from fastapi import Response
from starlette.requests import Request

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.config import Settings
from backend.app.errors import ErrorKind, RateLimitError, UpstreamError
from backend.app.models import VideoMetadata


class FakeClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    def fetch_batch(self, ids):
        self.calls += 1
        if self.fail:
            raise UpstreamError("YouTube API is unreachable", kind=ErrorKind.UPSTREAM_TRANSPORT)
        return [VideoMetadata(id=video_id, title=f"Video {video_id}", views=1000) for video_id in ids]


def make_request(ip: str = "127.0.0.1") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/metadata",
            "headers": [],
            "client": (ip, 8000),
            "query_string": b"",
            "server": ("test", 80),
            "scheme": "http",
            "http_version": "1.1",
        }
    )


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def fresh_orchestrator(client, snapshot_file: Path | None = None, max_requests: int = 60):
    settings = Settings(
        fallback_snapshot_file=snapshot_file or main_module.SETTINGS.fallback_snapshot_file,
        rate_limit_max_requests=max_requests,
    )
    return main_module.build_orchestrator(settings, client=client)


def call_metadata(ids: str, ip: str = "127.0.0.1"):
    return main_module.metadata(request=make_request(ip), response=Response(), ids=ids)


def test_health() -> None:
    with patch.object(main_module, "ORCHESTRATOR", fresh_orchestrator(FakeClient())):
        payload = main_module.health(Response())
    assert_true(payload.status == "healthy", "/health should be healthy with a working client and snapshot")


def test_live_then_cached() -> None:
    client = FakeClient()
    with patch.object(main_module, "ORCHESTRATOR", fresh_orchestrator(client)):
        first = call_metadata("dQw4w9WgXcQ,V2cZl5s4EKU")
        second = call_metadata("V2cZl5s4EKU,dQw4w9WgXcQ")
    assert_true(first.source.value == "live", "first call should be live")
    assert_true(second.source.value == "cached", "reordered repeat should be cached")
    assert_true(first.videos == second.videos, "cached videos should match live videos")
    assert_true(client.calls == 1, "upstream should be hit once")


def test_fallback() -> None:
    with patch.object(main_module, "ORCHESTRATOR", fresh_orchestrator(FakeClient(fail=True))):
        payload = call_metadata("L9sxbq8ugoU,V2cZl5s4EKU")
    assert_true(payload.source.value == "fallback", "failed upstream should serve fallback")
    assert_true([v.id for v in payload.videos] == ["L9sxbq8ugoU", "V2cZl5s4EKU"], "fallback keeps request order")


def test_placeholder() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        missing = Path(tmp) / "missing.json"
        with patch.object(main_module, "ORCHESTRATOR", fresh_orchestrator(FakeClient(fail=True), missing)):
            payload = call_metadata("dQw4w9WgXcQ")
    assert_true(payload.source.value == "placeholder", "no snapshot should serve placeholders")
    assert_true(payload.videos[0].title == "Metadata unavailable", "placeholder title")


def test_rate_limit() -> None:
    with patch.object(main_module, "ORCHESTRATOR", fresh_orchestrator(FakeClient(fail=True), max_requests=2)):
        call_metadata("dQw4w9WgXcQ")
        call_metadata("dQw4w9WgXcQ")
        try:
            call_metadata("dQw4w9WgXcQ")
        except RateLimitError:
            return
    raise AssertionError("third request should be rate limited")


def run() -> int:
    checks = [
        ("health", test_health),
        ("live then cached", test_live_then_cached),
        ("fallback", test_fallback),
        ("placeholder", test_placeholder),
        ("rate limit", test_rate_limit),
    ]
    failures = []

    for check_name, check_fn in checks:
        try:
            check_fn()
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
