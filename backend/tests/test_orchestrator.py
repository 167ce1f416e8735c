import pytest

from backend.app.errors import ErrorKind, InternalError, RateLimitError, ValidationError
from backend.app.models import MetadataSource
from backend.app.services.orchestrator import (
    PLACEHOLDER_TITLE,
    FallbackStrategy,
    LiveStrategy,
    PlaceholderStrategy,
    canonicalize_ids,
    split_ids_param,
)

from conftest import FakeUpstream


def test_canonicalize_strips_and_dedupes():
    assert canonicalize_ids([" b0000000000", "a0000000000", "b0000000000", ""]) == ["b0000000000", "a0000000000"]


@pytest.mark.parametrize("raw", [None, "", "   ", ",,"])
def test_missing_ids_are_rejected(raw):
    with pytest.raises(ValidationError) as excinfo:
        canonicalize_ids(split_ids_param(raw))
    assert excinfo.value.message.startswith("Missing required parameter: ids")


def test_boundary_fifty_accepted_fifty_one_rejected(build_orchestrator, upstream):
    orchestrator = build_orchestrator(client=upstream)
    ids = [f"vid{n:08d}" for n in range(51)]

    response = orchestrator.get_metadata(ids[:50], "client")
    assert response.source is MetadataSource.LIVE
    assert len(upstream.calls) == 1

    with pytest.raises(ValidationError):
        orchestrator.get_metadata(ids, "client")
    assert len(upstream.calls) == 1


def test_live_then_cached_without_rate_budget(build_orchestrator, upstream):
    orchestrator = build_orchestrator(client=upstream, max_requests=1)

    live = orchestrator.get_metadata(["b0000000000", "a0000000000"], "client")
    cached = orchestrator.get_metadata(["a0000000000", "b0000000000", "a0000000000"], "client")

    assert live.source is MetadataSource.LIVE
    assert live.error is None
    assert cached.source is MetadataSource.CACHED
    assert cached.videos == live.videos
    assert len(upstream.calls) == 1
    # the single admitted slot went to the live call, cached reads are free
    assert orchestrator.get_metadata(["a0000000000", "b0000000000"], "client").source is MetadataSource.CACHED


def test_cache_expires_after_ttl(build_orchestrator, upstream, clock):
    orchestrator = build_orchestrator(client=upstream)
    orchestrator.get_metadata(["a0000000000"], "client")
    clock.advance(6 * 60 * 60)
    assert orchestrator.get_metadata(["a0000000000"], "client").source is MetadataSource.LIVE
    assert len(upstream.calls) == 2


def test_rate_limit_rejects_and_does_not_fall_back(build_orchestrator, failing_upstream, clock):
    orchestrator = build_orchestrator(client=failing_upstream, max_requests=60)
    for _ in range(60):
        assert orchestrator.get_metadata(["V2cZl5s4EKU"], "1.1.1.1").source is MetadataSource.FALLBACK

    with pytest.raises(RateLimitError):
        orchestrator.get_metadata(["V2cZl5s4EKU"], "1.1.1.1")
    assert len(failing_upstream.calls) == 60

    clock.advance(60)
    assert orchestrator.get_metadata(["V2cZl5s4EKU"], "1.1.1.1").source is MetadataSource.FALLBACK


def test_upstream_failure_serves_fallback_in_request_order(build_orchestrator, failing_upstream):
    orchestrator = build_orchestrator(client=failing_upstream)
    response = orchestrator.get_metadata(["vNHblhm9oQo", "dQw4w9WgXcQ", "V2cZl5s4EKU"], "client")

    assert response.source is MetadataSource.FALLBACK
    assert [video.id for video in response.videos] == ["vNHblhm9oQo", "V2cZl5s4EKU"]
    assert "403" in response.error


def test_fallback_is_not_cached(build_orchestrator, failing_upstream):
    orchestrator = build_orchestrator(client=failing_upstream)
    orchestrator.get_metadata(["V2cZl5s4EKU"], "client")
    orchestrator.get_metadata(["V2cZl5s4EKU"], "client")
    assert len(failing_upstream.calls) == 2
    assert len(orchestrator.cache) == 0


def test_placeholders_when_everything_is_down(build_orchestrator, failing_upstream, tmp_path):
    orchestrator = build_orchestrator(client=failing_upstream, snapshot=tmp_path / "missing.json")
    ids = ["dQw4w9WgXcQ", "V2cZl5s4EKU", "dQw4w9WgXcQ"]
    response = orchestrator.get_metadata(ids, "client")

    assert response.source is MetadataSource.PLACEHOLDER
    assert [video.id for video in response.videos] == ["dQw4w9WgXcQ", "V2cZl5s4EKU"]
    assert all(video.title == PLACEHOLDER_TITLE for video in response.videos)
    assert all(video.view_count == 0 for video in response.videos)
    assert "unavailable" in response.error


def test_placeholders_when_snapshot_lacks_requested_ids(build_orchestrator, failing_upstream):
    response = build_orchestrator(client=failing_upstream).get_metadata(["dQw4w9WgXcQ"], "client")
    assert response.source is MetadataSource.PLACEHOLDER


def test_undecodable_snapshot_degrades_to_placeholders(build_orchestrator, failing_upstream, tmp_path):
    snapshot = tmp_path / "binary.json"
    snapshot.write_bytes(b"\xff\xfe\x00garbage")
    response = build_orchestrator(client=failing_upstream, snapshot=snapshot).get_metadata(["V2cZl5s4EKU"], "client")
    assert response.source is MetadataSource.PLACEHOLDER


def test_missing_api_key_degrades_to_fallback(build_orchestrator):
    response = build_orchestrator(client=None).get_metadata(["V2cZl5s4EKU"], "client")
    assert response.source is MetadataSource.FALLBACK
    assert response.error == "YouTube API key not configured"


def test_unexpected_exception_becomes_internal_error(build_orchestrator):
    orchestrator = build_orchestrator(client=FakeUpstream(error=KeyError("items")))
    with pytest.raises(InternalError) as excinfo:
        orchestrator.get_metadata(["V2cZl5s4EKU"], "client")
    assert excinfo.value.public_message == "Internal server error"


def test_strategies_in_isolation(snapshot_file, transport_failure):
    from backend.app.services.fallback_store import FallbackStore

    assert not LiveStrategy(None).resolve(["V2cZl5s4EKU"]).ok
    assert not LiveStrategy(FakeUpstream(error=transport_failure)).resolve(["V2cZl5s4EKU"]).ok
    assert LiveStrategy(FakeUpstream()).resolve(["V2cZl5s4EKU"]).ok

    fallback = FallbackStrategy(FallbackStore(snapshot_file))
    assert fallback.resolve(["V2cZl5s4EKU"]).ok
    miss = fallback.resolve(["dQw4w9WgXcQ"])
    assert not miss.ok
    assert miss.error.kind is ErrorKind.FALLBACK_MISS

    placeholder = PlaceholderStrategy().resolve(["dQw4w9WgXcQ"])
    assert placeholder.ok
    assert placeholder.videos[0].title == PLACEHOLDER_TITLE


def test_strategy_order_is_live_fallback_placeholder(build_orchestrator):
    orchestrator = build_orchestrator()
    assert [strategy.source for strategy in orchestrator.strategies] == [
        MetadataSource.LIVE,
        MetadataSource.FALLBACK,
        MetadataSource.PLACEHOLDER,
    ]
