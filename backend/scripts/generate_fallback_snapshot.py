from __future__ import annotations

import argparse
import json
import os
import sys
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dotenv import load_dotenv

from backend.app.config import DEFAULT_FALLBACK_FILE, setup_logging
from backend.app.errors import MetadataServiceError
from backend.app.models import VideoMetadata
from backend.app.services.youtube_client import MAX_IDS_PER_REQUEST, YouTubeMetadataClient
from backend.app.video_catalog import ALL_VIDEO_IDS, category_for


def validate_api_key(api_key: str) -> None:
    if not api_key:
        raise RuntimeError("YOUTUBE_API_KEY is required")
    # Most Google API keys begin with AIza and are 39 characters long.
    if not api_key.startswith("AIza") or len(api_key) < 35:
        raise RuntimeError("YOUTUBE_API_KEY format looks invalid (expected prefix 'AIza').")


def chunked(values: list[str], size: int) -> list[list[str]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


def fetch_snapshot_videos(client: YouTubeMetadataClient, video_ids: list[str]) -> list[VideoMetadata]:
    videos: list[VideoMetadata] = []
    for group in chunked(list(dict.fromkeys(video_ids)), MAX_IDS_PER_REQUEST):
        videos.extend(client.fetch_batch(group))
        time.sleep(0.05)
    return videos


def build_snapshot(videos: list[VideoMetadata]) -> dict:
    return {
        "videos": [video.model_dump(mode="json", by_alias=True) for video in videos],
        "generatedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "count": len(videos),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate the static video metadata fallback snapshot.")
    parser.add_argument("--output", type=Path, default=DEFAULT_FALLBACK_FILE)
    parser.add_argument("--ids", default="", help="Comma-separated video IDs (defaults to the showcase catalog)")
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging()

    api_key = (os.getenv("YOUTUBE_API_KEY") or os.getenv("VITE_YOUTUBE_API_KEY") or "").strip()
    video_ids = [value.strip() for value in args.ids.split(",") if value.strip()] or ALL_VIDEO_IDS

    try:
        validate_api_key(api_key)
        client = YouTubeMetadataClient(api_key, timeout=args.timeout)
        print(f"Fetching metadata for {len(video_ids)} videos...")
        videos = fetch_snapshot_videos(client, video_ids)
    except (RuntimeError, MetadataServiceError) as exc:
        print(f"Error generating metadata: {exc}", file=sys.stderr)
        return 1

    snapshot = build_snapshot(videos)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")

    print(f"Generated {snapshot['count']} video metadata entries")
    print(f"Saved to {args.output} (generated at {snapshot['generatedAt']})")
    per_category = Counter(category_for(video.id) or "uncategorized" for video in videos)
    for category, count in sorted(per_category.items()):
        print(f"{category}: {count} videos")
    missing = sorted(set(video_ids) - {video.id for video in videos})
    if missing:
        print(f"Not returned by YouTube: {', '.join(missing)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
