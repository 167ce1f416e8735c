# Showcase videos by category. The fallback snapshot is generated from this list.

VIDEO_CATALOG: dict[str, list[str]] = {
    "korea": [
        "V2cZl5s4EKU",
        "G3ys6d2w3yc",
        "L9sxbq8ugoU",
        "vNHblhm9oQo",
        "4h84JgKkt94",
        "a6KG7zSZfwo",
        "CASZX56r-tk",
        "EvcUSPWkOA8",
        "JlPl9MskqJM",
        "drVBXipEOAs",
    ],
    "finance": [
        "s1BoGn9r7oE",
        "EMXUbohWsWs",
        "KBfVy5-M-5k",
        "MDNRiJN7aEg",
        "nnL78ZVifZU",
        "tPDFgVAp4c4",
        "0Wtng6Ou3O4",
        "-WYyOwj8EYU",
    ],
    "kubernetes": ["A7eoKD5m6Ek", "snRi_JET1bg", "8ycnldvJmuA", "ftODZr2_V5Q"],
    "development": [
        "z_Ydy_-cI1U",
        "axvxGj3yOgA",
        "Xhq99-YHXCY",
        "PNFlYx8HiOM",
        "pzVOjl6mOD4",
        "olsB3bJxA2A",
        "IF5sNQH-01c",
        "2kvYb2pVe5o",
        "TLqdeHlAo3A",
        "SHa7rFntlkU",
    ],
}

ALL_VIDEO_IDS: list[str] = [video_id for ids in VIDEO_CATALOG.values() for video_id in ids]

VIDEO_CATEGORIES: dict[str, str] = {
    video_id: category for category, ids in VIDEO_CATALOG.items() for video_id in ids
}


def category_for(video_id: str) -> str | None:
    return VIDEO_CATEGORIES.get(video_id)
