"""Service layer: deduplication and media download collaborators."""

from .deduper import DEDUP_TTL_SECONDS, Deduper
from .media_downloader import (
    DownloadResult,
    InstagramDownloader,
    MediaDownloader,
    extract_instagram_url,
    extract_shortcode,
)

__all__ = [
    "DEDUP_TTL_SECONDS",
    "Deduper",
    "DownloadResult",
    "InstagramDownloader",
    "MediaDownloader",
    "extract_instagram_url",
    "extract_shortcode",
]
