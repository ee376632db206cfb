"""Media downloader collaborator for the /download command."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

INSTAGRAM_HOST = "instagram.com"
GRAPHQL_URL = "https://www.instagram.com/api/graphql"
GRAPHQL_DOC_ID = "10015901848480474"
GRAPHQL_LSD = "AVqbxe3J_YA"

GRAPHQL_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Content-Type": "application/x-www-form-urlencoded",
    "User-Agent": (
        "Mozilla/5.0 (Linux; Android 11; SAMSUNG SM-G973U) AppleWebKit/537.36 "
        "(KHTML, like Gecko) SamsungBrowser/14.2 Chrome/87.0.4280.141 Mobile Safari/537.36"
    ),
    "X-FB-Friendly-Name": "PolarisPostActionLoadPostQueryQuery",
    "X-IG-App-ID": "1217981644879628",
    "X-FB-LSD": GRAPHQL_LSD,
    "X-ASBD-ID": "129477",
}


@dataclass
class DownloadResult:
    """Outcome of a media download."""

    file_path: Optional[Path] = None
    success: bool = False
    error: Optional[str] = None


class MediaDownloader(Protocol):
    async def download(self, url: str) -> DownloadResult: ...


def extract_instagram_url(text: str) -> str:
    """Return the first whitespace-separated word that points at instagram.com."""
    for word in (text or "").split():
        if INSTAGRAM_HOST in word:
            return word.rstrip(".,!?;")
    return ""


def extract_shortcode(url: str) -> str:
    """
    Extract a post shortcode from an Instagram URL.

    Handles /p/<code>, /reel/<code> and /reels/<code>; otherwise the first
    path segment is used.

    Raises:
        ValueError: If the URL is not an Instagram URL or has no path.
    """
    parsed = urlparse(url if "://" in url else f"https://{url}")
    if INSTAGRAM_HOST not in parsed.netloc:
        raise ValueError("invalid Instagram URL: domain must be instagram.com")

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) >= 2 and parts[0] in ("p", "reel", "reels"):
        return parts[1]
    if parts:
        return parts[0]
    raise ValueError(f"could not extract shortcode from URL: {url}")


class InstagramDownloader:
    """Download Instagram videos through the public GraphQL endpoint."""

    def __init__(
        self,
        download_dir: str | Path = "downloads",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.download_dir = Path(download_dir).expanduser()
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def download(self, url: str) -> DownloadResult:
        """Download the video behind ``url`` into ``download_dir``."""
        logger.info("Starting Instagram download for: %s", url)

        try:
            shortcode = extract_shortcode(url)
            video_url = await self._fetch_video_url(shortcode)
            logger.debug("Resolved video URL for %s: %s", shortcode, video_url)

            self.download_dir.mkdir(parents=True, exist_ok=True)
            output = self.download_dir / f"{shortcode}.mp4"
            await self._download_file(video_url, output)

        except (httpx.HTTPError, ValueError, OSError) as e:
            logger.error("Instagram download failed for %s: %s", url, e)
            return DownloadResult(success=False, error=str(e))

        logger.info("Downloaded Instagram video to %s", output)
        return DownloadResult(file_path=output, success=True)

    async def _fetch_video_url(self, shortcode: str) -> str:
        variables = {"shortcode": shortcode, "has_threaded_comments": "false"}
        form = {
            "av": "0",
            "__d": "www",
            "__user": "0",
            "__a": "1",
            "lsd": GRAPHQL_LSD,
            "fb_api_caller_class": "RelayModern",
            "fb_api_req_friendly_name": "PolarisPostActionLoadPostQueryQuery",
            "variables": json.dumps(variables),
            "server_timestamps": "true",
            "doc_id": GRAPHQL_DOC_ID,
        }

        response = await self.client.post(GRAPHQL_URL, data=form, headers=GRAPHQL_HEADERS)
        response.raise_for_status()

        try:
            media = response.json()["data"]["xdt_shortcode_media"]
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"unexpected GraphQL response: {e}") from e

        if not media or not media.get("is_video"):
            raise ValueError("post does not contain a video")

        video_url = media.get("video_url") or ""
        if not video_url:
            raise ValueError("video URL is empty")
        return video_url

    async def _download_file(self, url: str, output: Path) -> None:
        async with self.client.stream("GET", url) as response:
            response.raise_for_status()
            with output.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)

    async def close(self) -> None:
        await self.client.aclose()
