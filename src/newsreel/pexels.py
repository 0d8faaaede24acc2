"""
Pexels stock-footage search and download.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import httpx
from tqdm import tqdm

from .io_ffmpeg import ensure_dir

logger = logging.getLogger("newsreel")


class PexelsClient:
    """Async client for the Pexels video API."""

    BASE_URL = "https://api.pexels.com"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            logger.warning("PEXELS_API_KEY is not set. Video searches will fail.")
        self.client = httpx.AsyncClient(
            headers={"Authorization": api_key} if api_key else {},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def search_videos(
        self,
        query: str,
        *,
        min_duration: int,
        max_duration: int,
        per_page: int = 5,
        orientation: str = "portrait",
    ) -> list[dict[str, Any]]:
        """Search videos; returns the raw Pexels video objects."""
        response = await self.client.get(
            f"{self.BASE_URL}/videos/search",
            params={
                "query": query,
                "orientation": orientation,
                "per_page": per_page,
                "min_duration": min_duration,
                "max_duration": max_duration,
            },
        )
        response.raise_for_status()
        return response.json().get("videos", []) or []

    async def download(self, url: str, target: str) -> Path:
        """Stream a file to disk."""
        target_path = Path(target)
        ensure_dir(target_path.parent)
        async with self.client.stream("GET", url) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length", 0)) or None
            with open(target_path, "wb") as f, tqdm(
                total=total, unit="B", unit_scale=True, desc=target_path.name, leave=False
            ) as bar:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    bar.update(len(chunk))
        return target_path

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "PexelsClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


def pick_video_file(video: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Prefer the tallest portrait rendition of at least 720px, else the first file."""
    files = video.get("video_files", []) or []
    portrait = [
        f for f in files
        if (f.get("height") or 0) > (f.get("width") or 0) and (f.get("height") or 0) >= 720
    ]
    if portrait:
        return max(portrait, key=lambda f: f["height"])
    return files[0] if files else None
