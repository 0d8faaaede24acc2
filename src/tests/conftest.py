"""
Shared fakes for the OpenAI and Pexels clients.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest


class _Completions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.replies.pop(0)
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class _StreamedSpeech:
    def __init__(self, payload: bytes):
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def stream_to_file(self, path):
        if self.payload:
            Path(path).write_bytes(self.payload)


class _Speech:
    def __init__(self, payload: bytes):
        self.payload = payload
        self.calls = []
        self.with_streaming_response = self

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return _StreamedSpeech(self.payload)


class FakeLLM:
    """Just enough of AsyncOpenAI for chat completions and speech."""

    def __init__(self, replies=(), speech: bytes = b"ID3fake-mp3"):
        self.chat = SimpleNamespace(completions=_Completions(replies))
        self.audio = SimpleNamespace(speech=_Speech(speech))


class FakePexels:
    """Scripted search results; downloads write a small file."""

    def __init__(self, results_by_query=None, default=None):
        self.results_by_query = results_by_query or {}
        self.default = default if default is not None else []
        self.searches = []
        self.downloads = []

    async def search_videos(self, query, *, min_duration, max_duration, per_page=5, orientation="portrait"):
        self.searches.append(
            dict(query=query, min_duration=min_duration, max_duration=max_duration,
                 per_page=per_page, orientation=orientation)
        )
        return self.results_by_query.get(query, self.default)

    async def download(self, url, target):
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        Path(target).write_bytes(url.encode())
        self.downloads.append((url, target))
        return Path(target)


def pexels_video(video_id: int, duration: int, link: str | None = None) -> dict:
    return {
        "id": video_id,
        "duration": duration,
        "video_files": [
            {"width": 1080, "height": 1920, "link": link or f"https://videos.example/{video_id}.mp4"},
        ],
    }


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def fake_pexels():
    return FakePexels
