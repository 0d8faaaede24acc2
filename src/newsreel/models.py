"""
Data models for the news video pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class CaptionToken:
    """A transcribed word with its offsets in the narration audio."""

    text: str
    from_ms: int
    to_ms: int
    confidence: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "fromMs": self.from_ms,
            "toMs": self.to_ms,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CaptionToken":
        return cls(
            text=str(data["text"]),
            from_ms=int(data["fromMs"]),
            to_ms=int(data["toMs"]),
            confidence=data.get("confidence"),
        )


@dataclass(frozen=True)
class SceneDescriptor:
    """A stock-footage query with its narrative importance (both 1-5)."""

    text: str
    priority: int
    weight: int


@dataclass
class SceneAllocation:
    """A descriptor bound to a downloaded clip and a slot on the timeline."""

    descriptor: SceneDescriptor
    start_ms: int
    end_ms: int
    target_ms: int
    source_path: str
    source_duration_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.descriptor.text,
            "priority": self.descriptor.priority,
            "weight": self.descriptor.weight,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "targetMs": self.target_ms,
            "timestampMs": (self.start_ms + self.end_ms) // 2,
            "path": self.source_path,
            "sourceDurationMs": self.source_duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneAllocation":
        return cls(
            descriptor=SceneDescriptor(
                text=str(data["text"]),
                priority=int(data["priority"]),
                weight=int(data["weight"]),
            ),
            start_ms=int(data["startMs"]),
            end_ms=int(data["endMs"]),
            target_ms=int(data["targetMs"]),
            source_path=str(data["path"]),
            source_duration_ms=int(data["sourceDurationMs"]),
        )


@dataclass
class NewsItem:
    """The article a video was made from."""

    title: str = ""
    description: str = ""
    content: str = ""
    url: str = ""
    source: str = ""
    published_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewsItem":
        source = data.get("source", "")
        if isinstance(source, dict):  # NewsAPI/GNews style {"name": ...}
            source = source.get("name", "")
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            content=data.get("content") or "",
            url=data.get("url") or "",
            source=source or "",
            published_at=data.get("publishedAt") or data.get("published_at") or "",
        )


@dataclass
class VideoRecord:
    """One finished video as stored in the video table."""

    global_id: str
    file_path: str
    title: str
    description: str
    content: str
    source_url: str
    source_name: str
    published_at: str
    created_at: str


@dataclass
class PipelineResult:
    """Artifact paths of one pipeline run."""

    script_path: Path
    audio_path: Path
    wav_path: Path
    captions_path: Path
    scenes_path: Path
    video_path: Path
    final_path: Path
    record: Optional[VideoRecord] = None
    skipped: list[str] = field(default_factory=list)


@dataclass
class CaptionPage:
    """A group of caption tokens shown on screen together."""

    text: str
    start_ms: int
    end_ms: int
    tokens: list[CaptionToken] = field(default_factory=list)
