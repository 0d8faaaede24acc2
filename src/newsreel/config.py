"""
Runtime configuration loaded from the environment (.env supported).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    return float(raw)


@dataclass
class Settings:
    """Models, voices, credentials and paths for one pipeline."""

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    script_model: str = "gpt-4o-mini"
    scene_model: str = "gpt-4o-mini"
    tts_model: str = "gpt-4o-mini-tts"
    tts_voice: str = "alloy"
    language: str = "pt"
    stt_backend: str = "local"  # 'local' (faster-whisper) | 'openai'
    whisper_model: str = "base"
    pexels_api_key: Optional[str] = None
    work_dir: Path = Path(".work")
    use_cache: bool = False
    db_path: Path = Path("newsreel.db")
    stage_timeout: Optional[float] = None  # seconds, per stage

    # Video geometry
    clip_width: int = 720
    clip_height: int = 1280
    final_width: int = 1080
    final_height: int = 1920
    fps: int = 30

    # Scene search policy
    search_attempts: int = 3
    search_backoff: float = 1.0

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from environment variables after loading .env."""
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            script_model=os.getenv("NEWSREEL_SCRIPT_MODEL", cls.script_model),
            scene_model=os.getenv("NEWSREEL_SCENE_MODEL", cls.scene_model),
            tts_model=os.getenv("NEWSREEL_TTS_MODEL", cls.tts_model),
            tts_voice=os.getenv("NEWSREEL_TTS_VOICE", cls.tts_voice),
            language=os.getenv("NEWSREEL_LANGUAGE", cls.language),
            stt_backend=os.getenv("NEWSREEL_STT_BACKEND", cls.stt_backend),
            whisper_model=os.getenv("NEWSREEL_WHISPER_MODEL", cls.whisper_model),
            pexels_api_key=os.getenv("PEXELS_API_KEY"),
            work_dir=Path(os.getenv("NEWSREEL_WORKDIR", str(cls.work_dir))),
            use_cache=_env_bool("NEWSREEL_USE_CACHE", cls.use_cache),
            db_path=Path(os.getenv("NEWSREEL_DB", str(cls.db_path))),
            stage_timeout=_env_float("NEWSREEL_STAGE_TIMEOUT"),
        )
