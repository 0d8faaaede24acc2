"""
Pipeline orchestration: script -> audio -> transcode -> captions -> scenes -> video -> final.
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from openai import AsyncOpenAI

from .composer import compose_video
from .config import Settings
from .errors import WorkdirBusy
from .io_ffmpeg import ensure_dir, transcode_to_wav
from .models import NewsItem, PipelineResult, VideoRecord
from .pexels import PexelsClient
from .render import render_captioned
from .scenario import generate_scenes, read_scenes
from .storage import VideoStore, new_global_id
from .stt import caption_output_path, extract_captions
from .synthesis import synthesize_speech
from .writer import generate_script

logger = logging.getLogger("newsreel")

STAGES = ("script", "audio", "transcode", "captions", "scenes", "video", "final")
LOCK_NAME = ".newsreel.lock"


@dataclass
class Artifacts:
    """Where each stage writes its output inside a working directory."""

    work_dir: Path
    script: Path
    audio: Path
    wav: Path
    captions: Path
    scenes: Path
    video: Path
    final: Path

    @classmethod
    def in_dir(cls, work_dir) -> "Artifacts":
        root = Path(work_dir).resolve()
        wav = root / "audio.wav"
        return cls(
            work_dir=root,
            script=root / "script.txt",
            audio=root / "audio.mp3",
            wav=wav,
            captions=caption_output_path(str(wav), str(root / "captions")),
            scenes=root / "video" / "scenes.json",
            video=root / "video" / "scenario.mp4",
            final=root / "final.mp4",
        )


@contextlib.contextmanager
def workdir_lock(work_dir: Path) -> Iterator[Path]:
    """Hold an exclusive lock file so only one run writes to work_dir."""
    ensure_dir(work_dir)
    lock = Path(work_dir) / LOCK_NAME
    try:
        fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        raise WorkdirBusy(
            f"{work_dir} is in use by another run (remove {lock} if that run is dead)"
        ) from None
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield lock
    finally:
        lock.unlink(missing_ok=True)


class VideoPipeline:
    """Runs the stages in order, reusing cached artifacts when allowed.

    The storage handle is owned here; leaf stages never touch it.
    """

    def __init__(
        self,
        settings: Settings,
        store: VideoStore,
        *,
        llm_client: AsyncOpenAI,
        pexels: PexelsClient,
    ):
        self.settings = settings
        self.store = store
        self.llm = llm_client
        self.pexels = pexels

    def _cached(self, path: Path) -> bool:
        return self.settings.use_cache and path.exists()

    async def _stage(
        self,
        name: str,
        output: Path,
        produce: Callable[[], Awaitable[object]],
        skipped: list[str],
    ) -> None:
        if self._cached(output):
            logger.info(f"[{name}] using cached {output}")
            skipped.append(name)
            return
        logger.info(f"[{name}] running …")
        try:
            if self.settings.stage_timeout:
                await asyncio.wait_for(produce(), timeout=self.settings.stage_timeout)
            else:
                await produce()
        except BaseException:
            # a half-written output would pass the cache check on the next run
            output.unlink(missing_ok=True)
            raise

    async def _write_script(self, prompt: str, path: Path) -> None:
        script = await generate_script(
            self.llm, prompt, model=self.settings.script_model, language=self.settings.language
        )
        path.write_text(script, encoding="utf-8")

    async def _compose(self, art: Artifacts) -> None:
        await compose_video(
            read_scenes(str(art.scenes)),
            str(art.video),
            str(art.work_dir),
            width=self.settings.clip_width,
            height=self.settings.clip_height,
            fps=self.settings.fps,
        )

    def _record(self, final: Path, news: NewsItem, script: str) -> VideoRecord:
        return VideoRecord(
            global_id=new_global_id(),
            file_path=str(final),
            title=news.title,
            description=news.description,
            content=news.content or script,
            source_url=news.url,
            source_name=news.source,
            published_at=news.published_at,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

    async def run(self, prompt: str, news: Optional[NewsItem] = None) -> PipelineResult:
        """Produce the captioned video for a prompt and record it in the store."""
        s = self.settings
        art = Artifacts.in_dir(s.work_dir)
        news = news or NewsItem(title=prompt.strip().splitlines()[0][:120] if prompt.strip() else "")
        skipped: list[str] = []
        stage = STAGES[0]

        with workdir_lock(art.work_dir):
            try:
                await self._stage(
                    stage, art.script, lambda: self._write_script(prompt, art.script), skipped
                )
                script = art.script.read_text(encoding="utf-8")

                stage = "audio"
                await self._stage(
                    stage,
                    art.audio,
                    lambda: synthesize_speech(
                        self.llm, script, str(art.audio), model=s.tts_model, voice=s.tts_voice
                    ),
                    skipped,
                )

                stage = "transcode"
                await self._stage(
                    stage, art.wav, lambda: transcode_to_wav(str(art.audio), str(art.wav)), skipped
                )

                stage = "captions"
                await self._stage(
                    stage,
                    art.captions,
                    lambda: extract_captions(
                        str(art.wav),
                        str(art.captions.parent),
                        backend=s.stt_backend,
                        model=s.whisper_model,
                        language=s.language,
                        client=self.llm,
                    ),
                    skipped,
                )

                stage = "scenes"
                await self._stage(
                    stage,
                    art.scenes,
                    lambda: generate_scenes(
                        self.llm,
                        self.pexels,
                        script,
                        str(art.audio),
                        str(art.scenes),
                        model=s.scene_model,
                        attempts=s.search_attempts,
                        backoff=s.search_backoff,
                    ),
                    skipped,
                )

                stage = "video"
                await self._stage(stage, art.video, lambda: self._compose(art), skipped)

                stage = "final"
                await self._stage(
                    stage,
                    art.final,
                    lambda: render_captioned(
                        str(art.video),
                        str(art.audio),
                        str(art.captions),
                        str(art.final),
                        width=s.final_width,
                        height=s.final_height,
                    ),
                    skipped,
                )

                record = self.store.find_by_path(str(art.final)) if "final" in skipped else None
                if record is None:
                    record = self.store.insert(self._record(art.final, news, script))
            except Exception as e:
                logger.error(f"Pipeline failed at stage '{stage}': {e}")
                raise

        logger.info(f"Done -> {art.final} (record {record.global_id})")
        return PipelineResult(
            script_path=art.script,
            audio_path=art.audio,
            wav_path=art.wav,
            captions_path=art.captions,
            scenes_path=art.scenes,
            video_path=art.video,
            final_path=art.final,
            record=record,
            skipped=skipped,
        )
