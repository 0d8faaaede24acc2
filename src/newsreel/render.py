"""
Final render: captions burned onto the background video, narration attached.
"""

import logging
from pathlib import Path

from .io_ffmpeg import burn_captions_with_audio, probe_duration_ms
from .srt_utils import SWITCH_CAPTIONS_EVERY_MS, build_caption_pages, write_srt
from .stt import read_captions

logger = logging.getLogger("newsreel")

CAPTION_STYLE = (
    "FontName=Barlow Condensed,FontSize=22,Bold=1,PrimaryColour=&H00FFFFFF,"
    "OutlineColour=&H00000000,BorderStyle=1,Outline=3,Shadow=0,Alignment=2,MarginV=110"
)


async def render_captioned(
    video_path: str,
    audio_path: str,
    captions_path: str,
    out_path: str,
    *,
    width: int = 1080,
    height: int = 1920,
) -> Path:
    """Render the finished clip from the composed video, narration and caption JSON."""
    tokens = read_captions(captions_path)
    pages = build_caption_pages(tokens, SWITCH_CAPTIONS_EVERY_MS)
    srt_path = Path(out_path).with_suffix(".srt")
    write_srt(pages, str(srt_path))

    video_ms = await probe_duration_ms(video_path)
    audio_ms = await probe_duration_ms(audio_path)
    pad_ms = max(0, audio_ms - video_ms)
    logger.info(
        f"[dur] video = {video_ms / 1000:.3f}s, narration = {audio_ms / 1000:.3f}s"
        + (f", holding last frame {pad_ms / 1000:.3f}s" if pad_ms else "")
    )

    out = await burn_captions_with_audio(
        video_path,
        audio_path,
        str(srt_path),
        out_path,
        width=width,
        height=height,
        pad_ms=pad_ms,
        style=CAPTION_STYLE,
    )
    logger.info(f"Final video ({len(pages)} caption pages) -> {out}")
    return out
