"""
Text-to-speech synthesis with OpenAI.
"""

import logging
from pathlib import Path

from openai import AsyncOpenAI

from .io_ffmpeg import ensure_dir

logger = logging.getLogger("newsreel")


async def synthesize_speech(
    client: AsyncOpenAI,
    text: str,
    out_path: str,
    model: str = "gpt-4o-mini-tts",
    voice: str = "alloy",
    response_format: str = "mp3",
) -> Path:
    """Synthesize the narration to out_path and verify the file landed on disk."""
    path = Path(out_path).resolve()
    ensure_dir(path.parent)

    logger.info(f"Synthesizing speech ({model}, voice={voice}, {len(text)} chars) …")
    async with client.audio.speech.with_streaming_response.create(
        model=model,
        voice=voice,
        input=text,
        response_format=response_format,
    ) as resp:
        await resp.stream_to_file(path)

    if not path.exists() or path.stat().st_size == 0:
        raise OSError(f"Speech audio was not written: {path}")

    logger.info(f"Speech saved -> {path}")
    return path
