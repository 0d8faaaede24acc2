"""
Audio and video processing utilities using ffmpeg/ffprobe.
"""

import asyncio
import logging
from pathlib import Path

from .errors import CommandError

logger = logging.getLogger("newsreel")


async def run(cmd: list[str], *, check: bool = True) -> str:
    """Run a command as a subprocess, await it, and return stdout."""
    cmd = [str(c) for c in cmd]
    logger.debug("Running: %s", " ".join(cmd))
    proc = await asyncio.create_subprocess_exec(
        *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.STDOUT
    )
    try:
        raw, _ = await proc.communicate()
    except asyncio.CancelledError:
        # a timed-out stage must not leave ffmpeg writing into the workdir
        if proc.returncode is None:
            proc.kill()
        await proc.wait()
        raise
    out = raw.decode("utf-8", errors="replace")
    if proc.returncode != 0 and check:
        logger.error("Command failed with code %d: %s", proc.returncode, out[-2000:])
        raise CommandError(cmd, proc.returncode, out)
    return out


def ensure_dir(path) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


async def transcode_to_wav(src: str, dst: str, sample_rate: int = 16000) -> Path:
    """Resample audio to mono 16-bit PCM WAV (the format whisper expects)."""
    ensure_dir(Path(dst).parent)
    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        str(Path(src).resolve()),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(sample_rate),
        "-ac",
        "1",
        str(Path(dst).resolve()),
    ]
    await run(cmd)
    logger.info("Transcoded %s -> %s (%d Hz mono)", src, dst, sample_rate)
    return Path(dst)


async def probe_duration_ms(path: str) -> int:
    """Get media duration in milliseconds."""
    out = await run(
        [
            "ffprobe",
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
    )
    try:
        seconds = float(out.strip().splitlines()[-1])
    except (ValueError, IndexError):
        raise CommandError(["ffprobe", str(path)], 0, f"No duration in ffprobe output: {out!r}") from None
    return int(round(seconds * 1000))


def _portrait_filter(width: int, height: int) -> str:
    """Scale to cover the frame, then center-crop to exactly width x height."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height},setsar=1"
    )


async def crop_clip(
    src: str,
    dst: str,
    duration_ms: int,
    width: int = 720,
    height: int = 1280,
    fps: int = 30,
) -> Path:
    """Cut the first duration_ms of a clip, re-encoded to a fixed portrait frame."""
    ensure_dir(Path(dst).parent)
    cmd = [
        "ffmpeg",
        "-y",
        "-ss",
        "0",
        "-i",
        str(src),
        "-t",
        f"{duration_ms / 1000:.3f}",
        "-vf",
        _portrait_filter(width, height),
        "-r",
        str(fps),
        "-an",
        "-c:v",
        "libx264",
        "-preset",
        "veryfast",
        "-pix_fmt",
        "yuv420p",
        str(dst),
    ]
    await run(cmd)
    return Path(dst)


async def concat_clips(clips: list[str], dst: str, list_path: str) -> Path:
    """Concatenate identically encoded clips, in the given order, without re-encoding."""
    ensure_dir(Path(dst).parent)
    lines = []
    for clip in clips:
        escaped = str(Path(clip).resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    Path(list_path).write_text("\n".join(lines) + "\n", encoding="utf-8")
    cmd = [
        "ffmpeg",
        "-y",
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(list_path),
        "-c",
        "copy",
        str(dst),
    ]
    await run(cmd)
    return Path(dst)


def _escape_filter_path(path: str) -> str:
    """Escape a path for use inside an ffmpeg filter argument."""
    p = str(Path(path).resolve()).replace("\\", "/")
    return p.replace(":", "\\:").replace("'", "\\'")


async def burn_captions_with_audio(
    video: str,
    audio: str,
    subs_path: str,
    output: str,
    *,
    width: int = 1080,
    height: int = 1920,
    pad_ms: int = 0,
    style: str = "",
    crf: int = 20,
    preset: str = "medium",
) -> Path:
    """Burn subtitles onto the video and attach the narration audio track.

    When pad_ms > 0 the last video frame is held for that long so the picture
    covers the whole narration.
    """
    ensure_dir(Path(output).parent)
    filters = [_portrait_filter(width, height)]
    if pad_ms > 0:
        filters.append(f"tpad=stop_mode=clone:stop_duration={pad_ms / 1000:.3f}")
    subs = f"subtitles='{_escape_filter_path(subs_path)}'"
    if style:
        subs += f":force_style='{style}'"
    filters.append(subs)
    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        str(video),
        "-i",
        str(audio),
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-vf",
        ",".join(filters),
        "-c:v",
        "libx264",
        "-crf",
        str(crf),
        "-preset",
        preset,
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        "-b:a",
        "192k",
        str(output),
    ]
    await run(cmd)
    return Path(output)
