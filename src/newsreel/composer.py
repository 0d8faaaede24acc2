"""
Background video composition: crop each scene clip and concatenate in order.
"""

import logging
from pathlib import Path

from .errors import PipelineError
from .io_ffmpeg import concat_clips, crop_clip, ensure_dir
from .models import SceneAllocation

logger = logging.getLogger("newsreel")


async def compose_video(
    allocations: list[SceneAllocation],
    out_path: str,
    work_dir: str,
    width: int = 720,
    height: int = 1280,
    fps: int = 30,
) -> Path:
    """Build one video whose scenes follow allocation order exactly.

    Each clip is cut from offset 0 for its allocated span. Concatenation order
    is the allocation order, which is the narration order.
    """
    if not allocations:
        raise PipelineError("No scene allocations to compose")

    crop_dir = Path(work_dir) / "crop"
    ensure_dir(crop_dir)

    cropped: list[str] = []
    for i, alloc in enumerate(allocations, 1):
        dst = crop_dir / f"video_{i}.mp4"
        logger.info(
            f"Cropping clip {i}/{len(allocations)}: {alloc.source_path} -> "
            f"{alloc.duration_ms / 1000:.2f}s"
        )
        await crop_clip(alloc.source_path, str(dst), alloc.duration_ms, width, height, fps)
        cropped.append(str(dst))

    logger.info(f"Concatenating {len(cropped)} clips …")
    out = await concat_clips(cropped, out_path, str(crop_dir / "concat.txt"))
    total_ms = sum(a.duration_ms for a in allocations)
    logger.info(f"Background video ready ({total_ms / 1000:.2f}s) -> {out}")
    return out
