"""
Scene planning: descriptor generation with GPT and matching against stock footage.
"""

import json
import logging
import math
import re
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

from openai import AsyncOpenAI

from .errors import MalformedModelOutput, NoScenesFound
from .io_ffmpeg import ensure_dir, probe_duration_ms
from .models import SceneAllocation, SceneDescriptor
from .pexels import PexelsClient, pick_video_file
from .retry import retry_until_found

logger = logging.getLogger("newsreel")

MIN_SCENES = 6
MAX_SCENES = 10
SEARCH_CANDIDATES = 5

SCENES_SYSTEM_PROMPT = """You are a video creation assistant.
From the narration script, produce a list of scenes to search for on Pexels.
Return ONLY a JSON array of objects with:
- text: description of the scene, in English
- priority: importance of the scene (1-5, 5 is most important)
- weight: share of narration time the scene deserves (1-5, 5 gets the most time)

Example:
[
  { "text": "Indigenous people in traditional clothing", "priority": 5, "weight": 4 },
  { "text": "Amazon rainforest aerial view", "priority": 4, "weight": 3 },
  { "text": "Traditional indigenous dance", "priority": 5, "weight": 5 }
]

Keep the number of scenes between 6 and 10, favouring quality and relevance.
Always write the scene text in English, whatever the language of the script."""

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.S)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = content.strip()
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def _score(item: dict[str, Any], key: str, index: int) -> int:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedModelOutput(f"Scene {index}: '{key}' must be an integer, got {value!r}")
    if not 1 <= value <= 5:
        raise MalformedModelOutput(f"Scene {index}: '{key}' must be within 1-5, got {value}")
    return value


def parse_scene_descriptors(
    content: str, min_scenes: int = MIN_SCENES, max_scenes: int = MAX_SCENES
) -> list[SceneDescriptor]:
    """Parse and validate the model's scene list."""
    try:
        data = json.loads(strip_code_fences(content or ""))
    except json.JSONDecodeError as e:
        raise MalformedModelOutput(f"Scene list is not valid JSON: {e}") from None

    if not isinstance(data, list):
        raise MalformedModelOutput(f"Scene list must be a JSON array, got {type(data).__name__}")
    if not min_scenes <= len(data) <= max_scenes:
        raise MalformedModelOutput(
            f"Expected {min_scenes}-{max_scenes} scenes, got {len(data)}"
        )

    descriptors: list[SceneDescriptor] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedModelOutput(f"Scene {i} is not an object")
        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            raise MalformedModelOutput(f"Scene {i}: 'text' must be a non-empty string")
        descriptors.append(
            SceneDescriptor(
                text=text.strip(),
                priority=_score(item, "priority", i),
                weight=_score(item, "weight", i),
            )
        )
    return descriptors


async def request_scene_descriptors(
    client: AsyncOpenAI, script: str, model: str = "gpt-4o-mini"
) -> list[SceneDescriptor]:
    """Ask the model for the scene list of a narration script."""
    logger.info(f"Requesting scene list from {model} …")
    chat = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SCENES_SYSTEM_PROMPT},
            {"role": "user", "content": script},
        ],
    )
    content = chat.choices[0].message.content or ""
    descriptors = parse_scene_descriptors(content)
    logger.info(f"Model proposed {len(descriptors)} scenes")
    return descriptors


def allocate_targets(descriptors: list[SceneDescriptor], total_ms: int) -> list[int]:
    """Split the narration duration across descriptors proportionally to weight."""
    total_weight = sum(d.weight for d in descriptors)
    if total_weight <= 0:
        return [0 for _ in descriptors]
    return [int(round(total_ms * d.weight / total_weight)) for d in descriptors]


def rank_candidates(videos: list[dict[str, Any]], target_ms: int) -> list[dict[str, Any]]:
    """Order candidates by closeness of their duration to the target."""
    target_s = target_ms / 1000
    return sorted(videos, key=lambda v: abs(float(v.get("duration") or 0) - target_s))


async def search_clip(
    pexels: PexelsClient, query: str, target_ms: int
) -> Optional[tuple[dict[str, Any], dict[str, Any]]]:
    """Return (video, file) closest to target_ms, or None if nothing usable came back."""
    target_s = target_ms / 1000
    videos = await pexels.search_videos(
        query,
        min_duration=math.ceil(target_s),
        max_duration=math.ceil(target_s * 2),
        per_page=SEARCH_CANDIDATES,
        orientation="portrait",
    )
    for video in rank_candidates(videos, target_ms):
        file_info = pick_video_file(video)
        if file_info and file_info.get("link"):
            return video, file_info
    return None


def clip_filename(index: int) -> str:
    """Numbered download name for the descriptor at 0-based index."""
    return f"video_{index + 1:02d}.mp4"


async def place_scene(
    placed: list[SceneAllocation],
    index: int,
    descriptor: SceneDescriptor,
    target_ms: int,
    *,
    pexels: PexelsClient,
    out_dir: str,
    attempts: int = 3,
    backoff: float = 1.0,
    probe: Callable[[str], Awaitable[int]] = probe_duration_ms,
) -> list[SceneAllocation]:
    """One fold step: resolve a descriptor and append it after the last placed scene.

    A scene with no match after all attempts is skipped and `placed` is
    returned unchanged.
    """
    start_ms = placed[-1].end_ms if placed else 0
    logger.info(
        f'Scene {index + 1}: "{descriptor.text}" (weight {descriptor.weight}, '
        f"target {target_ms / 1000:.2f}s)"
    )

    found = await retry_until_found(
        lambda: search_clip(pexels, descriptor.text, target_ms),
        max_attempts=attempts,
        backoff=backoff,
    )
    if found is None:
        logger.warning(f'No video found for "{descriptor.text}" after {attempts} attempts; skipping')
        return placed

    video, file_info = found
    path = Path(out_dir) / clip_filename(index)
    await pexels.download(file_info["link"], str(path))
    clip_ms = await probe(str(path))
    end_ms = start_ms + min(target_ms, clip_ms)
    logger.info(
        f"  Pexels #{video.get('id')} ({clip_ms / 1000:.2f}s) -> [{start_ms}, {end_ms}) ms"
    )

    allocation = SceneAllocation(
        descriptor=descriptor,
        start_ms=start_ms,
        end_ms=end_ms,
        target_ms=target_ms,
        source_path=str(path),
        source_duration_ms=clip_ms,
    )
    return [*placed, allocation]


async def plan_scenes(
    descriptors: list[SceneDescriptor],
    total_ms: int,
    *,
    pexels: PexelsClient,
    out_dir: str,
    attempts: int = 3,
    backoff: float = 1.0,
    probe: Callable[[str], Awaitable[int]] = probe_duration_ms,
) -> list[SceneAllocation]:
    """Fold the descriptors, in order, into a gapless timeline of allocations."""
    if not descriptors:
        raise NoScenesFound("No scene descriptors to resolve")

    ensure_dir(out_dir)
    placed: list[SceneAllocation] = []
    for index, (descriptor, target_ms) in enumerate(
        zip(descriptors, allocate_targets(descriptors, total_ms))
    ):
        placed = await place_scene(
            placed,
            index,
            descriptor,
            target_ms,
            pexels=pexels,
            out_dir=out_dir,
            attempts=attempts,
            backoff=backoff,
            probe=probe,
        )

    if not placed:
        raise NoScenesFound(f"No video found for any of {len(descriptors)} scenes")
    return placed


def write_scenes(allocations: list[SceneAllocation], path: str) -> Path:
    out = Path(path)
    ensure_dir(out.parent)
    with open(out, "w", encoding="utf-8") as f:
        json.dump([a.to_dict() for a in allocations], f, ensure_ascii=False, indent=2)
    return out


def read_scenes(path: str) -> list[SceneAllocation]:
    with open(path, encoding="utf-8") as f:
        return [SceneAllocation.from_dict(d) for d in json.load(f)]


async def generate_scenes(
    client: AsyncOpenAI,
    pexels: PexelsClient,
    script: str,
    audio_path: str,
    scenes_path: str,
    *,
    model: str = "gpt-4o-mini",
    attempts: int = 3,
    backoff: float = 1.0,
) -> list[SceneAllocation]:
    """Full scene stage: descriptors, clip resolution, and scenes.json."""
    descriptors = await request_scene_descriptors(client, script, model)
    total_ms = await probe_duration_ms(audio_path)
    logger.info(f"Narration duration: {total_ms / 1000:.2f}s")

    allocations = await plan_scenes(
        descriptors,
        total_ms,
        pexels=pexels,
        out_dir=str(Path(scenes_path).parent),
        attempts=attempts,
        backoff=backoff,
    )
    write_scenes(allocations, scenes_path)
    covered = allocations[-1].end_ms
    logger.info(
        f"Saved {len(allocations)}/{len(descriptors)} scenes -> {scenes_path} "
        f"({covered / 1000:.2f}s of {total_ms / 1000:.2f}s)"
    )
    return allocations
