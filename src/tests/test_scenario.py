"""
Tests for scene planning.
"""

import asyncio
import json
from pathlib import Path

import pytest

from conftest import FakeLLM, FakePexels, pexels_video
from newsreel.errors import MalformedModelOutput, NoScenesFound
from newsreel.models import SceneDescriptor
from newsreel.scenario import (
    allocate_targets,
    clip_filename,
    parse_scene_descriptors,
    plan_scenes,
    rank_candidates,
    read_scenes,
    request_scene_descriptors,
    strip_code_fences,
    write_scenes,
)


def _scene_list(n: int = 6) -> list[dict]:
    return [{"text": f"city skyline {i}", "priority": 3, "weight": 2} for i in range(n)]


def _probe(durations: dict[str, int], default: int = 60_000):
    async def probe(path: str) -> int:
        return durations.get(Path(path).name, default)

    return probe


def test_strip_code_fences():
    """Fenced and bare JSON both come back as bare JSON."""
    assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'
    assert strip_code_fences("```\n[]\n```") == "[]"
    assert strip_code_fences('  [{"a": 1}]  ') == '[{"a": 1}]'


def test_parse_scene_descriptors_fenced():
    content = "```json\n" + json.dumps(_scene_list(7)) + "\n```"
    descriptors = parse_scene_descriptors(content)
    assert len(descriptors) == 7
    assert descriptors[0] == SceneDescriptor(text="city skyline 0", priority=3, weight=2)


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        json.dumps({"scenes": _scene_list()}),
        json.dumps(_scene_list(5)),
        json.dumps(_scene_list(11)),
        json.dumps(_scene_list(5) + ["just a string"]),
        json.dumps(_scene_list(5) + [{"text": "", "priority": 3, "weight": 3}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": 0, "weight": 3}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": 3, "weight": 6}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": 3, "weight": 2.5}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": 3.0, "weight": 2}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": "high", "weight": 2}]),
        json.dumps(_scene_list(5) + [{"text": "x", "priority": 3}]),
    ],
)
def test_parse_scene_descriptors_rejects_bad_shapes(content):
    with pytest.raises(MalformedModelOutput):
        parse_scene_descriptors(content)


def test_request_scene_descriptors_sends_script():
    llm = FakeLLM(replies=["```json\n" + json.dumps(_scene_list(6)) + "\n```"])
    descriptors = asyncio.run(request_scene_descriptors(llm, "O roteiro.", model="m"))

    assert len(descriptors) == 6
    call = llm.chat.completions.calls[0]
    assert call["model"] == "m"
    assert call["messages"][0]["role"] == "system"
    assert "English" in call["messages"][0]["content"]
    assert call["messages"][1] == {"role": "user", "content": "O roteiro."}


def test_allocate_targets_by_weight():
    """30s narration over weights 4/2/4 -> 12s, 6s, 12s."""
    descriptors = [
        SceneDescriptor("a", 3, 4),
        SceneDescriptor("b", 3, 2),
        SceneDescriptor("c", 3, 4),
    ]
    assert allocate_targets(descriptors, 30_000) == [12_000, 6_000, 12_000]


def test_rank_candidates_by_duration_distance():
    videos = [pexels_video(1, 30), pexels_video(2, 13), pexels_video(3, 11)]
    ranked = rank_candidates(videos, 12_000)
    assert [v["id"] for v in ranked][0] in (2, 3)
    assert ranked[-1]["id"] == 1


def test_plan_scenes_layout_without_clamping(tmp_path):
    """Clips longer than their targets: [0,12000) [12000,18000) [18000,30000)."""
    descriptors = [SceneDescriptor("a", 5, 4), SceneDescriptor("b", 3, 2), SceneDescriptor("c", 4, 4)]
    pexels = FakePexels(default=[pexels_video(10, 20)])

    allocations = asyncio.run(
        plan_scenes(descriptors, 30_000, pexels=pexels, out_dir=str(tmp_path), backoff=0, probe=_probe({}))
    )

    assert [(a.start_ms, a.end_ms) for a in allocations] == [(0, 12_000), (12_000, 18_000), (18_000, 30_000)]
    assert [Path(a.source_path).name for a in allocations] == ["video_01.mp4", "video_02.mp4", "video_03.mp4"]
    # search bounds: ceil(target) .. ceil(2 * target), portrait, 5 candidates
    first = pexels.searches[0]
    assert (first["min_duration"], first["max_duration"]) == (12, 24)
    assert first["orientation"] == "portrait"
    assert first["per_page"] == 5


def test_plan_scenes_clamps_to_real_clip_duration(tmp_path):
    descriptors = [SceneDescriptor("a", 5, 4), SceneDescriptor("b", 3, 2), SceneDescriptor("c", 4, 4)]
    pexels = FakePexels(default=[pexels_video(10, 12)])
    probe = _probe({"video_01.mp4": 9_500, "video_03.mp4": 10_000})

    allocations = asyncio.run(
        plan_scenes(descriptors, 30_000, pexels=pexels, out_dir=str(tmp_path), backoff=0, probe=probe)
    )

    assert allocations[0].start_ms == 0
    for prev, nxt in zip(allocations, allocations[1:]):
        assert prev.end_ms == nxt.start_ms
    for a in allocations:
        assert a.duration_ms == min(a.target_ms, a.source_duration_ms)
    assert allocations[-1].end_ms == 9_500 + 6_000 + 10_000


def test_plan_scenes_skips_missing_scene(tmp_path):
    descriptors = [SceneDescriptor("found", 5, 1), SceneDescriptor("missing", 3, 1), SceneDescriptor("also", 4, 1)]
    pexels = FakePexels(
        results_by_query={"found": [pexels_video(1, 20)], "also": [pexels_video(3, 20)]}
    )

    allocations = asyncio.run(
        plan_scenes(descriptors, 30_000, pexels=pexels, out_dir=str(tmp_path), backoff=0, probe=_probe({}))
    )

    assert [a.descriptor.text for a in allocations] == ["found", "also"]
    assert [(a.start_ms, a.end_ms) for a in allocations] == [(0, 10_000), (10_000, 20_000)]
    # the numbered filename follows the descriptor position
    assert Path(allocations[1].source_path).name == clip_filename(2) == "video_03.mp4"
    assert [s["query"] for s in pexels.searches].count("missing") == 3


def test_plan_scenes_all_missing_is_fatal(tmp_path):
    descriptors = [SceneDescriptor("a", 3, 2), SceneDescriptor("b", 3, 3)]
    pexels = FakePexels()

    with pytest.raises(NoScenesFound):
        asyncio.run(
            plan_scenes(descriptors, 10_000, pexels=pexels, out_dir=str(tmp_path), backoff=0, probe=_probe({}))
        )
    assert len(pexels.searches) == 6
    assert pexels.downloads == []


def test_plan_scenes_without_descriptors_never_searches(tmp_path):
    pexels = FakePexels(default=[pexels_video(1, 20)])
    with pytest.raises(NoScenesFound):
        asyncio.run(plan_scenes([], 10_000, pexels=pexels, out_dir=str(tmp_path), backoff=0))
    assert pexels.searches == []


def test_scenes_json_roundtrip(tmp_path):
    descriptors = [SceneDescriptor("a", 5, 4), SceneDescriptor("b", 3, 2)]
    pexels = FakePexels(default=[pexels_video(10, 20)])
    allocations = asyncio.run(
        plan_scenes(descriptors, 18_000, pexels=pexels, out_dir=str(tmp_path), backoff=0, probe=_probe({}))
    )

    path = write_scenes(allocations, str(tmp_path / "scenes.json"))
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["startMs"] == 0 and raw[0]["endMs"] == 12_000
    assert raw[0]["timestampMs"] == 6_000
    assert read_scenes(str(path)) == allocations
