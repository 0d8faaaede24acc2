"""
Tests for ffmpeg command construction.
"""

import asyncio
import sys
import time

import pytest

from newsreel import io_ffmpeg
from newsreel.errors import CommandError


@pytest.fixture
def recorded(monkeypatch):
    cmds = []

    async def fake_run(cmd, *, check=True):
        cmds.append([str(c) for c in cmd])
        return "12.345\n"

    monkeypatch.setattr(io_ffmpeg, "run", fake_run)
    return cmds


def test_transcode_forces_16k_mono(tmp_path, recorded):
    asyncio.run(io_ffmpeg.transcode_to_wav(str(tmp_path / "a.mp3"), str(tmp_path / "out" / "a.wav")))
    cmd = recorded[0]
    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-ar") + 1] == "16000"
    assert cmd[cmd.index("-ac") + 1] == "1"
    assert (tmp_path / "out").is_dir()


def test_probe_duration_ms(recorded):
    assert asyncio.run(io_ffmpeg.probe_duration_ms("clip.mp4")) == 12_345
    assert recorded[0][0] == "ffprobe"


def test_crop_clip_duration_and_frame(tmp_path, recorded):
    asyncio.run(io_ffmpeg.crop_clip("in.mp4", str(tmp_path / "c.mp4"), 5_500, 720, 1280, 30))
    cmd = recorded[0]
    assert cmd[cmd.index("-ss") + 1] == "0"
    assert cmd[cmd.index("-t") + 1] == "5.500"
    assert "crop=720:1280" in cmd[cmd.index("-vf") + 1]
    assert cmd[cmd.index("-r") + 1] == "30"


def test_concat_list_keeps_order(tmp_path, recorded):
    clips = [str(tmp_path / f"video_{i}.mp4") for i in (1, 2, 3)]
    asyncio.run(io_ffmpeg.concat_clips(clips, str(tmp_path / "out.mp4"), str(tmp_path / "list.txt")))
    lines = (tmp_path / "list.txt").read_text(encoding="utf-8").splitlines()
    assert [line.split("/")[-1].rstrip("'") for line in lines] == ["video_1.mp4", "video_2.mp4", "video_3.mp4"]


def test_run_raises_on_nonzero_exit():
    with pytest.raises(CommandError) as exc:
        asyncio.run(io_ffmpeg.run([sys.executable, "-c", "import sys; sys.exit(3)"]))
    assert exc.value.returncode == 3


def test_run_kills_child_when_cancelled(tmp_path, monkeypatch):
    late = tmp_path / "late.txt"
    procs = []
    spawn = asyncio.create_subprocess_exec

    async def recording_spawn(*args, **kwargs):
        proc = await spawn(*args, **kwargs)
        procs.append(proc)
        return proc

    monkeypatch.setattr(io_ffmpeg.asyncio, "create_subprocess_exec", recording_spawn)
    script = f"import time; time.sleep(0.8); open({str(late)!r}, 'w').write('late')"

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(io_ffmpeg.run([sys.executable, "-c", script]), timeout=0.2))

    assert procs[0].returncode is not None
    time.sleep(1.2)
    assert not late.exists()
