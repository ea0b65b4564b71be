"""Tests for the ffprobe/ffmpeg wrappers and detector output handling."""
import json
import math

import pytest

from scenecut.errors import ToolInvocationError
from scenecut.utils import ffmpeg
from scenecut.utils.ffmpeg import (
    DetectionFailure,
    ProbeFailure,
    TranscodeFailure,
    normalize_boundaries,
    parse_frame_rate,
    parse_pts_times,
)
from scenecut.utils.process import run_tool


SHOWINFO_STDERR = "\n".join([
    "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'clip.mp4':",
    "  Duration: 00:00:30.00, start: 0.000000, bitrate: 1000 kb/s",
    "[Parsed_showinfo_1 @ 0x55d0] n:   0 pts:  61440 pts_time:4.8     pos:   1000 fmt:yuv420p",
    "[Parsed_showinfo_1 @ 0x55d0] n:   1 pts: 153600 pts_time:12      pos:   2000 fmt:yuv420p",
    "[Parsed_showinfo_1 @ 0x55d0] n:   2 pts: 153600 pts_time:12      pos:   2000 fmt:yuv420p",
    "[Parsed_showinfo_1 @ 0x55d0] n:   3 pts:    N/A pts_time:N/A     pos:   3000 fmt:yuv420p",
    "frame=  750 fps=500 q=-0.0 Lsize=N/A time=00:00:30.00",
])


def _fake_run_tool(returncode=0, stdout=b"", stderr=b"", calls=None):
    async def fake(cmd, error_cls=ToolInvocationError, timeout=None):
        if calls is not None:
            calls.append(cmd)
        return returncode, stdout, stderr
    return fake


# =============================================================================
# Frame rate and probe
# =============================================================================

def test_parse_frame_rate_fraction():
    assert math.isclose(parse_frame_rate("30000/1001"), 29.97, rel_tol=1e-3)
    assert parse_frame_rate("25/1") == 25.0


def test_parse_frame_rate_without_usable_denominator_uses_numerator():
    assert parse_frame_rate("24") == 24.0
    assert parse_frame_rate("24/0") == 24.0
    assert parse_frame_rate("24/x") == 24.0


def test_parse_frame_rate_falls_back_to_default():
    assert parse_frame_rate(None) == 30.0
    assert parse_frame_rate("abc/2") == 30.0


@pytest.mark.asyncio
async def test_get_video_info_reads_stream_and_format(monkeypatch):
    payload = {
        "streams": [{"width": 1920, "height": 1080, "r_frame_rate": "30000/1001"}],
        "format": {"duration": "30.5"},
    }
    calls = []
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(stdout=json.dumps(payload).encode(), calls=calls))

    info = await ffmpeg.get_video_info("clip.mp4")

    assert info.duration == 30.5
    assert (info.width, info.height) == (1920, 1080)
    assert math.isclose(info.fps, 29.97, rel_tol=1e-3)
    assert calls[0][-1] == "clip.mp4"
    assert "format=duration:stream=width,height,r_frame_rate" in calls[0]


@pytest.mark.asyncio
async def test_get_video_info_defaults_missing_fields(monkeypatch):
    payload = {"format": {"duration": "N/A"}}
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(stdout=json.dumps(payload).encode()))

    info = await ffmpeg.get_video_info("audio_only.mp4")

    assert info.duration == 0.0
    assert (info.width, info.height) == (0, 0)
    assert info.fps == 30.0


@pytest.mark.asyncio
async def test_get_video_info_nonzero_exit(monkeypatch):
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(returncode=1, stderr=b"moov atom not found"))

    with pytest.raises(ProbeFailure, match="moov atom not found"):
        await ffmpeg.get_video_info("broken.mp4")


@pytest.mark.asyncio
async def test_get_video_info_unreadable_output(monkeypatch):
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(stdout=b"not json"))

    with pytest.raises(ProbeFailure):
        await ffmpeg.get_video_info("clip.mp4")


# =============================================================================
# Detector output
# =============================================================================

def test_parse_pts_times_skips_malformed_tokens():
    lines = SHOWINFO_STDERR.splitlines() + ["x pts_time:nan y", "x pts_time:inf y"]
    assert parse_pts_times(lines) == [4.8, 12.0, 12.0]


def test_normalize_boundaries_sorts_dedups_and_brackets():
    assert normalize_boundaries([12.0, 4.8, 12.0], 30.0) == [0.0, 4.8, 12.0, 30.0]


def test_normalize_boundaries_ignores_values_outside_the_video():
    assert normalize_boundaries([-1.0, 0.0, 30.0, 31.0, 10.0], 30.0) == [0.0, 10.0, 30.0]


def test_normalize_boundaries_zero_duration():
    assert normalize_boundaries([], 0.0) == [0.0]


def test_normalize_boundaries_truncates_to_earliest_entries():
    changes = [float(i) for i in range(1, 100)]
    boundaries = normalize_boundaries(changes, 200.0, max_boundaries=51)

    assert len(boundaries) == 51
    assert boundaries[0] == 0.0
    assert boundaries[-1] == 50.0
    assert 200.0 not in boundaries


@pytest.mark.asyncio
async def test_detect_scenes_builds_boundaries_from_stderr(monkeypatch):
    calls = []
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(stderr=SHOWINFO_STDERR.encode(), calls=calls))

    boundaries = await ffmpeg.detect_scenes("clip.mp4", 30.0, threshold=0.4)

    assert boundaries == [0.0, 4.8, 12.0, 30.0]
    assert "select='gt(scene,0.4)',showinfo" in calls[0]
    assert calls[0][-3:] == ["-f", "null", "-"]


@pytest.mark.asyncio
async def test_detect_scenes_without_changes_is_single_scene(monkeypatch):
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(stderr=b"frame= 10 fps=0.0"))

    assert await ffmpeg.detect_scenes("clip.mp4", 8.0) == [0.0, 8.0]


@pytest.mark.asyncio
async def test_detect_scenes_nonzero_exit(monkeypatch):
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(returncode=1, stderr=b"Invalid data found"))

    with pytest.raises(DetectionFailure, match="Invalid data found"):
        await ffmpeg.detect_scenes("clip.mp4", 30.0)


# =============================================================================
# Extraction and process handling
# =============================================================================

@pytest.mark.asyncio
async def test_extract_segment_stream_copies_range(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(calls=calls))

    output = await ffmpeg.extract_segment("clip.mp4", tmp_path / "001.mp4", 4.8, 12.0)

    cmd = calls[0]
    assert output == tmp_path / "001.mp4"
    assert cmd[cmd.index("-ss") + 1] == "4.8"
    assert cmd[cmd.index("-to") + 1] == "12.0"
    assert cmd[cmd.index("-c") + 1] == "copy"
    assert cmd[-1] == str(tmp_path / "001.mp4")


@pytest.mark.asyncio
async def test_extract_segment_nonzero_exit(monkeypatch, tmp_path):
    monkeypatch.setattr(ffmpeg, "run_tool", _fake_run_tool(returncode=1, stderr=b"Conversion failed!"))

    with pytest.raises(TranscodeFailure):
        await ffmpeg.extract_segment("clip.mp4", tmp_path / "001.mp4", 0.0, 1.0)


@pytest.mark.asyncio
async def test_run_tool_missing_binary_raises_given_error():
    with pytest.raises(ProbeFailure, match="Failed to run"):
        await run_tool(["scenecut-no-such-binary"], ProbeFailure)
