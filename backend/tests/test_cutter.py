"""Tests for virtual and physical cuts."""
from pathlib import Path

import pytest

from scenecut.errors import InvalidInput
from scenecut.models.scene import Scene
from scenecut.pipeline import cutter
from scenecut.pipeline.cutter import VirtualCutResult, build_scene_descriptors, split_scenes
from scenecut.utils.ffmpeg import TranscodeFailure, VideoInfo


def _scene(index, start, end):
    return Scene(
        job_id="job",
        scene_index=index,
        start_time=start,
        end_time=end,
        duration=end - start,
        start_timestamp=f"00:00:{int(start):02d}.000",
        end_timestamp=f"00:00:{int(end):02d}.000",
        frame_count=int((end - start) * 30),
    )


@pytest.fixture
def scenes():
    # Deliberately out of order
    return [_scene(3, 20.0, 30.0), _scene(1, 0.0, 10.0), _scene(2, 10.0, 20.0)]


def test_descriptors_follow_index_order_and_share_source_url(scenes):
    descriptors = build_scene_descriptors(scenes, "/data/analysis/job/videos/clip.mp4")

    assert [d.index for d in descriptors] == [1, 2, 3]
    assert {d.video_url for d in descriptors} == {"/data/analysis/job/videos/clip.mp4"}
    assert descriptors[1].to_dict() == {
        "index": 2,
        "startTime": 10.0,
        "endTime": 20.0,
        "duration": 10.0,
        "startTimestamp": "00:00:10.000",
        "endTimestamp": "00:00:20.000",
        "videoUrl": "/data/analysis/job/videos/clip.mp4",
        "frameCount": 300,
    }


def test_virtual_cut_result_wire_format(scenes):
    result = VirtualCutResult(
        job_id="job",
        video_info=VideoInfo(duration=30.0, width=640, height=360, fps=30.0),
        video_url="/data/analysis/job/videos/clip.mp4",
        original_filename="clip.mp4",
        scenes=build_scene_descriptors(scenes, "/data/analysis/job/videos/clip.mp4"),
    )

    data = result.to_dict()
    assert data["total_scenes"] == 3
    assert data["youtube_url"] is None
    assert data["video_info"] == {"duration": 30.0, "width": 640, "height": 360, "fps": 30.0}
    assert [s["index"] for s in data["scenes"]] == [1, 2, 3]


def test_virtual_cut_is_repeatable(scenes):
    first = build_scene_descriptors(scenes, "/v.mp4")
    second = build_scene_descriptors(scenes, "/v.mp4")
    assert first == second


@pytest.mark.asyncio
async def test_split_writes_one_file_per_scene(monkeypatch, tmp_path, scenes):
    calls = []

    async def fake_extract(source, output, start, end):
        calls.append((Path(output).name, start, end))
        Path(output).write_bytes(b"x")
        return Path(output)

    monkeypatch.setattr(cutter, "extract_segment", fake_extract)

    result = await split_scenes(tmp_path / "clip.mkv", scenes, tmp_path / "split")

    assert result.requested_count == 3
    assert result.succeeded_count == 3
    assert result.failed_count == 0
    assert result.files == ["001.mkv", "002.mkv", "003.mkv"]
    assert sorted(calls) == [("001.mkv", 0.0, 10.0), ("002.mkv", 10.0, 20.0), ("003.mkv", 20.0, 30.0)]
    assert result.output_directory == str((tmp_path / "split").resolve())


@pytest.mark.asyncio
async def test_split_skips_failed_scene(monkeypatch, tmp_path, scenes):
    async def fake_extract(source, output, start, end):
        Path(output).write_bytes(b"partial")
        if start == 10.0:
            raise TranscodeFailure("Conversion failed!")
        return Path(output)

    monkeypatch.setattr(cutter, "extract_segment", fake_extract)

    split_dir = tmp_path / "split"
    result = await split_scenes(tmp_path / "clip.mp4", scenes, split_dir)

    assert result.requested_count == 3
    assert result.succeeded_count == 2
    assert result.failed_count == 1
    assert (split_dir / "001.mp4").exists()
    assert not (split_dir / "002.mp4").exists()
    assert (split_dir / "003.mp4").exists()


@pytest.mark.asyncio
async def test_split_clears_previous_output(monkeypatch, tmp_path, scenes):
    async def fake_extract(source, output, start, end):
        Path(output).write_bytes(b"x")
        return Path(output)

    monkeypatch.setattr(cutter, "extract_segment", fake_extract)

    split_dir = tmp_path / "split"
    split_dir.mkdir()
    (split_dir / "009.mp4").write_bytes(b"stale")

    await split_scenes(tmp_path / "clip", scenes[:1], split_dir)

    assert sorted(p.name for p in split_dir.iterdir()) == ["001.mp4"]


@pytest.mark.asyncio
async def test_split_keeps_unrelated_files_in_output_dir(monkeypatch, tmp_path, scenes):
    async def fake_extract(source, output, start, end):
        Path(output).write_bytes(b"x")
        return Path(output)

    monkeypatch.setattr(cutter, "extract_segment", fake_extract)

    # A directory handed over from the command line may hold anything
    out_dir = tmp_path / "exports"
    out_dir.mkdir()
    (out_dir / "notes.txt").write_text("keep me")
    (out_dir / "source.mp4").write_bytes(b"original")
    (out_dir / "007.mp4").write_bytes(b"stale")

    await split_scenes(out_dir / "source.mp4", scenes, out_dir)

    assert sorted(p.name for p in out_dir.iterdir()) == [
        "001.mp4", "002.mp4", "003.mp4", "notes.txt", "source.mp4",
    ]
    assert (out_dir / "notes.txt").read_text() == "keep me"
    assert (out_dir / "source.mp4").read_bytes() == b"original"


@pytest.mark.asyncio
async def test_split_refuses_to_overwrite_numbered_source(monkeypatch, tmp_path, scenes):
    async def fake_extract(source, output, start, end):
        raise AssertionError("nothing should be extracted")

    monkeypatch.setattr(cutter, "extract_segment", fake_extract)

    source = tmp_path / "001.mp4"
    source.write_bytes(b"original")

    with pytest.raises(InvalidInput):
        await split_scenes(source, scenes, tmp_path)

    assert source.read_bytes() == b"original"
