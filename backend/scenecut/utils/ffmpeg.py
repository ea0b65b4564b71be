"""FFmpeg and ffprobe utilities.

All knowledge of the tools' command lines and output layout lives here.
Callers get structured values (VideoInfo, boundary lists) and typed errors.
"""
import json
import logging
import math
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from scenecut.config import settings
from scenecut.errors import ToolInvocationError
from scenecut.utils.process import run_tool

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0
PTS_TIME_TOKEN = "pts_time:"


@dataclass
class VideoInfo:
    """Video metadata container."""
    duration: float
    width: int
    height: int
    fps: float

    def to_dict(self) -> dict:
        return {
            "duration": self.duration,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
        }


class FFmpegError(ToolInvocationError):
    """FFmpeg related error."""
    pass


class ProbeFailure(FFmpegError):
    """ffprobe unavailable, failed, or produced unreadable output."""
    pass


class DetectionFailure(FFmpegError):
    """The scene detection run itself failed."""
    pass


class TranscodeFailure(FFmpegError):
    """A stream-copy extraction failed."""
    pass


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


def parse_frame_rate(value: Optional[str]) -> float:
    """
    Parse an ffprobe frame rate such as "30000/1001".

    A missing or zero denominator falls back to the numerator alone.
    A missing or unreadable value falls back to 30 fps.
    """
    if value is None:
        return DEFAULT_FPS

    num_str, _, den_str = str(value).partition("/")
    try:
        num = float(num_str)
    except ValueError:
        return DEFAULT_FPS

    try:
        den = float(den_str) if den_str else 0.0
    except ValueError:
        den = 0.0

    if den == 0:
        return num
    return num / den


def _parse_duration(value) -> float:
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(duration) or duration < 0:
        return 0.0
    return duration


async def get_video_info(video_path: str | Path) -> VideoInfo:
    """
    Get video metadata using ffprobe.

    Args:
        video_path: Path to video file

    Returns:
        VideoInfo with duration, dimensions and frame rate

    Raises:
        ProbeFailure: If ffprobe cannot run, exits non-zero or returns bad JSON
    """
    video_path = Path(video_path)

    cmd = [
        settings.ffprobe_path,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "format=duration:stream=width,height,r_frame_rate",
        "-of", "json",
        str(video_path)
    ]

    returncode, stdout, stderr = await run_tool(cmd, ProbeFailure)

    if returncode != 0:
        raise ProbeFailure(f"ffprobe failed: {stderr.decode(errors='ignore').strip()}")

    try:
        data = json.loads(stdout.decode("utf-8", errors="ignore") or "{}")
    except json.JSONDecodeError as e:
        raise ProbeFailure(f"Failed to parse ffprobe output: {e}")

    streams = data.get("streams") or [{}]
    stream = streams[0]

    return VideoInfo(
        duration=_parse_duration((data.get("format") or {}).get("duration")),
        width=int(stream.get("width") or 0),
        height=int(stream.get("height") or 0),
        fps=parse_frame_rate(stream.get("r_frame_rate")),
    )


def parse_pts_times(lines: Iterable[str]) -> List[float]:
    """
    Extract every pts_time:<seconds> token from showinfo diagnostic lines.

    Malformed or non-finite values are skipped.
    """
    times = []
    for line in lines:
        if PTS_TIME_TOKEN not in line:
            continue
        for part in line.split():
            if not part.startswith(PTS_TIME_TOKEN):
                continue
            try:
                value = float(part[len(PTS_TIME_TOKEN):])
            except ValueError:
                continue
            if math.isfinite(value):
                times.append(value)
    return times


def normalize_boundaries(
    timestamps: Iterable[float],
    duration: float,
    max_boundaries: Optional[int] = None
) -> List[float]:
    """
    Turn raw change timestamps into the boundary list of a timeline.

    Adds 0.0 and the video duration, sorts, drops exact duplicates and keeps
    only the earliest max_boundaries entries. Timestamps outside (0, duration)
    are ignored. Truncation drops the tail, including the final duration
    boundary, when the detector reports more changes than the ceiling allows.
    """
    if max_boundaries is None:
        max_boundaries = settings.max_boundaries

    inside = [t for t in timestamps if 0.0 < t < duration]
    ordered = sorted([0.0, *inside, duration])

    boundaries: List[float] = []
    for t in ordered:
        if not boundaries or boundaries[-1] != t:
            boundaries.append(t)

    if len(boundaries) > max_boundaries:
        logger.info(
            f"Detector reported {len(boundaries)} boundaries; keeping the first {max_boundaries}"
        )
        boundaries = boundaries[:max_boundaries]

    return boundaries


async def detect_scenes(
    video_path: str | Path,
    duration: float,
    threshold: float = None
) -> List[float]:
    """
    Detect scene changes in a video using FFmpeg.

    Args:
        video_path: Path to video file
        duration: Probed video duration, appended as the final boundary
        threshold: Scene detection threshold (0-1), lower = more sensitive

    Returns:
        Sorted, de-duplicated boundary timestamps starting at 0.0

    Raises:
        DetectionFailure: If ffmpeg cannot run or exits non-zero
    """
    video_path = Path(video_path)
    if threshold is None:
        threshold = settings.scene_threshold

    cmd = [
        settings.ffmpeg_path,
        "-hide_banner",
        "-i", str(video_path),
        "-filter:v", f"select='gt(scene,{threshold})',showinfo",
        "-f", "null",
        "-"
    ]

    returncode, _, stderr = await run_tool(cmd, DetectionFailure)
    output = stderr.decode("utf-8", errors="ignore")

    if returncode != 0:
        tail = "\n".join(output.splitlines()[-5:])
        raise DetectionFailure(f"Scene detection failed: {tail}")

    changes = parse_pts_times(output.splitlines())
    logger.debug(f"Detector reported {len(changes)} changes for {video_path.name}")

    return normalize_boundaries(changes, duration)


async def extract_segment(
    source_path: str | Path,
    output_path: str | Path,
    start_time: float,
    end_time: float
) -> Path:
    """
    Copy one time range of the source into a standalone file.

    Streams are copied without re-encoding, so cut points snap to keyframes.

    Args:
        source_path: Path to source video
        output_path: Path for output file
        start_time: Start time in seconds
        end_time: End time in seconds

    Returns:
        Path to the written file

    Raises:
        TranscodeFailure: If ffmpeg cannot run or exits non-zero
    """
    source_path = Path(source_path)
    output_path = Path(output_path)

    cmd = [
        settings.ffmpeg_path,
        "-y",  # Overwrite
        "-i", str(source_path),
        "-ss", str(start_time),
        "-to", str(end_time),
        "-c", "copy",
        str(output_path)
    ]

    returncode, _, stderr = await run_tool(cmd, TranscodeFailure)

    if returncode != 0:
        tail = "\n".join(stderr.decode("utf-8", errors="ignore").splitlines()[-5:])
        raise TranscodeFailure(f"Extraction of {output_path.name} failed: {tail}")

    return output_path
