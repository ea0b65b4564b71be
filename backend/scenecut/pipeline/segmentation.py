"""Scene building from detector boundaries.

Turns an ordered boundary list into the scenes of a timeline: one scene per
adjacent pair of boundaries, noise-length pairs dropped, indices compacted.
"""
import math
from dataclasses import dataclass
from typing import List, Sequence

from scenecut.config import settings


@dataclass(frozen=True)
class SceneSegment:
    """A materialized scene, ready to persist."""
    index: int
    start: float
    end: float
    start_timestamp: str
    end_timestamp: str
    frame_count: int

    @property
    def duration(self) -> float:
        return self.end - self.start

    def __repr__(self):
        return f"SceneSegment(#{self.index} {self.start:.2f}-{self.end:.2f}, dur={self.duration:.2f}s)"


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as HH:MM:SS.mmm.

    Every field is floored; milliseconds are truncated, never rounded.
    Float noise below a nanosecond is absorbed first so 3661.234 does not
    come out as .233.

    >>> format_timestamp(3661.234)
    '01:01:01.234'
    """
    total_ms = math.floor(round(seconds * 1000, 6))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def frame_count_for(duration: float, fps: float) -> int:
    """Number of frames covered by a duration at the given frame rate."""
    return int(round(duration * fps))


def build_scenes(
    boundaries: Sequence[float],
    fps: float,
    min_duration: float = None
) -> List[SceneSegment]:
    """
    Create scenes between consecutive boundaries.

    Args:
        boundaries: Sorted boundary timestamps (0.0 first)
        fps: Source frame rate, used for frame counts
        min_duration: Pairs this short or shorter are skipped (config default if None)

    Returns:
        Scenes indexed densely from 1
    """
    if min_duration is None:
        min_duration = settings.min_scene_seconds

    scenes: List[SceneSegment] = []
    for start, end in zip(boundaries, boundaries[1:]):
        duration = end - start
        if duration <= min_duration:
            continue
        scenes.append(SceneSegment(
            index=len(scenes) + 1,
            start=start,
            end=end,
            start_timestamp=format_timestamp(start),
            end_timestamp=format_timestamp(end),
            frame_count=frame_count_for(duration, fps),
        ))

    return scenes
