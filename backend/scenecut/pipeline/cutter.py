"""Virtual and physical cuts of a persisted timeline.

Both strategies take the scenes exactly as stored for a job, so a manual
timeline edit changes what either of them produces next.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from scenecut.config import settings
from scenecut.errors import InvalidInput, ToolInvocationError
from scenecut.models.scene import Scene
from scenecut.utils.ffmpeg import VideoInfo, extract_segment

logger = logging.getLogger(__name__)


# =============================================================================
# Virtual cut
# =============================================================================

@dataclass(frozen=True)
class SceneDescriptor:
    """A scene as metadata over the untouched source file."""
    index: int
    start: float
    end: float
    duration: float
    start_timestamp: str
    end_timestamp: str
    video_url: str
    frame_count: int

    def to_dict(self) -> dict:
        """Wire format used by the web client and result.json."""
        return {
            "index": self.index,
            "startTime": self.start,
            "endTime": self.end,
            "duration": self.duration,
            "startTimestamp": self.start_timestamp,
            "endTimestamp": self.end_timestamp,
            "videoUrl": self.video_url,
            "frameCount": self.frame_count,
        }


@dataclass
class VirtualCutResult:
    """Everything a client needs to edit a job's timeline."""
    job_id: str
    video_info: VideoInfo
    video_url: str
    original_filename: str
    youtube_url: Optional[str] = None
    scenes: List[SceneDescriptor] = field(default_factory=list)

    @property
    def total_scenes(self) -> int:
        return len(self.scenes)

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "video_info": self.video_info.to_dict(),
            "total_scenes": self.total_scenes,
            "scenes": [scene.to_dict() for scene in self.scenes],
            "video_url": self.video_url,
            "youtube_url": self.youtube_url,
            "original_filename": self.original_filename,
        }


def build_scene_descriptors(scenes: Sequence[Scene], video_url: str) -> List[SceneDescriptor]:
    """Describe persisted scenes, in index order, as ranges of the source video."""
    ordered = sorted(scenes, key=lambda s: s.scene_index)
    return [
        SceneDescriptor(
            index=scene.scene_index,
            start=scene.start_time,
            end=scene.end_time,
            duration=scene.duration,
            start_timestamp=scene.start_timestamp,
            end_timestamp=scene.end_timestamp,
            video_url=video_url,
            frame_count=scene.frame_count,
        )
        for scene in ordered
    ]


# =============================================================================
# Physical cut
# =============================================================================

@dataclass
class SplitResult:
    """Outcome of a physical split."""
    requested_count: int
    succeeded_count: int
    output_directory: str
    files: List[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return self.requested_count - self.succeeded_count


def split_filename(position: int, extension: str) -> str:
    """Name of the n-th split file: 001.mp4, 002.mp4, ..."""
    return f"{position:03d}{extension}"


SPLIT_FILE_PATTERN = re.compile(r"^\d{3,}\.\w+$")


def _clear_previous_split(output_dir: Path) -> int:
    """Remove numbered files left by an earlier split. Other files are kept."""
    output_dir.mkdir(parents=True, exist_ok=True)
    removed = 0
    for path in output_dir.iterdir():
        if path.is_file() and SPLIT_FILE_PATTERN.match(path.name):
            path.unlink()
            removed += 1
    return removed


async def split_scenes(
    source_path: str | Path,
    scenes: Sequence[Scene],
    output_dir: str | Path,
    concurrency: int = None
) -> SplitResult:
    """
    Write one stream-copied file per scene.

    Files are numbered by position in index order and keep the source
    extension. A scene whose extraction fails is logged and skipped; the
    result reports how many files were actually written.

    Args:
        source_path: Path to the source video
        scenes: Persisted scenes of the job
        output_dir: Directory for the split files (earlier NNN.ext files are removed first)
        concurrency: Maximum parallel ffmpeg processes (config default if None)

    Returns:
        SplitResult with requested and succeeded counts
    """
    source_path = Path(source_path)
    output_dir = Path(output_dir)
    if concurrency is None:
        concurrency = settings.split_concurrency

    extension = source_path.suffix or ".mp4"
    ordered = sorted(scenes, key=lambda s: s.scene_index)

    if source_path.resolve().parent == output_dir.resolve() and SPLIT_FILE_PATTERN.match(source_path.name):
        raise InvalidInput(f"Splitting into {output_dir} would overwrite the source video {source_path.name}")

    removed = await asyncio.to_thread(_clear_previous_split, output_dir)
    if removed:
        logger.info(f"Removed {removed} files of a previous split from {output_dir}")

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def extract_one(position: int, scene: Scene) -> Optional[str]:
        output_path = output_dir / split_filename(position, extension)
        async with semaphore:
            try:
                await extract_segment(source_path, output_path, scene.start_time, scene.end_time)
            except ToolInvocationError as e:
                logger.warning(f"Split of scene {position} ({scene.start_time}-{scene.end_time}) failed: {e}")
                output_path.unlink(missing_ok=True)
                return None
        logger.info(f"Scene {position} written: {output_path.name}")
        return output_path.name

    results = await asyncio.gather(
        *(extract_one(position, scene) for position, scene in enumerate(ordered, start=1))
    )
    written = [name for name in results if name]

    logger.info(f"Physical split finished: {len(written)}/{len(ordered)} files in {output_dir}")

    return SplitResult(
        requested_count=len(ordered),
        succeeded_count=len(written),
        output_directory=str(output_dir.resolve()),
        files=written,
    )
