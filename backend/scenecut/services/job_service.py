"""Job service layer: ingestion, segmentation and timeline operations."""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scenecut.config import settings
from scenecut.errors import (
    InvalidInput,
    JobNotFound,
    PersistenceFailure,
    SceneSetEmpty,
    SourceFileMissing,
    ToolInvocationError,
)
from scenecut.models.job import Job, JobStatus, new_job_id
from scenecut.models.scene import Scene
from scenecut.pipeline.cutter import (
    SplitResult,
    VirtualCutResult,
    build_scene_descriptors,
    split_scenes,
)
from scenecut.pipeline.segmentation import build_scenes
from scenecut.services.locks import TimelineLocks, split_output_locks, timeline_locks
from scenecut.utils import storage
from scenecut.utils.ffmpeg import DEFAULT_FPS, VideoInfo, detect_scenes, get_video_info
from scenecut.utils.ytdlp import YtdlpError, download_video, is_youtube_url

logger = logging.getLogger(__name__)


@dataclass
class Timeline:
    """A job together with its persisted scenes in index order."""
    job: Job
    scenes: List[Scene]


def parse_job_id(job_id: str) -> str:
    """Validate a job id and return it in canonical form."""
    try:
        return str(uuid.UUID(str(job_id)))
    except ValueError:
        raise InvalidInput(f"Invalid job ID format: {job_id}")


class JobService:
    """Service for job and timeline operations."""

    def __init__(
        self,
        db: AsyncSession,
        locks: TimelineLocks = None,
        split_locks: TimelineLocks = None
    ):
        self.db = db
        self.locks = locks or timeline_locks
        self.split_locks = split_locks or split_output_locks

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        return await self.db.get(Job, parse_job_id(job_id))

    async def require_job(self, job_id: str) -> Job:
        """Get a job by ID or raise JobNotFound."""
        job = await self.get_job(job_id)
        if not job:
            raise JobNotFound(job_id)
        return job

    async def list_jobs(self, limit: int = None, offset: int = 0) -> List[Job]:
        """List jobs, newest first."""
        if limit is None:
            limit = settings.jobs_page_size
        result = await self.db.execute(
            select(Job)
            .order_by(Job.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    async def list_scenes(self, job_id: str) -> List[Scene]:
        """List the persisted scenes of a job in index order."""
        result = await self.db.execute(
            select(Scene)
            .where(Scene.job_id == parse_job_id(job_id))
            .order_by(Scene.scene_index)
        )
        return result.scalars().all()

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def create_job(
        self,
        original_filename: str,
        file_size: int,
        source_path: Path,
        source_url: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> Job:
        """
        Create a job row in processing state.

        Args:
            original_filename: Name the video arrived with
            file_size: Size of the stored file in bytes
            source_path: Where the video is stored
            source_url: Download URL for URL-ingested jobs
            job_id: Pre-generated id (the asset directory is named after it)

        Returns:
            Created job
        """
        job = Job(
            id=job_id or new_job_id(),
            original_filename=original_filename,
            file_size_bytes=file_size,
            source_url=source_url,
            source_path=str(Path(source_path).resolve()),
            status=JobStatus.PROCESSING,
        )
        self.db.add(job)
        await self._commit()
        logger.info(f"Job {job.id} created for {original_filename} ({file_size} bytes)")
        return job

    async def ingest_upload(self, filename: Optional[str], stream: BinaryIO) -> VirtualCutResult:
        """
        Store an uploaded video, segment it and return its virtual cut.

        Args:
            filename: Client-supplied filename
            stream: File object with the upload body

        Returns:
            Virtual cut of the new job
        """
        job_id = new_job_id()
        name = storage.safe_filename(filename)
        destination = storage.job_video_dir(job_id) / name

        file_size = await asyncio.to_thread(storage.save_stream, stream, destination)
        if file_size == 0:
            await asyncio.to_thread(storage.remove_job_dir, job_id)
            raise InvalidInput("Uploaded file is empty")

        job = await self.create_job(name, file_size, destination, job_id=job_id)
        return await self._segment_and_snapshot(job.id)

    async def ingest_url(self, url: str) -> VirtualCutResult:
        """
        Download a video from a URL, segment it and return its virtual cut.

        Args:
            url: YouTube URL

        Returns:
            Virtual cut of the new job
        """
        url = (url or "").strip()
        if not is_youtube_url(url):
            raise InvalidInput("Invalid YouTube URL")

        job_id = new_job_id()
        logger.info(f"Downloading {url} for job {job_id}")
        try:
            video_path = await download_video(url, storage.job_video_dir(job_id))
        except YtdlpError:
            await asyncio.to_thread(storage.remove_job_dir, job_id)
            raise

        file_size = video_path.stat().st_size
        job = await self.create_job(video_path.name, file_size, video_path, source_url=url, job_id=job_id)
        return await self._segment_and_snapshot(job.id)

    async def reprocess(self, job_id: str) -> VirtualCutResult:
        """Run detection again, replacing the job's timeline."""
        return await self._segment_and_snapshot(job_id)

    async def _segment_and_snapshot(self, job_id: str) -> VirtualCutResult:
        await self.segment(job_id)
        result = await self.virtual_view(job_id)
        await asyncio.to_thread(storage.write_result_snapshot, result.job_id, result.to_dict())
        return result

    # =========================================================================
    # Segmentation
    # =========================================================================

    async def segment(self, job_id: str) -> Timeline:
        """
        Probe and detect the job's video and persist the resulting timeline.

        Any scenes the job already has are replaced in the same transaction,
        so calling this twice does not duplicate the timeline.

        Raises:
            JobNotFound: No such job
            SourceFileMissing: The stored video is gone
            ToolInvocationError: Probe or detection failed (job marked failed)
        """
        job_id = parse_job_id(job_id)
        async with self.locks.hold(job_id):
            job = await self.require_job(job_id)
            source_path = self._source_path(job)

            job.status = JobStatus.PROCESSING
            job.error_message = None
            await self._commit()

            try:
                info = await get_video_info(source_path)
                boundaries = await detect_scenes(source_path, info.duration)
            except ToolInvocationError as e:
                logger.error(f"Segmentation of job {job_id} failed: {e}")
                await self._mark_failed(job, str(e))
                raise

            segments = build_scenes(boundaries, info.fps)
            scenes = [
                Scene(
                    job_id=job_id,
                    scene_index=segment.index,
                    start_time=segment.start,
                    end_time=segment.end,
                    duration=segment.duration,
                    start_timestamp=segment.start_timestamp,
                    end_timestamp=segment.end_timestamp,
                    frame_count=segment.frame_count,
                )
                for segment in segments
            ]

            job.duration_seconds = info.duration
            job.width = info.width
            job.height = info.height
            job.fps = info.fps
            await self._write_timeline(job, scenes)

            logger.info(
                f"Job {job_id}: {len(boundaries)} boundaries -> {len(scenes)} scenes "
                f"({info.duration:.2f}s @ {info.fps:.2f} fps)"
            )
            return Timeline(job=job, scenes=scenes)

    # =========================================================================
    # Cuts
    # =========================================================================

    async def virtual_view(self, job_id: str) -> VirtualCutResult:
        """
        Describe the job's persisted scenes as ranges of the original file.

        No media is touched; every scene's video_url is the source video.
        """
        job = await self.require_job(job_id)
        scenes = await self.list_scenes(job.id)

        video_url = storage.asset_url(job.id, job.source_path) if job.source_path else ""
        video_info = VideoInfo(
            duration=job.duration_seconds or 0.0,
            width=job.width or 0,
            height=job.height or 0,
            fps=job.fps or DEFAULT_FPS,
        )

        return VirtualCutResult(
            job_id=job.id,
            video_info=video_info,
            video_url=video_url,
            original_filename=job.original_filename,
            youtube_url=job.source_url,
            scenes=build_scene_descriptors(scenes, video_url),
        )

    async def physical_split(self, job_id: str) -> SplitResult:
        """
        Write one stream-copied file per persisted scene.

        Splits of the same job run one at a time, since each one clears the
        files of the previous split before writing its own.

        Raises:
            JobNotFound: No such job
            SceneSetEmpty: The job has no scenes
            SourceFileMissing: The stored video is gone
        """
        job_id = parse_job_id(job_id)
        async with self.split_locks.hold(job_id):
            job = await self.require_job(job_id)
            scenes = await self.list_scenes(job_id)
            if not scenes:
                raise SceneSetEmpty(f"No scenes found for job {job_id}")

            source_path = self._source_path(job)
            logger.info(f"Physical split of job {job_id}: {len(scenes)} scenes")
            return await split_scenes(source_path, scenes, storage.job_split_dir(job_id))

    # =========================================================================
    # Timeline editing
    # =========================================================================

    async def replace_timeline(self, job_id: str, scenes: List[dict]) -> int:
        """
        Replace all scenes of a job with a client-supplied list.

        The list is stored as given: no contiguity or coverage checks. Missing
        frame counts get the placeholder value. The job is marked completed.

        Args:
            job_id: Job ID
            scenes: Dicts with index, start_time, end_time, duration,
                start_timestamp, end_timestamp and optional frame_count

        Returns:
            Number of scenes stored

        Raises:
            JobNotFound: No such job
            PersistenceFailure: The write failed; the old timeline is kept
        """
        job_id = parse_job_id(job_id)
        async with self.locks.hold(job_id):
            job = await self.require_job(job_id)

            new_scenes = []
            for item in scenes:
                frame_count = item.get("frame_count")
                new_scenes.append(Scene(
                    job_id=job_id,
                    scene_index=item["index"],
                    start_time=item["start_time"],
                    end_time=item["end_time"],
                    duration=item["duration"],
                    start_timestamp=item["start_timestamp"],
                    end_timestamp=item["end_timestamp"],
                    frame_count=settings.placeholder_frame_count if frame_count is None else frame_count,
                ))

            await self._write_timeline(job, new_scenes)
            logger.info(f"Job {job_id}: timeline replaced with {len(new_scenes)} scenes")
            return len(new_scenes)

    async def delete_job(self, job_id: str):
        """
        Delete a job, its scenes and its asset directory.

        Raises:
            JobNotFound: No such job
        """
        job_id = parse_job_id(job_id)
        async with self.locks.hold(job_id):
            job = await self.require_job(job_id)
            try:
                await self.db.execute(delete(Scene).where(Scene.job_id == job_id))
                await self.db.delete(job)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise PersistenceFailure(f"Failed to delete job {job_id}: {e}") from e

            if await asyncio.to_thread(storage.remove_job_dir, job_id):
                logger.info(f"Removed asset directory of job {job_id}")
            logger.info(f"Job {job_id} deleted")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _source_path(self, job: Job) -> Path:
        if not job.source_path:
            raise SourceFileMissing(f"Job {job.id} has no source video")
        path = Path(job.source_path)
        if not path.is_file():
            raise SourceFileMissing(f"Video file not found for job {job.id}")
        return path

    async def _write_timeline(self, job: Job, scenes: List[Scene]):
        """Swap in a full scene set and complete the job in one transaction."""
        # Rollback expires the job, so its id is read up front
        job_id = job.id
        try:
            await self.db.execute(delete(Scene).where(Scene.job_id == job_id))
            self.db.add_all(scenes)
            job.status = JobStatus.COMPLETED
            job.error_message = None
            job.updated_at = datetime.utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceFailure(f"Failed to save timeline of job {job_id}: {e}") from e

    async def _mark_failed(self, job: Job, reason: str):
        job.status = JobStatus.FAILED
        job.error_message = reason
        await self._commit()

    async def _commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceFailure(f"Database write failed: {e}") from e
