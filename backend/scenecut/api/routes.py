"""API routes."""
import logging
import shutil
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Query
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from scenecut.config import settings
from scenecut.db.database import get_db
from scenecut.errors import SceneCutError
from scenecut.models.job import Job
from scenecut.pipeline.cutter import VirtualCutResult
from scenecut.services.job_service import JobService
from scenecut.utils.ffmpeg import check_ffmpeg_available, check_ffprobe_available
from scenecut.utils.ytdlp import check_ytdlp_available
from scenecut.api.schemas import (
    YoutubeCutRequest,
    VirtualCutResponse,
    JobResponse,
    DeleteJobResponse,
    UpdateScenesRequest,
    UpdateScenesResponse,
    SplitResponse,
    HealthResponse,
    DependencyCheckResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# =============================================================================
# Health & System
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and dependencies."""
    ffmpeg_ok = check_ffmpeg_available()
    ffprobe_ok = check_ffprobe_available()
    ytdlp_ok = check_ytdlp_available()

    all_ok = ffmpeg_ok and ffprobe_ok and ytdlp_ok

    message = None
    if not all_ok:
        missing = []
        if not ffmpeg_ok:
            missing.append("ffmpeg")
        if not ffprobe_ok:
            missing.append("ffprobe")
        if not ytdlp_ok:
            missing.append("yt-dlp")
        message = f"Missing dependencies: {', '.join(missing)}"

    return HealthResponse(
        status="healthy" if all_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffprobe_available=ffprobe_ok,
        ytdlp_available=ytdlp_ok,
        message=message
    )


@router.get("/dependencies", response_model=List[DependencyCheckResponse])
async def check_dependencies():
    """Check status of the external tools."""
    tools = [
        ("ffmpeg", settings.ffmpeg_path, "apt install ffmpeg"),
        ("ffprobe", settings.ffprobe_path, "apt install ffmpeg"),
        ("yt-dlp", settings.ytdlp_path, "pip install yt-dlp"),
    ]
    deps = []
    for name, configured_path, install_command in tools:
        found = shutil.which(configured_path)
        deps.append(DependencyCheckResponse(
            name=name,
            available=found is not None,
            path=found,
            install_command=install_command
        ))
    return deps


# =============================================================================
# Ingestion
# =============================================================================

@router.post("/video/virtual-cut", response_model=VirtualCutResponse)
async def virtual_cut_upload(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db)
):
    """Upload a video, detect its scenes and return the virtual cut."""
    service = JobService(db)
    try:
        result = await service.ingest_upload(file.filename, file.file)
    except SceneCutError as e:
        raise _http_error(e)
    finally:
        await file.close()
    return _virtual_cut_to_response(result)


@router.post("/video/youtube-cut", response_model=VirtualCutResponse)
async def virtual_cut_youtube(
    data: YoutubeCutRequest,
    db: AsyncSession = Depends(get_db)
):
    """Download a YouTube video, detect its scenes and return the virtual cut."""
    service = JobService(db)
    try:
        result = await service.ingest_url(data.url)
    except SceneCutError as e:
        raise _http_error(e)
    return _virtual_cut_to_response(result)


# =============================================================================
# Jobs
# =============================================================================

@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs(
    limit: int = Query(settings.jobs_page_size, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """List jobs, newest first."""
    service = JobService(db)
    jobs = await service.list_jobs(limit=limit, offset=offset)
    return [_job_to_response(job) for job in jobs]


@router.get("/result/{job_id}", response_model=VirtualCutResponse)
async def get_result(job_id: str, db: AsyncSession = Depends(get_db)):
    """Get the current virtual cut of a job."""
    service = JobService(db)
    try:
        result = await service.virtual_view(job_id)
    except SceneCutError as e:
        raise _http_error(e)
    return _virtual_cut_to_response(result)


@router.get("/jobs/{job_id}/video")
async def get_job_video(job_id: str, db: AsyncSession = Depends(get_db)):
    """Stream a job's source video."""
    service = JobService(db)
    try:
        job = await service.require_job(job_id)
    except SceneCutError as e:
        raise _http_error(e)

    if not job.source_path or not Path(job.source_path).is_file():
        raise HTTPException(status_code=404, detail="Video file not found")

    return FileResponse(job.source_path, filename=job.source_filename)


@router.put("/jobs/{job_id}/scenes", response_model=UpdateScenesResponse)
async def update_scenes(
    job_id: str,
    data: UpdateScenesRequest,
    db: AsyncSession = Depends(get_db)
):
    """Replace a job's timeline with a manually edited scene list."""
    service = JobService(db)
    try:
        count = await service.replace_timeline(job_id, [s.to_scene_data() for s in data.scenes])
    except SceneCutError as e:
        raise _http_error(e)
    return UpdateScenesResponse(message="Scenes updated successfully", updated_count=count)


@router.post("/jobs/{job_id}/split", response_model=SplitResponse)
async def split_job(job_id: str, db: AsyncSession = Depends(get_db)):
    """Write one video file per scene of a job."""
    service = JobService(db)
    try:
        result = await service.physical_split(job_id)
    except SceneCutError as e:
        raise _http_error(e)

    return SplitResponse(
        message=f"Video split into {result.succeeded_count} files",
        split_count=result.succeeded_count,
        requested_count=result.requested_count,
        output_directory=result.output_directory,
        files=result.files,
    )


@router.post("/jobs/{job_id}/reprocess", response_model=VirtualCutResponse)
async def reprocess_job(job_id: str, db: AsyncSession = Depends(get_db)):
    """Run scene detection again, replacing the job's timeline."""
    service = JobService(db)
    try:
        result = await service.reprocess(job_id)
    except SceneCutError as e:
        raise _http_error(e)
    return _virtual_cut_to_response(result)


@router.delete("/jobs/{job_id}", response_model=DeleteJobResponse)
async def delete_job(job_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a job with its scenes and files."""
    service = JobService(db)
    try:
        await service.delete_job(job_id)
    except SceneCutError as e:
        raise _http_error(e)
    return DeleteJobResponse(message="Job deleted successfully", job_id=job_id)


# =============================================================================
# Helpers
# =============================================================================

def _http_error(error: SceneCutError) -> HTTPException:
    """Map a domain error to an HTTP error with the same status."""
    if error.status_code >= 500:
        logger.error(f"Request failed: {error}")
    return HTTPException(status_code=error.status_code, detail=str(error))


def _virtual_cut_to_response(result: VirtualCutResult) -> VirtualCutResponse:
    return VirtualCutResponse.model_validate(result.to_dict())


def _job_to_response(job: Job) -> JobResponse:
    """Convert job model to response."""
    return JobResponse(
        id=job.id,
        original_filename=job.original_filename,
        file_size_bytes=job.file_size_bytes,
        duration_seconds=job.duration_seconds,
        width=job.width,
        height=job.height,
        fps=job.fps,
        youtube_url=job.source_url,
        status=job.status.value,
        error_message=job.error_message,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )
