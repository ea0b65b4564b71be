"""Pydantic schemas for API requests and responses."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


# =============================================================================
# Ingestion Schemas
# =============================================================================

class YoutubeCutRequest(BaseModel):
    """Request to segment a video downloaded from YouTube."""
    url: str = Field(..., description="YouTube video URL")


class VideoInfoResponse(BaseModel):
    """Probed properties of a source video."""
    duration: float
    width: int
    height: int
    fps: float


class SceneResponse(BaseModel):
    """One scene of a virtual cut, in the client's camelCase format."""
    index: int
    startTime: float
    endTime: float
    duration: float
    startTimestamp: str
    endTimestamp: str
    videoUrl: str
    frameCount: int


class VirtualCutResponse(BaseModel):
    """Virtual cut of a job: scenes as ranges of the untouched source."""
    job_id: str
    video_info: VideoInfoResponse
    total_scenes: int
    scenes: List[SceneResponse]
    video_url: str
    youtube_url: Optional[str] = None
    original_filename: str


# =============================================================================
# Job Schemas
# =============================================================================

class JobResponse(BaseModel):
    """Job response."""
    id: str
    original_filename: str
    file_size_bytes: int
    duration_seconds: Optional[float]
    width: Optional[int]
    height: Optional[int]
    fps: Optional[float]
    youtube_url: Optional[str] = None
    status: str
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeleteJobResponse(BaseModel):
    """Response for job deletion."""
    message: str
    job_id: str


# =============================================================================
# Timeline Schemas
# =============================================================================

class SceneUpdate(BaseModel):
    """One scene of a manual timeline, as sent by the editor."""
    index: int
    startTime: float
    endTime: float
    duration: float
    startTimestamp: str
    endTimestamp: str
    videoUrl: Optional[str] = None
    frameCount: Optional[int] = None

    def to_scene_data(self) -> dict:
        """Convert to the service's scene dict."""
        return {
            "index": self.index,
            "start_time": self.startTime,
            "end_time": self.endTime,
            "duration": self.duration,
            "start_timestamp": self.startTimestamp,
            "end_timestamp": self.endTimestamp,
            "frame_count": self.frameCount,
        }


class UpdateScenesRequest(BaseModel):
    """Request to replace a job's timeline."""
    scenes: List[SceneUpdate]


class UpdateScenesResponse(BaseModel):
    """Response for a timeline replacement."""
    message: str
    updated_count: int


class SplitResponse(BaseModel):
    """Response for a physical split."""
    message: str
    split_count: int
    requested_count: int
    output_directory: str
    files: List[str] = []


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffprobe_available: bool
    ytdlp_available: bool
    message: Optional[str] = None


class DependencyCheckResponse(BaseModel):
    """Dependency check response."""
    name: str
    available: bool
    path: Optional[str] = None
    install_command: Optional[str] = None
