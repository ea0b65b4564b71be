"""Job model: one ingested source video."""
import enum
import uuid
from datetime import datetime
from pathlib import Path
from sqlalchemy import Column, Integer, String, DateTime, Enum, Float, BigInteger, Text
from sqlalchemy.orm import relationship

from scenecut.db.database import Base


class JobStatus(str, enum.Enum):
    """Job status enumeration."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def new_job_id() -> str:
    """Generate a job id."""
    return str(uuid.uuid4())


class Job(Base):
    """Job model owning one timeline of scenes."""

    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_job_id)

    # Source information
    original_filename = Column(String(1024), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    source_url = Column(String(2048), nullable=True)  # Only for URL ingestion
    source_path = Column(String(4096), nullable=True)  # Resolved path of the stored video

    # Video metadata (filled once probing completes)
    duration_seconds = Column(Float, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    fps = Column(Float, nullable=True)

    # Status
    status = Column(Enum(JobStatus), default=JobStatus.PROCESSING, nullable=False)
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    scenes = relationship(
        "Scene",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Scene.scene_index",
    )

    def __repr__(self):
        return f"<Job(id={self.id}, file='{self.original_filename}', status={self.status})>"

    @property
    def source_filename(self):
        """Get the stored source video filename."""
        if self.source_path:
            return Path(self.source_path).name
        return None

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "original_filename": self.original_filename,
            "file_size_bytes": self.file_size_bytes,
            "duration_seconds": self.duration_seconds,
            "youtube_url": self.source_url,
            "status": self.status.value,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
