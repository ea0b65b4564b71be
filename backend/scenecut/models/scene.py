"""Scene model: one entry of a job's timeline."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship

from scenecut.db.database import Base


class Scene(Base):
    """A contiguous time interval of a job's source video."""

    __tablename__ = "scenes"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    # 1-based position within the job
    scene_index = Column(Integer, nullable=False)

    # Times in seconds
    start_time = Column(Float, nullable=False)
    end_time = Column(Float, nullable=False)
    duration = Column(Float, nullable=False)

    # HH:MM:SS.mmm
    start_timestamp = Column(String(16), nullable=False)
    end_timestamp = Column(String(16), nullable=False)

    frame_count = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    job = relationship("Job", back_populates="scenes")

    def __repr__(self):
        return f"<Scene(job={self.job_id}, index={self.scene_index}, {self.start_time:.2f}-{self.end_time:.2f})>"

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "index": self.scene_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "frame_count": self.frame_count,
        }
