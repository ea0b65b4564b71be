# Models module
from scenecut.models.job import Job, JobStatus
from scenecut.models.scene import Scene

__all__ = ["Job", "JobStatus", "Scene"]
