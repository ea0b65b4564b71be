"""Error kinds raised by the scene pipeline.

Every error carries the HTTP status class it maps to at the API boundary:
400 for bad input, 404 for missing jobs/scenes/assets, 500 for tool and
persistence failures.
"""


class SceneCutError(Exception):
    """Base class for all pipeline errors."""
    status_code = 500


class InvalidInput(SceneCutError):
    """Request data could not be used (bad job id, unsupported URL, ...)."""
    status_code = 400


class JobNotFound(SceneCutError):
    """No job exists with the given id."""
    status_code = 404

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class SceneSetEmpty(SceneCutError):
    """The job has no persisted scenes but the operation needs at least one."""
    status_code = 404


class SourceFileMissing(SceneCutError):
    """The job's source video is not on disk."""
    status_code = 404


class ToolInvocationError(SceneCutError):
    """An external tool could not be run, exited non-zero, or timed out."""
    status_code = 500


class DetectionParseFailure(SceneCutError):
    """Detector output could not be interpreted."""
    status_code = 500


class PersistenceFailure(SceneCutError):
    """A database write failed and was rolled back."""
    status_code = 500
