"""On-disk layout of a job's assets.

    <analysis_dir>/<job_id>/videos/<source file>
    <analysis_dir>/<job_id>/split/001.<ext> ...
    <analysis_dir>/<job_id>/result.json
"""
import json
import shutil
from pathlib import Path
from typing import BinaryIO

from scenecut.config import settings

RESULT_FILENAME = "result.json"
DEFAULT_UPLOAD_NAME = "upload.mp4"


def job_dir(job_id: str) -> Path:
    return settings.analysis_dir / job_id


def job_video_dir(job_id: str) -> Path:
    return job_dir(job_id) / "videos"


def job_split_dir(job_id: str) -> Path:
    return job_dir(job_id) / "split"


def result_file(job_id: str) -> Path:
    return job_dir(job_id) / RESULT_FILENAME


def safe_filename(filename: str | None) -> str:
    """Strip any directory part a client put in an upload filename."""
    name = Path(filename or "").name.strip()
    if name in ("", ".", ".."):
        return DEFAULT_UPLOAD_NAME
    return name


def asset_url(job_id: str, source_path: str | Path) -> str:
    """
    Public URL of a job's source video.

    Files under the data directory are served statically from /data; anything
    else goes through the API's video endpoint.
    """
    path = Path(source_path).resolve()
    try:
        relative = path.relative_to(settings.data_dir.resolve())
    except ValueError:
        return f"/api/jobs/{job_id}/video"
    return f"/data/{relative.as_posix()}"


def save_stream(source: BinaryIO, destination: Path) -> int:
    """Copy a file object to disk and return the number of bytes written."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    with open(destination, "wb") as f:
        shutil.copyfileobj(source, f, length=1024 * 1024)
    return destination.stat().st_size


def write_result_snapshot(job_id: str, payload: dict) -> Path:
    """Write the virtual cut response next to the job's assets."""
    path = result_file(job_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def remove_job_dir(job_id: str) -> bool:
    """Delete a job's asset directory. Returns False if it did not exist."""
    path = job_dir(job_id)
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True
