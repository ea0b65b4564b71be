"""yt-dlp utilities for URL ingestion."""
import logging
import re
import shutil
from pathlib import Path

from scenecut.config import settings
from scenecut.errors import ToolInvocationError
from scenecut.utils.process import run_tool

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".webm", ".mkv", ".mov"}


class YtdlpError(ToolInvocationError):
    """yt-dlp related error."""
    pass


def check_ytdlp_available() -> bool:
    """Check if yt-dlp is available."""
    return shutil.which(settings.ytdlp_path) is not None


def is_youtube_url(url: str) -> bool:
    """Check if a URL is a valid YouTube URL."""
    youtube_patterns = [
        r"^https?://(?:www\.|m\.)?youtube\.com/watch\?v=[\w-]+",
        r"^https?://(?:www\.)?youtube\.com/shorts/[\w-]+",
        r"^https?://youtu\.be/[\w-]+",
        r"^https?://(?:www\.)?youtube\.com/embed/[\w-]+",
    ]
    return any(re.match(pattern, url) for pattern in youtube_patterns)


def find_downloaded_video(output_dir: Path, filename: str) -> Path | None:
    """Locate the file yt-dlp wrote for the given output name."""
    for path in sorted(output_dir.glob(f"{filename}.*")):
        if path.suffix.lower() in VIDEO_EXTENSIONS and path.is_file():
            return path
    return None


async def download_video(
    url: str,
    output_dir: Path,
    filename: str = "video"
) -> Path:
    """
    Download a video as a single mp4 when available.

    Args:
        url: Video URL
        output_dir: Directory to save the video
        filename: Base filename without extension

    Returns:
        Path to downloaded video file

    Raises:
        YtdlpError: If yt-dlp fails or leaves no video file behind
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    output_template = str(output_dir / f"{filename}.%(ext)s")

    cmd = [
        settings.ytdlp_path,
        "-f", "best[ext=mp4]/best",
        "--no-playlist",
        "--no-check-certificate",
        "-o", output_template,
        url
    ]

    logger.info(f"Running yt-dlp command: {' '.join(cmd)}")

    returncode, stdout, stderr = await run_tool(cmd, YtdlpError)

    if returncode != 0:
        output_lines = stderr.decode("utf-8", errors="ignore").splitlines()
        logger.error("yt-dlp failed with output:\n" + "\n".join(output_lines[-20:]))
        raise YtdlpError("Download failed - check URL and try again")

    final_path = find_downloaded_video(output_dir, filename)
    if not final_path:
        logger.error(f"No video file found in {output_dir}. Contents: {list(output_dir.iterdir())}")
        raise YtdlpError("Download completed but video file not found")

    logger.info(f"Downloaded {url} to {final_path} ({final_path.stat().st_size} bytes)")
    return final_path
