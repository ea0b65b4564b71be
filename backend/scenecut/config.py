"""Application configuration."""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )

    # App settings
    app_name: str = "SceneCut"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 3001

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/scenecut.db"

    # Data directories (served under /data)
    data_dir: Path = Path("./data")
    analysis_dir: Path = Path("./data/analysis")

    # Scene detection
    scene_threshold: float = 0.3  # FFmpeg scene change threshold (0-1)
    max_boundaries: int = 51  # Hard ceiling: at most 50 scenes per job
    min_scene_seconds: float = 0.1  # Boundary pairs this short or shorter are dropped

    # Manual timeline edits carry no frame count
    placeholder_frame_count: int = 1

    # External tools
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ytdlp_path: str = "yt-dlp"
    tool_timeout_seconds: float = 1800.0

    # Physical split
    split_concurrency: int = 4

    # Job listing
    jobs_page_size: int = 20

    # Frontend
    frontend_url: str = "http://localhost:3000"


settings = Settings()

# Ensure directories exist
settings.data_dir.mkdir(parents=True, exist_ok=True)
settings.analysis_dir.mkdir(parents=True, exist_ok=True)
