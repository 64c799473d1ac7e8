"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/reelsmith.db",
        description="SQLAlchemy database URL for tasks and scenes",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3000, description="API server port")
    api_reload: bool = Field(default=False, description="Enable auto-reload for development")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )

    # Providers
    llm_provider: str = Field(
        default="dashscope",
        description="LLM provider for script generation (dashscope, stub)",
    )
    video_gen_provider: str = Field(
        default="dashscope",
        description="Scene video generation provider (dashscope, stub)",
    )

    # DashScope (Tongyi Qwen / Wanx)
    dashscope_api_key: str | None = Field(default=None, description="DashScope API key")
    dashscope_base_url: str = Field(
        default="https://dashscope.aliyuncs.com/api/v1",
        description="DashScope REST base URL",
    )
    dashscope_text_model: str = Field(
        default="qwen-max",
        description="DashScope text model used for script generation",
    )
    dashscope_video_model: str = Field(
        default="wanx-video-generation",
        description="DashScope video model used for scene clips",
    )
    dashscope_video_resolution: str = Field(default="1280x720", description="Clip resolution")
    dashscope_video_fps: int = Field(default=30, description="Clip frame rate")

    # Scene generation polling
    video_poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between status polls of a remote video job",
    )
    video_poll_max_attempts: int = Field(
        default=60,
        description="Maximum polls before a remote video job counts as timed out",
    )

    # Blob storage (S3-compatible; Aliyun OSS works through its S3 endpoint)
    blob_bucket: str | None = Field(default=None, description="Bucket for composites")
    blob_region: str | None = Field(default=None, description="Bucket region")
    blob_endpoint_url: str | None = Field(
        default=None,
        description="Custom S3 endpoint (OSS, MinIO); AWS regional endpoint if unset",
    )
    blob_access_key_id: str | None = Field(default=None, description="Access key ID")
    blob_secret_access_key: str | None = Field(default=None, description="Secret access key")
    blob_public_base_url: str | None = Field(
        default=None,
        description="Public base URL for uploaded objects (CDN or bucket domain)",
    )
    blob_signed_url_expiry_seconds: int = Field(
        default=3600,
        description="Default lifetime of signed object URLs",
    )

    # Video composition
    temp_dir: Path = Field(default=Path("./temp"), description="Per-task scratch root")
    output_dir: Path = Field(default=Path("./output"), description="Composite output directory")
    ffmpeg_path: str | None = Field(
        default=None,
        description="Path to FFmpeg binary (PATH lookup, then bundled imageio-ffmpeg)",
    )
    ffmpeg_timeout: int = Field(
        default=300,
        description="Hard timeout in seconds for each ffmpeg concatenation attempt",
    )
    ffmpeg_preset: str = Field(
        default="medium",
        description="x264 preset used by the re-encoding fallback",
    )
    ffmpeg_crf: int = Field(
        default=23,
        description="x264 CRF used by the re-encoding fallback",
    )
    ffmpeg_audio_bitrate: str = Field(
        default="128k",
        description="AAC bitrate used by the re-encoding fallback",
    )
    download_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for downloading one scene clip",
    )

    # Progress push channel
    broadcast_send_timeout: float = Field(
        default=5.0,
        description="Seconds to wait on a single observer before skipping it",
    )

    # Task listing
    task_list_default_limit: int = Field(default=20, description="Default page size")
    task_list_max_limit: int = Field(default=100, description="Maximum page size")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Convenience alias
settings = get_settings()
