"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # App
    app_name: str = "Encrypted VOD Pipeline"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    base_url: str = "http://localhost:5000"

    # Database
    database_url: str = "sqlite:///./vod_pipeline.db"

    # Local storage roots
    keys_root_dir: str = "./data/keys"
    staging_dir: str = "./data/staging"
    public_videos_dir: str = "./data/public/videos"
    work_dir: str = "./data/work"

    # Object storage (Cloudflare R2 or any S3-compatible service)
    r2_account_id: Optional[str] = None
    r2_endpoint_url: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_bucket_name: str = "encrypted-videos"
    r2_public_url: Optional[str] = None

    # Playback
    key_uri_path: str = "/v1/video/get-key"
    stream_path: str = "/v1/video"
    local_videos_path: str = "/videos"
    default_permission_seconds: int = 3600
    signed_link_ttl: int = 3600

    # ffmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ffmpeg_preset: str = "slow"
    hls_time: int = 6
    h264_default_crf: int = 28
    h265_default_crf: int = 26
    audio_bitrate: str = "96k"
    audio_sample_rate: int = 48000
    audio_channels: int = 2

    # Worker
    worker_poll_interval: float = 5.0

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # API
    cors_origins: list = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def r2_endpoint(self) -> Optional[str]:
        """Explicit endpoint, or the R2 endpoint derived from the account id"""
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None

    @property
    def r2_configured(self) -> bool:
        """Object storage is used only when an endpoint and both credentials are set"""
        return bool(self.r2_endpoint and self.r2_access_key_id and self.r2_secret_access_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
