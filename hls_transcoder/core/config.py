"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "HLS Transcoder"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "production"

    # Google Cloud Pub/Sub (completion notifications)
    PROJECT_ID: str = ""
    PUBSUB_TOPIC: str = ""
    PUBLISH_TIMEOUT_SECONDS: float = 30.0

    # Base64-encoded service account JSON for Pub/Sub - REQUIRED at runtime
    GCP_SERVICE_KEY: str = ""

    # Public base URL the HLS tree is served from (CDN distribution)
    CLOUDFRONT_URL: str = ""

    # Encoder
    FFMPEG_PATH: str = "/opt/bin/ffmpeg"

    # Local working set (input file and output directory live here)
    WORK_DIR: str = "/tmp"

    # Storage Configuration
    # STORAGE_BACKEND: s3, local
    STORAGE_BACKEND: str = "s3"

    # Local Storage (when STORAGE_BACKEND=local)
    LOCAL_STORAGE_PATH: str = "./storage"

    # S3/MinIO/Compatible Storage (when STORAGE_BACKEND=s3)
    STORAGE_REGION: str = ""
    STORAGE_ACCESS_KEY: str = ""
    STORAGE_SECRET_KEY: str = ""
    STORAGE_ENDPOINT_URL: Optional[str] = None  # Required for MinIO
    STORAGE_USE_SSL: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Tracing
    TRACING_ENABLED: bool = False
    OTLP_ENDPOINT: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
