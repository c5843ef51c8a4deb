"""
Allocation Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOCATION_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = ALLOCATION_SERVICE_DIR / ".env"


class AllocationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Allocation Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "allocation-service"

    # Database
    ALLOCATION_DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Blob storage for variant images ("imagekit" or "local")
    BLOB_PROVIDER: str = "imagekit"
    IMAGEKIT_PUBLIC_KEY: str = ""
    IMAGEKIT_PRIVATE_KEY: str = ""
    IMAGEKIT_URL_ENDPOINT: str = ""
    MEDIA_ROOT: str = "media"
    MEDIA_BASE_URL: str = "http://localhost:8000/media"
    VARIANT_IMAGE_BUCKET: str = "variant-products"

    # Variant allocation
    PLACEHOLDER_VARIANT_NAME: str = "غير محدد"
    DEFAULT_COLOR_HEX: str = "#6B7280"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]


_settings_instance = None


def get_settings() -> AllocationSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = AllocationSettings()
    return _settings_instance
