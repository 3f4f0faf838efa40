from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def choose_env_file() -> str:
    return ".env.local" if Path(".env.local").exists() else ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=choose_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # tolerate unrelated env vars
    )

    # Storage
    BLOGS_PATH: Path = Path("wwwroot/blogs")
    BLOGS_URL_PREFIX: str = "/blogs"
    POST_FORMAT: str = "md"  # "md" or "json"

    # Blog
    DEFAULT_BLOG_TITLE: str = "{username} 블로그"

    # Images
    TEMP_IMAGE_RETENTION_HOURS: int = 24
    MAX_IMAGE_UPLOAD_BYTES: int = 10 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS: List[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]

    # Import
    IMPORT_HTTP_TIMEOUT: float = 30.0

    # HTTP
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def post_extension(self) -> str:
        return ".json" if self.POST_FORMAT.lower() == "json" else ".md"


# Global settings instance (evaluated at import, but reads env on construction)
settings = Settings()


def get_settings() -> Settings:
    """Small wrapper to allow dependency overrides in tests."""
    return settings
