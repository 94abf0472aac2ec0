"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Blog scope: <content_root>/posts.json, <content_root>/assets/...
    content_root: Path = Path("site/blog")
    blog_base_url: str = "/blog"

    # Project scope: <projects_root>/projects.json, <projects_root>/posts.json
    projects_root: Path = Path("site/projects")
    projects_base_url: str = "/projects"

    default_location: str = "Hosh Issa, Beheira, Egypt"

    # Admin key (protects every mutating endpoint)
    admin_api_key: str = ""

    # Per-file upload cap in bytes (0 = unlimited)
    max_upload_bytes: int = 10 * 1024 * 1024

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
