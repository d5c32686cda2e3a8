"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Content root: a directory of markdown files, one post per file
    content_dir: Path = Path("content/posts")
    content_extensions: list[str] = [".md", ".markdown"]

    # Dev mode: rebuild the index whenever the content root changes on disk
    reload_content: bool = False

    # Rendered HTML fragments (host-side cache)
    render_cache_ttl: float = 300
    render_cache_size: int = 100

    # Presentation
    external_links_new_tab: bool = True
    excerpt_length: int = 150

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
