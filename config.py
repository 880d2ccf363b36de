"""Application configuration."""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Crawler settings.

    Built once at startup and handed to each component; the object is frozen
    so pipeline code cannot mutate it mid-run.
    """

    # Site / transport
    site: str = "tadu"
    transport: str = "http"  # 'http' or 'browser'
    base_url: Optional[str] = None  # overrides the site profile origin
    user_agent: str = "Mozilla/5.0 (compatible; TaduHybrid/1.0)"

    # Fetching
    request_timeout: float = 15.0
    fetch_retries: int = 2
    retry_delay: float = 0.1

    # Concurrency
    max_book_workers: int = 15
    max_chapter_workers: int = 10
    default_num_chapters: int = 5

    # Browser
    browser_headless: bool = True
    block_resources: bool = True

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        frozen = True


settings = Settings()
