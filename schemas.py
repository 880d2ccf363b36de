"""Pydantic schemas for crawl results and API responses."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class ChapterRef(BaseModel):
    """Reference to one chapter, produced by range enumeration or list discovery."""
    position: int = Field(..., ge=1, description="1-based chapter position")
    url: Optional[str] = None  # None when the listed item had no usable link
    content_url: Optional[str] = None  # separate content endpoint, if the site has one

    model_config = ConfigDict(frozen=True)


class ChapterRecord(BaseModel):
    """A crawled chapter. Failed fetches keep their slot with empty content."""
    index: int
    title: str
    content: str = ""
    url: Optional[str] = None


class BookRecord(BaseModel):
    """A crawled book with metadata and its first chapters."""
    id: str
    title: str = ""
    author: str = ""
    cover_image: str = ""
    description: str = ""
    genres: List[str] = []
    url: str
    chapters: List[ChapterRecord] = []


class CrawlResponse(BaseModel):
    """Successful /crawl response."""
    results: List[BookRecord]


class ErrorResponse(BaseModel):
    """Error body for /crawl failures."""
    error: str
