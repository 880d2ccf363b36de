"""FastAPI application - main entry point."""
from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from typing import AsyncIterator, Optional
import logging

from config import Settings, settings
from crawler.catalog import CatalogCrawler
from crawler.errors import CatalogEmptyError, DiscoveryError
from crawler.fetcher import build_fetcher
from schemas import CrawlResponse, ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Catalog Crawler API",
    description="Crawl a catalog page: book metadata plus the first chapters of each book",
    version="1.0.0",
)


def get_settings() -> Settings:
    """Application settings, overridable in tests."""
    return settings


async def get_crawler(
    app_settings: Settings = Depends(get_settings),
) -> AsyncIterator[CatalogCrawler]:
    """One fetcher per request; closed (browser included) after the response."""
    async with build_fetcher(app_settings) as fetcher:
        yield CatalogCrawler(app_settings, fetcher)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    """Keep the {error} body shape for failures outside the crawl itself."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return error_response(500, str(exc))


# ============================================================================
# Crawl Endpoints
# ============================================================================

@app.get(
    "/crawl",
    response_model=CrawlResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Crawl"],
)
async def crawl(
    page: int = Query(1, ge=1),
    num_chapters: Optional[int] = Query(None, ge=0),
    crawler: CatalogCrawler = Depends(get_crawler),
    app_settings: Settings = Depends(get_settings),
):
    """
    Crawl one catalog page.

    Returns every book that could be crawled, each with up to
    `num_chapters` chapters (the configured default when omitted).
    Books that fail are left out; 404 means the page lists no books,
    500 means the listing itself was unreachable.
    """
    if num_chapters is None:
        num_chapters = app_settings.default_num_chapters
    logger.info(f"Crawl requested: page={page}, num_chapters={num_chapters}")

    try:
        books = await crawler.crawl_page(page, num_chapters)
    except CatalogEmptyError as e:
        logger.warning(str(e))
        return error_response(404, str(e))
    except DiscoveryError as e:
        logger.error(f"Discovery failed: {e}")
        return error_response(500, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error crawling page {page}")
        return error_response(500, str(e))

    return CrawlResponse(results=books)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/", response_class=PlainTextResponse, tags=["System"])
async def root():
    """Liveness text."""
    return "API is working. Use /crawl?page=1&num_chapters=5"


@app.get("/health", tags=["System"])
async def health_check(app_settings: Settings = Depends(get_settings)):
    """Health check endpoint."""
    return {"status": "healthy", "service": "catalog-crawler", "site": app_settings.site}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
