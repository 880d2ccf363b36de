"""Catalog page crawling: discover books, then crawl them under a bounded pool."""
import logging
from typing import List, Optional

from config import Settings
from crawler.errors import CatalogEmptyError, DiscoveryError, NetworkError
from crawler.extractor import Extractor
from crawler.fetcher import Fetcher, build_fetcher
from crawler.pipelines import BookPipeline, ChapterPipeline
from crawler.pool import BoundedPool
from crawler.sites import SiteProfile, SiteRegistry
from schemas import BookRecord

logger = logging.getLogger(__name__)


class CatalogCrawler:
    """
    Crawl every book listed on one catalog page.

    Books run in parallel under `max_book_workers`; each book runs its
    chapters under its own `max_chapter_workers` batches, so the request
    peak is max_book_workers x max_chapter_workers.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Fetcher,
        profile: Optional[SiteProfile] = None,
        extractor: Optional[Extractor] = None,
    ):
        self.fetcher = fetcher
        self.profile = profile or SiteRegistry.get_profile(settings.site, settings.base_url)
        self.extractor = extractor or Extractor()
        self.max_book_workers = settings.max_book_workers

        self.chapters = ChapterPipeline(self.profile, self.extractor, settings.max_chapter_workers)
        self.books = BookPipeline(self.profile, self.extractor, self.chapters)

    async def discover_books(self, page: int) -> List[str]:
        """
        Read the book ids listed on a catalog page.

        Returns:
            Unique ids sorted as strings ('10' < '7')

        Raises:
            DiscoveryError: the listing could not be fetched
        """
        url = self.profile.catalog_page_url(page)
        logger.info(f"Fetching book list for catalog page {page}: {url}")

        try:
            html = await self.fetcher.fetch(url)
        except NetworkError as e:
            raise DiscoveryError(page, f"Could not fetch catalog page {page}: {e}") from e

        found = self.extractor.extract_field(html, self.profile.book_id_rule)
        book_ids = sorted(set(found))

        logger.info(f"Found {len(book_ids)} books on catalog page {page}")
        return book_ids

    async def crawl_page(self, page: int, num_chapters: int) -> List[BookRecord]:
        """
        Crawl a catalog page.

        Books that fail are logged and left out; the page fails only when
        discovery does.

        Raises:
            CatalogEmptyError: the page lists no books
            DiscoveryError: the listing could not be fetched
        """
        book_ids = await self.discover_books(page)
        if not book_ids:
            raise CatalogEmptyError(page)

        pool = BoundedPool(self.max_book_workers)
        outcomes = await pool.map_settled(
            lambda book_id: self.crawl_book(book_id, num_chapters),
            book_ids,
        )

        results = []
        for book_id, outcome in zip(book_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Dropping book {book_id}: {outcome}")
                continue
            results.append(outcome)

        logger.info(
            f"Catalog page {page} done: {len(results)}/{len(book_ids)} books crawled"
        )
        return results

    async def crawl_book(self, book_id: str, num_chapters: int) -> BookRecord:
        """Crawl one book inside its own fetcher session."""
        async with self.fetcher.session() as fetcher:
            return await self.books.crawl(fetcher, book_id, num_chapters)


async def crawl_catalog(settings: Settings, page: int, num_chapters: int, **fetcher_kwargs) -> List[BookRecord]:
    """Build a fetcher from `settings`, crawl one page, and close the fetcher."""
    async with build_fetcher(settings, **fetcher_kwargs) as fetcher:
        crawler = CatalogCrawler(settings, fetcher)
        return await crawler.crawl_page(page, num_chapters)
