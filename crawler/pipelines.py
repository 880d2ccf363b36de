"""Book and chapter crawl pipelines."""
import logging
from functools import partial
from typing import List

from crawler.errors import BookError, NetworkError
from crawler.extractor import Extractor
from crawler.fetcher import Fetcher
from crawler.pool import BoundedPool
from crawler.sites import RANGE, SiteProfile
from normalizer import TagNormalizer
from schemas import BookRecord, ChapterRecord, ChapterRef

logger = logging.getLogger(__name__)


class ChapterPipeline:
    """
    Fetch the first N chapters of one book.

    Chapters are fetched in batches of `max_workers`. A chapter that cannot
    be fetched or parsed keeps its slot with empty content and a fallback
    title, so the output always has one record per reference, in order.
    """

    def __init__(self, profile: SiteProfile, extractor: Extractor, max_workers: int):
        self.profile = profile
        self.extractor = extractor
        self.max_workers = max_workers

    async def crawl(self, fetcher: Fetcher, book_id: str, num_chapters: int) -> List[ChapterRecord]:
        """
        Crawl up to `num_chapters` chapters.

        Returns:
            min(num_chapters, available) records sorted by position
        """
        if num_chapters <= 0:
            return []

        refs = await self.discover(fetcher, book_id, num_chapters)
        if not refs:
            return []

        # Pool is per book: concurrent books each get their own ceiling
        pool = BoundedPool(self.max_workers)
        chapters = await pool.map_batched(partial(self.crawl_chapter, fetcher, book_id), refs)

        logger.info(f"Collected {len(chapters)} chapters for book {book_id}")
        return chapters

    async def discover(self, fetcher: Fetcher, book_id: str, num_chapters: int) -> List[ChapterRef]:
        """
        Build chapter references.

        Range sites get positions 1..n without a request. List sites need
        one fetch of the chapter list page; every list item is a slot in
        document order, and an item without a usable link keeps its slot
        with no URL. A failed list fetch yields no chapters.
        """
        profile = self.profile

        if profile.chapter_mode == RANGE:
            return [
                ChapterRef(
                    position=position,
                    url=profile.chapter_page_url(book_id, position),
                    content_url=profile.chapter_api_url(book_id, position),
                )
                for position in range(1, num_chapters + 1)
            ]

        list_url = profile.chapter_list_page_url(book_id)
        try:
            html = await fetcher.fetch(list_url)
        except NetworkError as e:
            logger.error(f"Chapter list unavailable for book {book_id}: {e}")
            return []

        links = self.extractor.extract_items(
            html, profile.chapter_item_locator, profile.chapter_link_rule
        )[:num_chapters]
        return [
            ChapterRef(position=position, url=link or None)
            for position, link in enumerate(links, start=1)
        ]

    async def crawl_chapter(self, fetcher: Fetcher, book_id: str, ref: ChapterRef) -> ChapterRecord:
        """
        Fetch and parse one chapter. Never raises.

        The title page and the content endpoint are fetched independently:
        losing one does not discard the other.
        """
        title = ""
        content = ""

        if ref.url is None:
            logger.warning(f"Chapter {ref.position} of book {book_id} has no usable link")
            return self._record(ref, title, content)

        page = None
        try:
            page = await fetcher.fetch(ref.url)
            title = self.extractor.extract_field(page, self.profile.chapter_title_rule)
        except Exception as e:
            logger.warning(f"Chapter {ref.position} of book {book_id} has no title: {e}")

        try:
            payload = await fetcher.fetch(ref.content_url) if ref.content_url else page
            if payload is not None:
                content = self._read_content(payload, book_id, ref.position)
        except Exception as e:
            logger.warning(f"Chapter {ref.position} of book {book_id} left empty: {e}")

        logger.debug(f"Finished chapter {ref.position} of book {book_id}")
        return self._record(ref, title, content)

    def _record(self, ref: ChapterRef, title: str, content: str) -> ChapterRecord:
        return ChapterRecord(
            index=ref.position,
            title=title or self.profile.fallback_title(ref.position),
            content=content,
            url=ref.url,
        )

    def _read_content(self, payload: str, book_id: str, position: int) -> str:
        profile = self.profile

        if profile.content_status_rule is not None:
            status = self.extractor.extract_field(payload, profile.content_status_rule)
            if status != profile.content_ok_status:
                logger.warning(
                    f"Chapter {position} of book {book_id} returned status {status or 'missing'}"
                )
                return ""

        return self.extractor.extract_field(payload, profile.chapter_content_rule)


class BookPipeline:
    """Fetch one book's metadata page, then its chapters."""

    def __init__(self, profile: SiteProfile, extractor: Extractor, chapters: ChapterPipeline):
        self.profile = profile
        self.extractor = extractor
        self.chapters = chapters

    async def crawl(self, fetcher: Fetcher, book_id: str, num_chapters: int) -> BookRecord:
        """
        Crawl one book.

        Raises:
            BookError: the metadata page could not be fetched
        """
        url = self.profile.book_page_url(book_id)
        logger.info(f"Crawling book {book_id}")

        try:
            html = await fetcher.fetch(url)
        except NetworkError as e:
            raise BookError(book_id, e) from e

        fields = self.extractor.extract(html, self.profile.book_rules)

        genres = fields.get('genres') or []
        if isinstance(genres, str):
            genres = [genres]

        book = BookRecord(
            id=book_id,
            title=fields.get('title', ''),
            author=fields.get('author', ''),
            cover_image=fields.get('cover_image', ''),
            description=fields.get('description', ''),
            genres=TagNormalizer.normalize_tags(genres),
            url=url,
        )
        book.chapters = await self.chapters.crawl(fetcher, book_id, num_chapters)

        logger.info(f"Finished book {book_id}: {book.title or '(untitled)'}, {len(book.chapters)} chapters")
        return book
