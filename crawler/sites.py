"""Site profiles: URL layout and field rules for each supported catalog."""
import logging
from functools import partial
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from crawler.extractor import FieldRule
from normalizer import ContentCleaner, resolve_image_url

logger = logging.getLogger(__name__)

cleaner = ContentCleaner()

RANGE = "range"  # chapters 1..n are assumed to exist
LIST = "list"    # chapters are read from a list page


def _has_class(tag: str, css_class: str) -> str:
    """XPath step matching `tag` elements carrying `css_class`."""
    return f"{tag}[contains(concat(' ', normalize-space(@class), ' '), ' {css_class} ')]"


def _join_origin(path: str, origin: str) -> str:
    """Make an escaped root-relative link ('\\/xs\\/1.html') absolute."""
    return origin.rstrip('/') + path.replace('\\', '')


class SiteProfile(BaseModel):
    """
    Everything site-specific about a crawl.

    URL templates may use {origin}, {page}, {book_id} and {position}.
    """
    name: str
    origin: str

    catalog_url: str
    book_id_rule: FieldRule

    book_url: str
    book_rules: Dict[str, FieldRule]

    chapter_mode: str = RANGE
    chapter_url: Optional[str] = None          # range mode
    chapter_content_url: Optional[str] = None  # separate content endpoint
    chapter_list_url: Optional[str] = None     # list mode
    chapter_item_locator: Optional[str] = None  # one node per chapter slot
    chapter_link_rule: Optional[FieldRule] = None  # applied inside each item

    chapter_title_rule: FieldRule
    chapter_content_rule: FieldRule
    content_status_rule: Optional[FieldRule] = None
    content_ok_status: Optional[str] = None
    chapter_title_template: str = "Chapter {position}"

    model_config = ConfigDict(frozen=True)

    def catalog_page_url(self, page: int) -> str:
        return self.catalog_url.format(origin=self.origin, page=page)

    def book_page_url(self, book_id: str) -> str:
        return self.book_url.format(origin=self.origin, book_id=book_id)

    def chapter_list_page_url(self, book_id: str) -> str:
        return self.chapter_list_url.format(origin=self.origin, book_id=book_id)

    def chapter_page_url(self, book_id: str, position: int) -> str:
        return self.chapter_url.format(origin=self.origin, book_id=book_id, position=position)

    def chapter_api_url(self, book_id: str, position: int) -> Optional[str]:
        if not self.chapter_content_url:
            return None
        return self.chapter_content_url.format(origin=self.origin, book_id=book_id, position=position)

    def fallback_title(self, position: int) -> str:
        return self.chapter_title_template.format(position=position)


def tadu_profile(origin: str = "https://www.tadu.com") -> SiteProfile:
    """Tadu: store listing, HTML book pages, chapter text from a JSON API."""
    return SiteProfile(
        name="tadu",
        origin=origin,
        catalog_url="{origin}/store/98-a-0-15-a-20-p-{page}-909",
        book_id_rule=FieldRule(
            locators=("a.bookImg::attr(href)",),
            pattern=r"/book/(\d+)/",
            many=True,
        ),
        book_url="{origin}/book/{book_id}/",
        book_rules={
            "title": FieldRule(locators=("a.bkNm::attr(data-name)",)),
            "author": FieldRule(locators=("span.author::text",)),
            "cover_image": FieldRule(
                locators=(
                    "img::attr(data-src)",
                    "img::attr(src)",
                    'meta[property="og:image"]::attr(content)',
                ),
                transforms=(partial(resolve_image_url, origin=origin),),
            ),
            "description": FieldRule(
                locators=(f"xpath:string((//{_has_class('p', 'intro')})[1])",),
            ),
            "genres": FieldRule(locators=("div.sortList a::text",), many=True),
        },
        chapter_mode=RANGE,
        chapter_url="{origin}/book/{book_id}/{position}/?isfirstpart=true",
        chapter_content_url="{origin}/getPartContentByCodeTable/{book_id}/{position}",
        chapter_title_rule=FieldRule(
            locators=("xpath:string((//h4)[2])", "xpath:string((//h4)[1])"),
        ),
        chapter_content_rule=FieldRule(
            locators=("json:data.content",),
            transforms=(cleaner.extract_text,),
        ),
        content_status_rule=FieldRule(locators=("json:status",)),
        content_ok_status="200",
    )


def writerworking_profile(origin: str = "https://www.writerworking.net") -> SiteProfile:
    """Writerworking: chapter list page with onclick links, rendered chapter pages."""
    return SiteProfile(
        name="writerworking",
        origin=origin,
        catalog_url="{origin}/ben/all/{page}/",
        book_id_rule=FieldRule(
            locators=(
                "xpath://dl[not(ancestor::div[contains(@class, 'right') "
                "and contains(@class, 'hidden-xs')])]/dt/a/@href",
            ),
            pattern=r"/kanshu/(\d+)/",
            many=True,
        ),
        book_url="{origin}/kanshu/{book_id}/",
        book_rules={
            "title": FieldRule(
                locators=(
                    "xpath:string((//h1)[1])",
                    'meta[property="og:title"]::attr(content)',
                    "title::text",
                ),
            ),
            "author": FieldRule(
                locators=(
                    "xpath://p[b[normalize-space()='作者：']]/a/text()",
                    'meta[property="og:novel:author"]::attr(content)',
                ),
            ),
            "cover_image": FieldRule(
                locators=(
                    "a.cover img::attr(data-src)",
                    "a.cover img::attr(src)",
                    'meta[property="og:image"]::attr(content)',
                ),
                transforms=(partial(resolve_image_url, origin=origin),),
            ),
            "description": FieldRule(
                locators=(
                    'meta[property="og:description"]::attr(content)',
                    'meta[name="description"]::attr(content)',
                ),
            ),
            "genres": FieldRule(
                locators=(f"xpath:string((//{_has_class('ol', 'container')}/li)[2])",),
                many=True,
            ),
        },
        chapter_mode=LIST,
        chapter_list_url="{origin}/xs/{book_id}/1/",
        chapter_item_locator="div.all ul li",
        chapter_link_rule=FieldRule(
            locators=("a::attr(onclick)",),
            pattern=r"location\.href='(.*?)'",
            transforms=(partial(_join_origin, origin=origin),),
        ),
        chapter_title_rule=FieldRule(
            locators=("xpath:string((//h1)[1])", "title::text"),
            transforms=(ContentCleaner.strip_annotations,),
        ),
        chapter_content_rule=FieldRule(
            locators=("#booktxthtml p",),
            transforms=(cleaner.extract_text,),
            many=True,
            joiner="\n",
        ),
    )


class SiteRegistry:
    """
    Registry mapping site names to profile factories.

    Used to select the site profile named in the settings.
    """

    SITE_PROFILE_MAP = {
        'tadu': tadu_profile,
        'writerworking': writerworking_profile,
        # Add more site -> profile factories here
    }

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls.SITE_PROFILE_MAP)

    @classmethod
    def get_profile(cls, name: str, origin: Optional[str] = None) -> SiteProfile:
        """
        Build the profile for a site.

        Args:
            name: Registered site name
            origin: Optional origin override (e.g. a mirror)

        Raises:
            ValueError: no profile registered under `name`
        """
        factory = cls.SITE_PROFILE_MAP.get(name.lower())

        if factory is None:
            logger.warning(f"No site profile registered for: {name}")
            raise ValueError(f"Unknown site: {name}")

        if origin:
            return factory(origin.rstrip('/'))
        return factory()
