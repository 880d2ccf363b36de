"""Content normalization and cleaning utilities."""
import re
from bs4 import BeautifulSoup
from typing import Iterable, Optional
import logging

logger = logging.getLogger(__name__)


class ContentCleaner:
    """
    Turn scraped chapter markup into reader-friendly plain text.

    Used as post-process transforms by the field extractor, so every method
    accepts a string and returns a string and never raises on odd input.
    """

    # Bracketed annotations in titles, ASCII and full-width
    ANNOTATION_PATTERN = re.compile(r'[(（].*?[)）]')

    # Tags whose content never belongs in chapter text
    JUNK_TAGS = ['script', 'style', 'iframe', 'noscript']

    def extract_text(self, html: str) -> str:
        """
        Extract plain text from HTML.

        Paragraphs and <br> breaks become lines; without paragraphs the
        text nodes are split on block boundaries. Line endings are
        normalized to '\\n' and blank lines dropped.

        Args:
            html: HTML string (a fragment is fine)

        Returns:
            Plain text
        """
        if not html:
            return ""

        soup = BeautifulSoup(html, 'lxml')

        for tag in soup(self.JUNK_TAGS):
            tag.decompose()

        for br in soup.find_all('br'):
            br.replace_with('\n')

        paragraphs = soup.find_all('p')
        if paragraphs:
            lines = []
            for p in paragraphs:
                lines.extend(self.normalize_newlines(p.get_text()).split('\n'))
        else:
            lines = soup.get_text(separator='\n').split('\n')

        return self.join_lines(lines)

    def join_lines(self, lines: Iterable[str]) -> str:
        """Strip each line, drop empty ones and join with '\\n'."""
        cleaned = []
        for line in lines:
            line = self.normalize_newlines(line or '').strip()
            if line:
                cleaned.append(line)
        return '\n'.join(cleaned)

    @staticmethod
    def normalize_newlines(text: str) -> str:
        """Convert CRLF / CR line endings to LF."""
        return text.replace('\r\n', '\n').replace('\r', '\n')

    @classmethod
    def strip_annotations(cls, text: str) -> str:
        """Remove '(...)' and '（...）' annotations, e.g. '第一章 (上)' -> '第一章'."""
        if not text:
            return ""
        return cls.ANNOTATION_PATTERN.sub('', text).strip()


def resolve_image_url(url: Optional[str], origin: str) -> str:
    """
    Resolve a cover image reference against the site origin.

    '//cdn/x.jpg' -> 'https://cdn/x.jpg', '/x.jpg' -> origin + '/x.jpg',
    anything else is returned unchanged.
    """
    if not url:
        return ""
    url = url.strip()
    if url.startswith('//'):
        return 'https:' + url
    if url.startswith('/'):
        return origin.rstrip('/') + url
    return url


class TagNormalizer:
    """Normalize tag / genre strings scraped from book pages."""

    @classmethod
    def normalize_tags(cls, raw_tags: Optional[Iterable[str]]) -> list[str]:
        """
        Trim tags and drop empties and duplicates.

        Unlike slug-style genre normalization the original spelling is kept,
        and the first-seen order is preserved.
        """
        if not raw_tags:
            return []

        seen = set()
        tags = []
        for tag in raw_tags:
            tag = (tag or '').strip()
            if tag and tag not in seen:
                seen.add(tag)
                tags.append(tag)
        return tags
