"""Crawler exception types."""


class CrawlerError(Exception):
    """Base class for crawler failures."""


class NetworkError(CrawlerError):
    """A fetch failed on every allowed attempt."""

    def __init__(self, url: str, attempts: int, cause: Exception = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        message = f"Could not fetch {url} after {attempts} attempt(s)"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class DiscoveryError(CrawlerError):
    """The catalog listing for a page could not be read. Fatal for the request."""

    def __init__(self, page: int, message: str):
        self.page = page
        super().__init__(message)


class CatalogEmptyError(DiscoveryError):
    """The catalog listing was read but contained no books."""

    def __init__(self, page: int):
        super().__init__(page, f"No books found on catalog page {page}")


class BookError(CrawlerError):
    """A single book could not be crawled. Fatal for that book only."""

    def __init__(self, book_id: str, cause: Exception = None):
        self.book_id = book_id
        self.cause = cause
        super().__init__(f"Failed to crawl book {book_id}: {cause}")
