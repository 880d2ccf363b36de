"""Shared fixtures: test settings and a fake site served through httpx.MockTransport."""
from __future__ import annotations

import asyncio
import json
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from config import Settings
from crawler.fetcher import HttpFetcher


def make_settings(**overrides) -> Settings:
    values = {
        "site": "tadu",
        "transport": "http",
        "fetch_retries": 2,
        "retry_delay": 0,
        "request_timeout": 5,
        "max_book_workers": 4,
        "max_chapter_workers": 3,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeSite:
    """
    Route table keyed by URL path (query ignored).

    Unknown paths answer 404. Records every request, and the peak number
    of requests in flight at once.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, str, Optional[float]]] = {}
        self.failures: Dict[str, int] = {}
        self.calls: List[str] = []
        self.events: List[Tuple[str, str]] = []
        self.in_flight = 0
        self.peak = 0
        self.default_delay = 0.0

    def add(self, path: str, body: str = "", status: int = 200, delay: Optional[float] = None) -> None:
        self.routes[path] = (status, body, delay)

    def add_json(self, path: str, payload: dict, delay: Optional[float] = None) -> None:
        self.add(path, json.dumps(payload, ensure_ascii=False), delay=delay)

    def fail_times(self, path: str, times: int) -> None:
        """Raise a connection error for the first `times` requests to `path`."""
        self.failures[path] = times

    def count(self, path: str) -> int:
        return sum(1 for url in self.calls if httpx.URL(url).path == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(str(request.url))
        self.events.append(("start", path))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            status, body, delay = self.routes.get(path, (404, "not found", None))
            await asyncio.sleep(self.default_delay if delay is None else delay)

            if self.failures.get(path, 0) > 0:
                self.failures[path] -= 1
                raise httpx.ConnectError("connection reset", request=request)

            return httpx.Response(status, text=body)
        finally:
            self.in_flight -= 1
            self.events.append(("end", path))

    def fetcher(self, settings: Settings) -> HttpFetcher:
        return HttpFetcher(settings, transport=httpx.MockTransport(self.handler))


def tadu_catalog(book_ids: List[str]) -> str:
    links = "".join(
        f'<li><a class="bookImg" href="/book/{book_id}/"><img src="/c/{book_id}.jpg"></a></li>'
        for book_id in book_ids
    )
    return f"<html><body><ul>{links}</ul><a href='/book/999/'>ad</a></body></html>"


def tadu_book(title: str, author: str = "佚名", genres: Tuple[str, ...] = ("都市",)) -> str:
    genre_links = "".join(f"<a>{genre}</a>" for genre in genres)
    return (
        "<html><body>"
        f'<a class="bkNm" data-name="{title}">{title}</a>'
        f'<span class="author"> {author} </span>'
        '<img data-src="//img.tadu.com/cover.jpg">'
        f'<p class="intro"> 简介 <b>{title}</b> </p>'
        f'<div class="sortList">{genre_links}</div>'
        "</body></html>"
    )


def tadu_chapter_page(title: str) -> str:
    return f"<html><body><h4>书名</h4><h4>{title}</h4></body></html>"


def tadu_content(text_lines: List[str], status: int = 200) -> dict:
    html = "".join(f"<p>{line}</p>" for line in text_lines)
    return {"status": status, "data": {"content": html}}


def add_tadu_book(
    site: FakeSite,
    book_id: str,
    title: str,
    chapters: int,
    delay: Optional[float] = None,
    chapter_delay: Optional[Callable[[int], float]] = None,
) -> None:
    """Register a book page and `chapters` reachable chapters."""
    site.add(f"/book/{book_id}/", tadu_book(title), delay=delay)
    for position in range(1, chapters + 1):
        extra = chapter_delay(position) if chapter_delay else None
        site.add(f"/book/{book_id}/{position}/", tadu_chapter_page(f"第{position}章"), delay=extra)
        site.add_json(
            f"/getPartContentByCodeTable/{book_id}/{position}",
            tadu_content([f"{title} {position} 上", f"{title} {position} 下"]),
            delay=extra,
        )


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()
