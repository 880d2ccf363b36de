"""Tests for site profiles, the registry and settings."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import Settings
from conftest import make_settings
from crawler.extractor import Extractor
from crawler.sites import LIST, RANGE, SiteRegistry, tadu_profile, writerworking_profile


def test_registry_lists_builtin_sites() -> None:
    assert SiteRegistry.names() == ["tadu", "writerworking"]


def test_unknown_site_raises() -> None:
    with pytest.raises(ValueError):
        SiteRegistry.get_profile("nowhere")


def test_lookup_is_case_insensitive() -> None:
    assert SiteRegistry.get_profile("TADU").name == "tadu"


def test_tadu_urls() -> None:
    profile = tadu_profile()

    assert profile.chapter_mode == RANGE
    assert profile.catalog_page_url(3) == "https://www.tadu.com/store/98-a-0-15-a-20-p-3-909"
    assert profile.book_page_url("77") == "https://www.tadu.com/book/77/"
    assert profile.chapter_page_url("77", 2) == "https://www.tadu.com/book/77/2/?isfirstpart=true"
    assert profile.chapter_api_url("77", 2) == "https://www.tadu.com/getPartContentByCodeTable/77/2"
    assert profile.fallback_title(4) == "Chapter 4"


def test_writerworking_urls() -> None:
    profile = writerworking_profile()

    assert profile.chapter_mode == LIST
    assert profile.catalog_page_url(1) == "https://www.writerworking.net/ben/all/1/"
    assert profile.chapter_list_page_url("8") == "https://www.writerworking.net/xs/8/1/"
    assert profile.chapter_api_url("8", 1) is None


def test_writerworking_listing_skips_sidebar() -> None:
    html = """
    <html><body>
      <dl><dt><a href="/kanshu/300/">A</a></dt></dl>
      <dl><dt><a href="/kanshu/120/">B</a></dt></dl>
      <div class="right hidden-xs">
        <dl><dt><a href="/kanshu/999/">Sidebar</a></dt></dl>
      </div>
    </body></html>
    """
    ids = Extractor().extract_field(html, writerworking_profile().book_id_rule)

    assert ids == ["300", "120"]


def test_writerworking_book_metadata() -> None:
    html = """
    <html><head>
      <meta property="og:description" content=" 一段简介 ">
    </head><body>
      <ol class="container"><li>首页</li><li>玄幻</li></ol>
      <h1>星河</h1>
      <a class="cover"><img data-src="/cover/8.jpg"></a>
      <p><b>作者：</b><a href="/a/1">某甲</a></p>
    </body></html>
    """
    fields = Extractor().extract(html, writerworking_profile().book_rules)

    assert fields == {
        "title": "星河",
        "author": "某甲",
        "cover_image": "https://www.writerworking.net/cover/8.jpg",
        "description": "一段简介",
        "genres": ["玄幻"],
    }


def test_settings_are_frozen() -> None:
    settings = make_settings()

    with pytest.raises(ValidationError):
        settings.max_book_workers = 99


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_CHAPTER_WORKERS", "20")
    monkeypatch.setenv("SITE", "writerworking")

    settings = Settings(_env_file=None, max_book_workers=24)

    assert settings.max_chapter_workers == 20
    assert settings.site == "writerworking"
    assert settings.max_book_workers == 24
    assert settings.fetch_retries == 2


def test_settings_cover_only_crawler_and_server_options() -> None:
    assert set(Settings.model_fields) == {
        "site", "transport", "base_url", "user_agent",
        "request_timeout", "fetch_retries", "retry_delay",
        "max_book_workers", "max_chapter_workers", "default_num_chapters",
        "browser_headless", "block_resources",
        "api_host", "api_port", "api_reload",
        "log_level",
    }
