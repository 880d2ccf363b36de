"""Tests for text normalization helpers."""
from __future__ import annotations

import pytest

from normalizer import ContentCleaner, TagNormalizer, resolve_image_url


@pytest.fixture
def cleaner() -> ContentCleaner:
    return ContentCleaner()


class TestExtractText:

    def test_paragraphs_become_lines(self, cleaner: ContentCleaner) -> None:
        html = "<p> 第一段 </p><p></p><p>第二段<b>加粗</b></p>"
        assert cleaner.extract_text(html) == "第一段\n第二段加粗"

    def test_line_breaks_inside_a_paragraph_are_kept(self, cleaner: ContentCleaner) -> None:
        assert cleaner.extract_text("<p>first line<br>second line</p>") == "first line\nsecond line"

    def test_line_breaks_without_paragraphs(self, cleaner: ContentCleaner) -> None:
        assert cleaner.extract_text("<div>一<br/>二<br><br>三</div>") == "一\n二\n三"

    def test_carriage_returns_are_normalized(self, cleaner: ContentCleaner) -> None:
        assert cleaner.extract_text("line one\r\nline two\rline three") == "line one\nline two\nline three"

    def test_scripts_are_dropped(self, cleaner: ContentCleaner) -> None:
        html = "<div><script>var ad = 1;</script>正文</div>"
        assert cleaner.extract_text(html) == "正文"

    def test_empty_input(self, cleaner: ContentCleaner) -> None:
        assert cleaner.extract_text("") == ""
        assert cleaner.extract_text(None) == ""


class TestStripAnnotations:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("第一章 开端(上)", "第一章 开端"),
            ("第二章（求月票）重逢", "第二章重逢"),
            ("Chapter 3 (draft) (v2)", "Chapter 3"),
            ("no annotations", "no annotations"),
            ("", ""),
        ],
    )
    def test_strip(self, raw: str, expected: str) -> None:
        assert ContentCleaner.strip_annotations(raw) == expected


class TestResolveImageUrl:

    def test_scheme_relative(self) -> None:
        assert resolve_image_url("//img.tadu.com/a.jpg", "https://www.tadu.com") == "https://img.tadu.com/a.jpg"

    def test_root_relative(self) -> None:
        assert resolve_image_url("/img/a.jpg", "https://www.tadu.com/") == "https://www.tadu.com/img/a.jpg"

    def test_absolute_unchanged(self) -> None:
        assert resolve_image_url("http://cdn.example/a.jpg", "https://www.tadu.com") == "http://cdn.example/a.jpg"

    def test_relative_unchanged(self) -> None:
        assert resolve_image_url("a.jpg", "https://www.tadu.com") == "a.jpg"

    def test_missing(self) -> None:
        assert resolve_image_url(None, "https://www.tadu.com") == ""


def test_normalize_tags_keeps_first_seen_order() -> None:
    assert TagNormalizer.normalize_tags([" 都市 ", "言情", "", "都市", None, "玄幻"]) == ["都市", "言情", "玄幻"]
    assert TagNormalizer.normalize_tags(None) == []
