"""
Source-specific content extraction.

The `full_content` payload of an article is shaped by the site it was
scraped from. Each known shape gets a ContentExtractor; the extractor for an
article is chosen by the source key it registers under, with a default for
every other source.
"""

from __future__ import annotations

from typing import Any

from .types import Article

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x180?text=No+Image"


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class ContentExtractor:
    """Default extractor for flat `full_content` payloads."""

    def paragraphs(self, article: Article) -> str:
        return _dig(article.full_content, "plainTextContent") or ""

    def text(self, article: Article) -> str:
        """Best plain text for the article, preferring processed content."""
        if article.processed_content:
            return article.processed_content
        return self.paragraphs(article)

    def image_url(self, article: Article) -> str:
        if article.processed_image_url:
            return article.processed_image_url
        return _dig(article.full_content, "mainImage") or article.image_url or PLACEHOLDER_IMAGE

    def category(self, article: Article) -> str:
        return article.category or _dig(article.full_content, "category") or ""

    def link(self, article: Article) -> str:
        for candidate in (
            article.url,
            article.link,
            _dig(article.full_content, "url"),
            _dig(article.full_content, "link"),
            _dig(article.full_content, "fullArticleLink"),
        ):
            if candidate:
                return candidate
        if article.source and article.id:
            return self.fallback_link(article)
        return "#"

    def fallback_link(self, article: Article) -> str:
        return f"https://{article.source}/{article.id}"


class AlMayadeenExtractor(ContentExtractor):
    """Extractor for almayadeen.net payloads (`fullArticle` with typed blocks)."""

    def paragraphs(self, article: Article) -> str:
        blocks = _dig(article.full_content, "fullArticle", "content")
        if not isinstance(blocks, list):
            return super().paragraphs(article)
        return " ".join(
            str(block.get("content") or "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "paragraph"
        )

    def image_url(self, article: Article) -> str:
        if article.processed_image_url:
            return article.processed_image_url
        url = _dig(article.full_content, "fullArticle", "mainImage", "url")
        if url:
            return url
        return super().image_url(article)

    def fallback_link(self, article: Article) -> str:
        return f"https://www.almayadeen.net/news/{article.id}"


DEFAULT_EXTRACTOR = ContentExtractor()

_EXTRACTORS: dict[str, ContentExtractor] = {
    "almayadeen.net": AlMayadeenExtractor(),
}


def register_extractor(source_key: str, extractor: ContentExtractor) -> None:
    """Register an extractor for sources whose name contains source_key."""
    _EXTRACTORS[source_key] = extractor


def extractor_for(source: str | None) -> ContentExtractor:
    """Pick the extractor registered under the longest key found in source."""
    if not source:
        return DEFAULT_EXTRACTOR
    matches = [key for key in _EXTRACTORS if key in source]
    if not matches:
        return DEFAULT_EXTRACTOR
    return _EXTRACTORS[max(matches, key=len)]


def summary_for(article: Article, limit: int = 300) -> str:
    return extractor_for(article.source).text(article)[:limit]


def image_for(article: Article) -> str:
    return extractor_for(article.source).image_url(article)


def category_for(article: Article) -> str:
    return extractor_for(article.source).category(article)


def link_for(article: Article) -> str:
    return extractor_for(article.source).link(article)


def searchable_text(article: Article) -> str:
    """Lower-cased, whitespace-collapsed text used for keyword matching."""
    extractor = extractor_for(article.source)
    parts = [
        article.title,
        article.source,
        _dig(article.full_content, "category"),
        extractor.paragraphs(article),
        article.processed_content,
    ]
    text = " ".join(part for part in parts if part)
    return " ".join(text.lower().split())
