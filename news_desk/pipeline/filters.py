"""Client-side article filters: source, category and keyword matching."""

from __future__ import annotations

from typing import Iterable

from ..core.content import category_for, searchable_text
from ..core.types import Article

ALL = "all"


def filter_by_source(articles: Iterable[Article], source: str) -> list[Article]:
    if source == ALL:
        return list(articles)
    return [article for article in articles if article.source == source]


def filter_by_category(articles: Iterable[Article], category: str) -> list[Article]:
    """Keep articles whose category contains the given label."""
    if category == ALL:
        return list(articles)
    return [article for article in articles if category in category_for(article)]


def filter_by_keywords(
    articles: Iterable[Article],
    keywords: list[str],
    mode: str = "OR",
) -> list[Article]:
    """Case-insensitive keyword match over title, source, category and body text.

    Args:
        articles: Articles to filter
        keywords: Keywords; blank entries are ignored
        mode: "OR" keeps articles matching any keyword, "AND" requires all

    Raises:
        ValueError: mode is neither "AND" nor "OR"
    """
    mode = mode.upper()
    if mode not in ("AND", "OR"):
        raise ValueError(f"Unsupported keyword mode: {mode}")
    needles = [keyword.lower().strip() for keyword in keywords if keyword.strip()]
    if not needles:
        return list(articles)

    match = any if mode == "OR" else all
    return [
        article
        for article in articles
        if match(needle in searchable_text(article) for needle in needles)
    ]


def available_sources(articles: Iterable[Article]) -> list[str]:
    return sorted({article.source for article in articles if article.source})


def available_categories(articles: Iterable[Article]) -> list[str]:
    return sorted({category for category in map(category_for, articles) if category})
