"""
Article deduplication by stable identifier.

Articles are identified solely by their `id`. The first occurrence of an id
wins; later occurrences are dropped without merging fields. Articles with a
missing or empty id are always dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .types import Article

logger = logging.getLogger(__name__)


def dedupe(articles: Iterable[Article]) -> list[Article]:
    """Remove duplicate articles, preserving first-seen order.

    Args:
        articles: Articles from any source, in any order

    Returns:
        New list holding the first article seen for each id
    """
    seen: set[str] = set()
    kept: list[Article] = []

    for article in articles:
        if not article.id:
            logger.debug("Dropping article without id: %s", (article.title or "")[:50])
            continue
        if article.id in seen:
            logger.debug("Dropping duplicate article %s", article.id)
            continue
        seen.add(article.id)
        kept.append(article)

    return kept


def ids_of(articles: Iterable[Article]) -> set[str]:
    """Return the set of non-empty ids in a collection."""
    return {article.id for article in articles if article.id}
