"""Favorites management on top of the article repository."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging

from .core.types import Article
from .errors import DocumentStoreError
from .storage.articles import ArticleRepository

logger = logging.getLogger(__name__)


@dataclass
class FavoriteSummary:
    added: int = 0
    failed: int = 0
    already: int = 0

    @property
    def message(self) -> str:
        if self.failed:
            text = f"Added {self.added} articles to favorites. {self.failed} failed."
        else:
            text = f"Successfully added {self.added} articles to favorites!"
        if self.already:
            text += f" ({self.already} were already favorited)"
        return text


@dataclass
class RemovalSummary:
    removed: int = 0
    failed: int = 0


class FavoritesManager:
    """Flips the favorites flag for single articles or whole selections.

    Bulk additions run in batches of batch_size with a pause between
    batches. A failure on one article is counted and the run continues;
    AuthenticationRequired still propagates.
    """

    def __init__(self, repository: ArticleRepository, delay_seconds: float = 0.5, batch_size: int = 10):
        self.repository = repository
        self.delay_seconds = delay_seconds
        self.batch_size = batch_size

    async def toggle(self, article: Article) -> bool:
        """Flip the flag on article and return its new state.

        The in-memory article only changes once the store accepted the update.
        """
        target = not article.is_favorited
        updated = await self.repository.toggle_favorite(article.id, target)
        if not updated:
            logger.warning("Article %s not found in document store", article.id)
            return article.is_favorited
        article.is_favorited = target
        return target

    async def add_many(self, articles: list[Article]) -> FavoriteSummary:
        summary = FavoriteSummary(already=sum(1 for article in articles if article.is_favorited))
        pending = [article for article in articles if not article.is_favorited]
        if not pending:
            logger.info("All %d selected articles are already in favorites", summary.already)
            return summary

        for start in range(0, len(pending), self.batch_size):
            for article in pending[start : start + self.batch_size]:
                if await self._set(article, True):
                    summary.added += 1
                else:
                    summary.failed += 1
            if start + self.batch_size < len(pending) and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        logger.info(summary.message)
        return summary

    async def remove_many(self, articles: list[Article]) -> RemovalSummary:
        summary = RemovalSummary()
        for article in articles:
            if await self._set(article, False):
                summary.removed += 1
            else:
                summary.failed += 1
        logger.info("Removed %d articles from favorites (%d failed)", summary.removed, summary.failed)
        return summary

    async def list(self) -> list[Article]:
        articles = await self.repository.favorited_articles()
        for article in articles:
            article.is_favorited = True
        return articles

    async def _set(self, article: Article, value: bool) -> bool:
        try:
            updated = await self.repository.toggle_favorite(article.id, value)
        except DocumentStoreError as exc:
            logger.error("Error updating favorite for article %s: %s", article.id, exc)
            return False
        if updated:
            article.is_favorited = value
        return updated
