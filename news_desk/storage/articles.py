"""
Article persistence on the remote document store.

Two collections are managed here:
- news_articles: canonical articles with the isFavorited flag
- saved_news: the older saved-list feature with the isSaved flag

The two flags serve overlapping purposes but are kept as separate
capabilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Callable, Iterable

from ..auth import Identity, IdentityProvider
from ..core.content import category_for, image_for, link_for, summary_for
from ..core.dedup import dedupe
from ..core.types import Article
from ..errors import AuthenticationRequired, DocumentStoreError
from ..utils.timeutil import to_iso, utc_now
from .circuit import CircuitBreaker
from .documents import Document, DocumentStore

logger = logging.getLogger(__name__)

ARTICLES_COLLECTION = "news_articles"
SAVED_COLLECTION = "saved_news"


@dataclass
class SaveSummary:
    newly_saved: int
    already_saved: int
    total: int


@dataclass
class UnsaveSummary:
    unsaved: int
    not_saved: int
    total: int


def _article_from_document(doc: Document) -> Article:
    article = Article.from_dict(doc.data)
    article.doc_id = doc.id
    return article


def _chunks(items: list[Article], size: int) -> Iterable[list[Article]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ArticleRepository:
    """Reads and writes articles owned by the current identity.

    Reads never raise: a missing identity, an open circuit breaker or a store
    failure all yield an empty result (None from stored_articles). Writes
    require an identity and propagate store failures.

    Attributes:
        store: Backing document store
        identity: Source of the current identity
        breaker: Suppresses reads for a cooldown window after a failure
        batch_size: Articles per atomic batch write
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        breaker: CircuitBreaker | None = None,
        batch_size: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.identity = identity
        self.breaker = breaker or CircuitBreaker()
        self.batch_size = batch_size
        self.clock = clock

    async def fetch_articles(self) -> list[Article]:
        """Return the identity's articles, newest discovery first."""
        articles = await self.stored_articles()
        return articles if articles is not None else []

    async def stored_articles(self) -> list[Article] | None:
        """Like fetch_articles, but None when the store could not be read.

        An empty list means the store answered and holds nothing for the
        identity; None means it failed or the circuit breaker is open.
        """
        user = await self.identity.current_user()
        if user is None:
            logger.info("Not authenticated; treating document store as empty")
            return []
        docs = await self._guarded_query(
            ARTICLES_COLLECTION,
            {"userId": user.uid},
            order_by="createdAt",
            descending=True,
        )
        if docs is None:
            return None
        articles = [_article_from_document(doc) for doc in docs]
        logger.debug("Fetched %d articles from document store", len(articles))
        return articles

    async def save_new_articles(self, articles: list[Article]) -> int:
        """Persist articles the store does not hold yet.

        Articles are written in batches of batch_size. Before each commit the
        store is read again and ids already present are dropped, so a
        concurrent writer that got there first does not produce a duplicate.
        Every article in one batch shares a single createdAt value.

        The re-read bypasses the circuit breaker: when the store cannot be
        read nothing more is written.

        Returns:
            Number of articles committed

        Raises:
            AuthenticationRequired: No identity is signed in
            DocumentStoreError: A read or batch failed; earlier batches stay committed
        """
        user = await self._require_user("save articles")
        pending = dedupe(articles)
        saved = 0

        for index, batch in enumerate(_chunks(pending, self.batch_size), start=1):
            current = await self.store.query(ARTICLES_COLLECTION, {"userId": user.uid})
            existing = {doc.data.get("id") for doc in current}
            fresh = [article for article in batch if article.id not in existing]
            blocked = len(batch) - len(fresh)
            if blocked:
                logger.info("Blocked %d duplicate save attempts in batch %d", blocked, index)
            if not fresh:
                continue

            now = to_iso(self.clock())
            docs = [self._article_document(article, user, now) for article in fresh]
            doc_ids = await self.store.batch_write(ARTICLES_COLLECTION, docs)
            for article, doc_id, doc in zip(fresh, doc_ids, docs):
                article.doc_id = doc_id
                article.user_id = user.uid
                article.created_at = doc["createdAt"]
                article.updated_at = doc["updatedAt"]
            saved += len(fresh)
            logger.info("Saved batch %d: %d articles", index, len(fresh))

        return saved

    async def toggle_favorite(self, article_id: str, is_favorited: bool) -> bool:
        """Set the favorites flag on an article.

        Returns:
            True if a document was updated, False if the article is unknown
        """
        user = await self._require_user("change favorites")
        docs = await self.store.query(ARTICLES_COLLECTION, {"id": article_id, "userId": user.uid})
        if not docs:
            return False
        await self.store.update(
            ARTICLES_COLLECTION,
            docs[0].id,
            {"isFavorited": is_favorited, "updatedAt": to_iso(self.clock())},
        )
        logger.info("Article %s %s", article_id, "favorited" if is_favorited else "unfavorited")
        return True

    async def favorited_articles(self) -> list[Article]:
        """Return favorited articles, most recently changed first."""
        user = await self.identity.current_user()
        if user is None:
            return []
        docs = await self.store.query(
            ARTICLES_COLLECTION,
            {"isFavorited": True, "userId": user.uid},
            order_by="updatedAt",
            descending=True,
        )
        return [_article_from_document(doc) for doc in docs]

    async def saved_map(self) -> dict[str, Article]:
        """Return the legacy saved list keyed by article id."""
        user = await self.identity.current_user()
        if user is None:
            return {}
        docs = await self._guarded_query(SAVED_COLLECTION, {"userId": user.uid})
        saved: dict[str, Article] = {}
        for doc in docs or []:
            article = _article_from_document(doc)
            if article.id:
                saved[article.id] = article
        return saved

    async def annotate_saved(self, articles: list[Article]) -> list[Article]:
        """Set is_saved on articles that appear in the legacy saved list."""
        saved = await self.saved_map()
        for article in articles:
            if article.id in saved:
                article.is_saved = True
        return articles

    async def save_item(self, article: Article) -> Article:
        user = await self._require_user("save articles")
        saved = await self.saved_map()
        if article.id in saved:
            logger.info("Article already saved, skipping: %s", article.id)
            return saved[article.id]
        data = self._saved_document(article, user)
        doc_id = await self.store.create(SAVED_COLLECTION, data)
        result = Article.from_dict(data)
        result.doc_id = doc_id
        return result

    async def save_items(self, articles: list[Article]) -> SaveSummary:
        user = await self._require_user("save articles")
        saved = await self.saved_map()
        unique = dedupe(articles)
        fresh = [article for article in unique if article.id not in saved]
        if fresh:
            await self.store.batch_write(
                SAVED_COLLECTION, [self._saved_document(article, user) for article in fresh]
            )
            logger.info("%d new articles saved", len(fresh))
        return SaveSummary(
            newly_saved=len(fresh),
            already_saved=sum(1 for article in unique if article.id in saved),
            total=len(articles),
        )

    async def unsave_item(self, article_id: str) -> bool:
        await self._require_user("unsave articles")
        saved = await self.saved_map()
        article = saved.get(article_id)
        if article is None or article.doc_id is None:
            logger.info("Article not saved, cannot unsave: %s", article_id)
            return False
        await self.store.delete(SAVED_COLLECTION, article.doc_id)
        return True

    async def unsave_items(self, article_ids: list[str]) -> UnsaveSummary:
        await self._require_user("unsave articles")
        saved = await self.saved_map()
        doc_ids = [saved[article_id].doc_id for article_id in article_ids if article_id in saved]
        doc_ids = [doc_id for doc_id in doc_ids if doc_id]
        if doc_ids:
            await self.store.batch_delete(SAVED_COLLECTION, doc_ids)
        return UnsaveSummary(
            unsaved=len(doc_ids),
            not_saved=len(article_ids) - len(doc_ids),
            total=len(article_ids),
        )

    async def _require_user(self, action: str) -> Identity:
        user = await self.identity.current_user()
        if user is None:
            raise AuthenticationRequired(f"Authentication required to {action}")
        return user

    async def _guarded_query(
        self, collection: str, filters: dict[str, Any], **kwargs: Any
    ) -> list[Document] | None:
        if self.breaker.is_open():
            logger.debug("Document store recently failed; skipping %s read", collection)
            return None
        try:
            docs = await self.store.query(collection, filters, **kwargs)
        except DocumentStoreError as exc:
            logger.error("Error reading %s from document store: %s", collection, exc)
            self.breaker.record_failure()
            return None
        self.breaker.record_success()
        return docs

    @staticmethod
    def _article_document(article: Article, user: Identity, now: str) -> dict[str, Any]:
        return {
            "id": article.id,
            "title": article.title or "",
            "source": article.source or "",
            "date": article.date or now,
            "url": article.url or "",
            "link": article.link or "",
            "imageUrl": image_for(article),
            "summary": summary_for(article),
            "fullContent": article.full_content,
            "processedContent": article.processed_content or "",
            "processedImageUrl": article.processed_image_url or "",
            "category": category_for(article),
            "userId": user.uid,
            "createdAt": now,
            "updatedAt": now,
            "isFavorited": False,
        }

    def _saved_document(self, article: Article, user: Identity) -> dict[str, Any]:
        return {
            "id": article.id,
            "title": article.title,
            "source": article.source,
            "date": article.date,
            "category": category_for(article),
            "imageUrl": article.image_url,
            "summary": summary_for(article, 200),
            "link": link_for(article),
            "isSaved": True,
            "savedAt": to_iso(self.clock()),
            "userId": user.uid,
        }
