"""
Article reconciliation across the scraper, the local cache and the document store.

The reconciler produces one duplicate-free article collection:
1. Without a refresh request, a non-empty local cache is returned as is
2. Otherwise the scraper is pulled and deduplicated
3. The identity's articles are read from the document store
4. Scraper articles unknown to the store (and to the cache on refresh) are new
5. Pulled articles the store lacks are persisted in batches, each re-checked
   against the store; nothing is persisted when the read in step 3 failed
6. New articles are merged in front of the cached or stored set
7. The merged set replaces the local cache
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Callable

from ..core.dedup import dedupe, ids_of
from ..core.types import Article, LoadResult
from ..errors import AuthenticationRequired, DocumentStoreError, ScraperError
from ..llm.tracing import record_span_error, set_span_output, start_span
from ..scraper.client import ScraperClient
from ..storage.articles import ArticleRepository
from ..storage.local_cache import ARTICLES_KEY, LocalCacheStore
from ..utils.logging import log_event
from ..utils.timeutil import to_iso, utc_now
from .freshness import CacheFreshnessPolicy

logger = logging.getLogger(__name__)


def _sources_of(articles: list[Article]) -> list[str]:
    seen: dict[str, None] = {}
    for article in articles:
        if article.source:
            seen.setdefault(article.source, None)
    return list(seen)


class Reconciler:
    """Merges scraper, cache and document-store articles.

    Attributes:
        scraper: Scraper API client
        repository: Document-store access scoped to the current identity
        cache: Local key/value cache
        freshness: Freshness policy sharing the same cache
    """

    def __init__(
        self,
        scraper: ScraperClient,
        repository: ArticleRepository,
        cache: LocalCacheStore,
        freshness: CacheFreshnessPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scraper = scraper
        self.repository = repository
        self.cache = cache
        self.freshness = freshness or CacheFreshnessPolicy(cache, clock=clock)
        self.clock = clock

    def cached_articles(self) -> list[Article]:
        """Return the deduplicated cached article list (empty when absent)."""
        payload = self.cache.get(ARTICLES_KEY)
        if isinstance(payload, dict):
            items = payload.get("articles")
        else:
            items = payload
        if not isinstance(items, list):
            return []
        return dedupe(Article.from_dict(item) for item in items if isinstance(item, dict))

    def write_cache(self, articles: list[Article], timestamp: str) -> None:
        unique = dedupe(articles)
        self.cache.set(
            ARTICLES_KEY,
            {"articles": [article.to_dict() for article in unique], "timestamp": timestamp},
        )

    async def load_articles(self, is_refresh: bool = False) -> LoadResult:
        """Return the reconciled article collection.

        Args:
            is_refresh: Pull the scraper even when the cache holds articles

        Returns:
            LoadResult with the merged articles and bookkeeping

        Raises:
            ScraperError: The scraper failed and the cache is empty
        """
        cached = self.cached_articles()

        if not is_refresh and cached:
            logger.info("Using %d cached articles", len(cached))
            return LoadResult(
                articles=cached,
                new_articles_count=0,
                total_articles_count=len(cached),
                last_fetched=to_iso(self.clock()),
                available_sources=_sources_of(cached),
                from_cache=True,
            )

        with start_span(
            "news_desk.load_articles",
            kind="chain",
            input_value={"is_refresh": is_refresh, "cached": len(cached)},
        ) as span:
            try:
                response = await self.scraper.fetch_all_news()
            except ScraperError as exc:
                record_span_error(span, exc)
                if not cached:
                    raise
                logger.warning("Scraper unavailable, using %d cached articles: %s", len(cached), exc)
                return LoadResult(
                    articles=cached,
                    new_articles_count=0,
                    total_articles_count=len(cached),
                    last_fetched=to_iso(self.clock()),
                    available_sources=_sources_of(cached),
                    from_cache=True,
                    error=str(exc),
                )

            fetched_at = self.freshness.mark_fetched(self.clock())
            raw = response.flatten(fetched_at=fetched_at)
            pulled = dedupe(raw)
            if len(raw) != len(pulled):
                logger.info("Removed %d duplicate articles from scraper data", len(raw) - len(pulled))

            stored = await self.repository.stored_articles()
            store_reachable = stored is not None
            if not store_reachable:
                stored = []
            stored_ids = ids_of(stored)
            known = set(stored_ids)
            if is_refresh:
                known |= ids_of(cached)
            new_articles = [article for article in pulled if article.id not in known]
            # Pulled articles a failed earlier save left out of the store are retried here
            unsaved = [article for article in pulled if article.id not in stored_ids]

            if store_reachable:
                await self._persist(unsaved)
            elif unsaved:
                logger.warning("Document store unreachable; %d articles not persisted this run", len(unsaved))

            base = cached if is_refresh and cached else stored
            merged = dedupe(new_articles + base)
            now = to_iso(self.clock())
            self.write_cache(merged, now)

            result = LoadResult(
                articles=merged,
                new_articles_count=len(new_articles),
                total_articles_count=len(merged),
                last_fetched=now,
                available_sources=response.sources,
                from_cache=False,
            )
            log_event(
                logger,
                "Articles reconciled",
                event="articles_reconciled",
                is_refresh=is_refresh,
                pulled=len(pulled),
                stored=len(stored),
                new=len(new_articles),
                total=len(merged),
            )
            set_span_output(span, {"new": len(new_articles), "total": len(merged)})
            return result

    async def force_refresh(self) -> LoadResult:
        return await self.load_articles(is_refresh=True)

    async def refresh_if_expired(self) -> LoadResult:
        """Refresh when the freshness window has passed, otherwise serve the cache."""
        return await self.load_articles(is_refresh=self.freshness.is_expired())

    async def _persist(self, articles: list[Article]) -> int:
        if not articles:
            logger.info("No new articles to save")
            return 0
        try:
            saved = await self.repository.save_new_articles(articles)
        except AuthenticationRequired as exc:
            logger.warning("%s; %d new articles not persisted", exc, len(articles))
            return 0
        except DocumentStoreError as exc:
            # Batches committed before the failure stay; the rest are retried on the next pull
            logger.error("Error saving new articles: %s", exc)
            return 0
        logger.info("Saved %d new articles to the document store", saved)
        return saved


def summarize_result(result: LoadResult) -> dict[str, Any]:
    """Compact dict view of a LoadResult for logs and CLI output."""
    return {
        "total": result.total_articles_count,
        "new": result.new_articles_count,
        "from_cache": result.from_cache,
        "last_fetched": result.last_fetched,
        "sources": result.available_sources,
        "error": result.error,
    }
