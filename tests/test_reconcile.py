"""Tests for reconciliation across scraper, local cache and document store."""

from __future__ import annotations

import asyncio

import pytest

from news_desk.auth import Identity, StaticIdentityProvider
from news_desk.core.types import Article
from news_desk.errors import DocumentStoreError, ScraperError
from news_desk.pipeline.reconcile import Reconciler, summarize_result
from news_desk.storage.articles import ARTICLES_COLLECTION, ArticleRepository
from news_desk.storage.documents import MemoryDocumentStore
from news_desk.storage.local_cache import LAST_FETCHED_KEY, LocalCacheStore


class _FlakyReadStore(MemoryDocumentStore):
    """Fails the first query, then answers normally."""

    def __init__(self):
        super().__init__()
        self.queries = 0

    async def query(self, collection, filters=None, order_by=None, descending=False):  # noqa: ANN001
        self.queries += 1
        if self.queries == 1:
            raise DocumentStoreError("read timed out")
        return await super().query(collection, filters, order_by, descending)


class _FlakyWriteStore(MemoryDocumentStore):
    """Fails the second batch write, then accepts writes again."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    async def batch_write(self, collection, docs):  # noqa: ANN001
        self.writes += 1
        if self.writes == 2:
            raise DocumentStoreError("write rejected")
        return await super().batch_write(collection, docs)


def _build(tmp_path, scraper, clock, user="editor-1", store=None, batch_size=10):
    store = store or MemoryDocumentStore()
    identity = StaticIdentityProvider(Identity(uid=user) if user else None)
    repository = ArticleRepository(store, identity, batch_size=batch_size, clock=clock)
    cache = LocalCacheStore(tmp_path / "cache.json")
    reconciler = Reconciler(scraper, repository, cache, clock=clock)
    return reconciler, repository, store, cache


def _item(article_id, title=None):
    return {"id": article_id, "title": title or f"Headline {article_id}", "date": "2024-04-30"}


async def _stored_ids(store):
    docs = await store.query(ARTICLES_COLLECTION)
    return sorted(doc.data["id"] for doc in docs)


def test_cold_start_pulls_persists_and_caches(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"almayadeen.net/politics": [_item("a1"), _item("a2")], "example.org": [_item("b1")]})
    reconciler, _, store, cache = _build(tmp_path, scraper, clock)

    result = asyncio.run(reconciler.load_articles())

    assert scraper.calls == 1
    assert result.from_cache is False
    assert result.new_articles_count == 3
    assert result.total_articles_count == 3
    assert result.available_sources == ["almayadeen.net/politics", "example.org"]
    assert asyncio.run(_stored_ids(store)) == ["a1", "a2", "b1"]
    assert [article.id for article in reconciler.cached_articles()] == ["a1", "a2", "b1"]
    assert cache.get(LAST_FETCHED_KEY) == "2024-05-01T12:00:00.000Z"
    assert reconciler.cached_articles()[0].source == "almayadeen.net/politics"


def test_warm_cache_makes_no_scraper_call(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"src": [_item("a1")]})
    reconciler, _, _, _ = _build(tmp_path, scraper, clock)
    reconciler.write_cache([Article(id="c1", source="src"), Article(id="c2", source="other")], "t")

    result = asyncio.run(reconciler.load_articles(is_refresh=False))

    assert scraper.calls == 0
    assert result.from_cache is True
    assert result.new_articles_count == 0
    assert [article.id for article in result.articles] == ["c1", "c2"]
    assert sorted(result.available_sources) == ["other", "src"]


def test_duplicate_ids_in_one_pull_are_stored_once(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"s1": [_item("a", "first")], "s2": [_item("a", "second")]})
    reconciler, _, store, _ = _build(tmp_path, scraper, clock)

    result = asyncio.run(reconciler.load_articles())

    assert result.new_articles_count == 1
    assert [(article.id, article.title) for article in result.articles] == [("a", "first")]
    assert asyncio.run(_stored_ids(store)) == ["a"]


def test_only_unknown_articles_are_persisted(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"src": [_item(f"a{n}") for n in range(1, 7)]})
    reconciler, repository, store, _ = _build(tmp_path, scraper, clock)
    asyncio.run(repository.save_new_articles([Article.from_dict(_item("a1"), source="src")]))

    result = asyncio.run(reconciler.load_articles())

    assert result.new_articles_count == 5
    assert result.total_articles_count == 6
    assert asyncio.run(_stored_ids(store)) == ["a1", "a2", "a3", "a4", "a5", "a6"]
    assert [article.id for article in result.articles][:5] == ["a2", "a3", "a4", "a5", "a6"]


def test_refresh_merges_new_articles_ahead_of_cache(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"src": [_item("n1"), _item("c1")]})
    reconciler, _, store, _ = _build(tmp_path, scraper, clock)
    reconciler.write_cache([Article(id="c1", title="cached", source="src")], "t")

    result = asyncio.run(reconciler.force_refresh())

    assert scraper.calls == 1
    assert result.new_articles_count == 1
    assert [article.id for article in result.articles] == ["n1", "c1"]
    assert result.articles[1].title == "cached"
    # c1 was cached but never reached the store, so it is saved now
    assert asyncio.run(_stored_ids(store)) == ["c1", "n1"]


def test_refresh_if_expired_serves_fresh_cache(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"src": [_item("n1")]})
    reconciler, _, _, _ = _build(tmp_path, scraper, clock)
    asyncio.run(reconciler.load_articles())
    clock.advance(minutes=119)

    asyncio.run(reconciler.refresh_if_expired())
    assert scraper.calls == 1

    clock.advance(minutes=2)
    asyncio.run(reconciler.refresh_if_expired())
    assert scraper.calls == 2


def test_scraper_failure_falls_back_to_cache(tmp_path, fake_scraper, clock):
    scraper = fake_scraper(error="connection refused")
    reconciler, _, _, _ = _build(tmp_path, scraper, clock)
    reconciler.write_cache([Article(id="c1", source="src")], "t")

    result = asyncio.run(reconciler.force_refresh())

    assert result.from_cache is True
    assert [article.id for article in result.articles] == ["c1"]
    assert "connection refused" in result.error


def test_scraper_failure_without_cache_raises(tmp_path, fake_scraper, clock):
    reconciler, _, _, _ = _build(tmp_path, fake_scraper(error="boom"), clock)

    with pytest.raises(ScraperError):
        asyncio.run(reconciler.load_articles())


def test_unauthenticated_load_returns_pulled_articles_without_persisting(tmp_path, fake_scraper, clock):
    scraper = fake_scraper({"src": [_item("a1"), _item("a2")]})
    reconciler, _, store, _ = _build(tmp_path, scraper, clock, user=None)

    result = asyncio.run(reconciler.load_articles())

    assert [article.id for article in result.articles] == ["a1", "a2"]
    assert result.new_articles_count == 2
    assert asyncio.run(_stored_ids(store)) == []


def test_summarize_result(tmp_path, fake_scraper, clock):
    reconciler, _, _, _ = _build(tmp_path, fake_scraper({"src": [_item("a1")]}), clock)

    summary = summarize_result(asyncio.run(reconciler.load_articles()))

    assert summary["total"] == 1
    assert summary["new"] == 1
    assert summary["from_cache"] is False


def test_failed_store_read_skips_persistence(tmp_path, fake_scraper, clock):
    store = _FlakyReadStore()
    asyncio.run(store.batch_write(ARTICLES_COLLECTION, [{"id": "A1", "userId": "editor-1"}]))
    reconciler, _, _, _ = _build(tmp_path, fake_scraper({"src": [_item("A1")]}), clock, store=store)

    first = asyncio.run(reconciler.load_articles(is_refresh=True))
    second = asyncio.run(reconciler.load_articles(is_refresh=True))

    assert [article.id for article in first.articles] == ["A1"]
    assert [article.id for article in second.articles] == ["A1"]
    # The breaker stays open after the failed read, so the store is asked only once
    assert store.queries == 1
    assert asyncio.run(_stored_ids(store)) == ["A1"]


def test_partial_persistence_keeps_committed_batches_and_retries_the_rest(tmp_path, fake_scraper, clock):
    store = _FlakyWriteStore()
    scraper = fake_scraper({"src": [_item(f"a{n}") for n in range(1, 6)]})
    reconciler, _, _, _ = _build(tmp_path, scraper, clock, store=store, batch_size=2)

    first = asyncio.run(reconciler.load_articles())

    assert first.new_articles_count == 5
    assert [article.id for article in first.articles] == ["a1", "a2", "a3", "a4", "a5"]
    assert [article.id for article in reconciler.cached_articles()] == ["a1", "a2", "a3", "a4", "a5"]
    assert asyncio.run(_stored_ids(store)) == ["a1", "a2"]

    second = asyncio.run(reconciler.force_refresh())

    assert second.new_articles_count == 0
    assert second.total_articles_count == 5
    assert asyncio.run(_stored_ids(store)) == ["a1", "a2", "a3", "a4", "a5"]
    # Two writes on the first run, then two batches for a3..a5
    assert store.writes == 4
