"""Tests for the favorites manager."""

from __future__ import annotations

import asyncio

import pytest

from news_desk import favorites as favorites_module
from news_desk.auth import Identity, StaticIdentityProvider
from news_desk.core.types import Article
from news_desk.errors import DocumentStoreError
from news_desk.favorites import FavoriteSummary, FavoritesManager
from news_desk.storage.articles import ArticleRepository
from news_desk.storage.documents import MemoryDocumentStore


class _FlakyStore(MemoryDocumentStore):
    """Rejects updates for the given article ids."""

    def __init__(self, failing_ids):
        super().__init__()
        self.failing_ids = set(failing_ids)

    async def update(self, collection, doc_id, fields):  # noqa: ANN001
        doc = await self.get(collection, doc_id)
        if doc is not None and doc.data.get("id") in self.failing_ids:
            raise DocumentStoreError("write rejected")
        await super().update(collection, doc_id, fields)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def _fake_sleep(seconds):  # noqa: ANN001
        recorded.append(seconds)

    monkeypatch.setattr(favorites_module.asyncio, "sleep", _fake_sleep)
    return recorded


def _manager(clock, store=None):
    store = store or MemoryDocumentStore()
    repository = ArticleRepository(store, StaticIdentityProvider(Identity(uid="editor-1")), clock=clock)
    return FavoritesManager(repository, delay_seconds=0.5), repository


def _seed(repository, count):
    articles = [Article(id=f"a{n}", title=f"Story {n}") for n in range(count)]
    asyncio.run(repository.save_new_articles(articles))
    return asyncio.run(repository.fetch_articles())


def test_toggle_flips_and_persists(clock):
    manager, repository = _manager(clock)
    article = _seed(repository, 1)[0]

    assert asyncio.run(manager.toggle(article)) is True
    assert article.is_favorited is True
    assert [a.id for a in asyncio.run(manager.list())] == ["a0"]

    assert asyncio.run(manager.toggle(article)) is False
    assert asyncio.run(manager.list()) == []


def test_toggle_unknown_article_keeps_state(clock):
    manager, _ = _manager(clock)
    article = Article(id="ghost")

    assert asyncio.run(manager.toggle(article)) is False
    assert article.is_favorited is False


def test_add_many_batches_and_counts_already_favorited(clock, sleeps):
    manager, repository = _manager(clock)
    articles = _seed(repository, 25)
    articles[0].is_favorited = True

    summary = asyncio.run(manager.add_many(articles))

    assert summary == FavoriteSummary(added=24, failed=0, already=1)
    assert sleeps == [0.5, 0.5]
    assert len(asyncio.run(manager.list())) == 24


def test_add_many_counts_failures_and_continues(clock, sleeps):
    store = _FlakyStore({"a1"})
    manager, repository = _manager(clock, store=store)
    articles = _seed(repository, 3)

    summary = asyncio.run(manager.add_many(articles))

    assert (summary.added, summary.failed) == (2, 1)
    assert "1 failed" in summary.message
    assert sorted(a.id for a in asyncio.run(manager.list())) == ["a0", "a2"]


def test_add_many_with_everything_favorited_makes_no_calls(clock, sleeps):
    manager, _ = _manager(clock)
    articles = [Article(id="a", is_favorited=True), Article(id="b", is_favorited=True)]

    summary = asyncio.run(manager.add_many(articles))

    assert summary == FavoriteSummary(added=0, failed=0, already=2)
    assert sleeps == []


def test_remove_many(clock, sleeps):
    manager, repository = _manager(clock)
    articles = _seed(repository, 3)
    asyncio.run(manager.add_many(articles))

    removal = asyncio.run(manager.remove_many(articles[:2] + [Article(id="ghost")]))

    assert (removal.removed, removal.failed) == (2, 1)
    assert [a.id for a in asyncio.run(manager.list())] == [articles[2].id]


def test_summary_message():
    assert FavoriteSummary(added=3, already=2).message == (
        "Successfully added 3 articles to favorites! (2 were already favorited)"
    )
