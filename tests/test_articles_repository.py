"""Tests for article persistence on the document store."""

from __future__ import annotations

import asyncio

import pytest

from news_desk.auth import Identity, StaticIdentityProvider
from news_desk.core.content import PLACEHOLDER_IMAGE
from news_desk.core.types import Article
from news_desk.errors import AuthenticationRequired, DocumentStoreError
from news_desk.storage.articles import ARTICLES_COLLECTION, SAVED_COLLECTION, ArticleRepository
from news_desk.storage.circuit import CircuitBreaker
from news_desk.storage.documents import MemoryDocumentStore


def _repo(clock, store=None, user="editor-1", batch_size=10, breaker=None):
    store = store or MemoryDocumentStore()
    identity = StaticIdentityProvider(Identity(uid=user) if user else None)
    return ArticleRepository(store, identity, breaker=breaker, batch_size=batch_size, clock=clock), store


def _articles(*ids):
    return [Article(id=article_id, title=f"Story {article_id}", source="example.org") for article_id in ids]


class _RacingStore(MemoryDocumentStore):
    """Inserts a competing document right before the second batch is checked."""

    def __init__(self):
        super().__init__()
        self.queries = 0

    async def query(self, collection, filters=None, order_by=None, descending=False):  # noqa: ANN001
        self.queries += 1
        if self.queries == 2:
            await super().batch_write(ARTICLES_COLLECTION, [{"id": "b1", "userId": "editor-1"}])
        return await super().query(collection, filters, order_by, descending)


class _FailingStore(MemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.queries = 0

    async def query(self, collection, filters=None, order_by=None, descending=False):  # noqa: ANN001
        self.queries += 1
        raise DocumentStoreError("unavailable")


def test_save_new_articles_writes_document_shape(clock):
    repository, store = _repo(clock)
    article = Article(
        id="a1",
        title="Budget",
        source="almayadeen.net/politics",
        full_content={"fullArticle": {"content": [{"type": "paragraph", "content": "Body text"}]}},
    )

    saved = asyncio.run(repository.save_new_articles([article]))

    docs = asyncio.run(store.query(ARTICLES_COLLECTION))
    assert saved == 1
    data = docs[0].data
    assert data["userId"] == "editor-1"
    assert data["summary"] == "Body text"
    assert data["imageUrl"] == PLACEHOLDER_IMAGE
    assert data["isFavorited"] is False
    assert data["createdAt"] == data["updatedAt"] == "2024-05-01T12:00:00.000Z"
    assert article.doc_id == docs[0].id


def test_batches_share_created_at_and_skip_known_ids(clock):
    repository, store = _repo(clock, batch_size=2)
    asyncio.run(repository.save_new_articles(_articles("a1")))
    clock.advance(seconds=5)

    saved = asyncio.run(repository.save_new_articles(_articles("a1", "a2", "a3", "a2")))

    docs = asyncio.run(store.query(ARTICLES_COLLECTION, order_by="createdAt"))
    assert saved == 2
    assert sorted(doc.data["id"] for doc in docs) == ["a1", "a2", "a3"]
    fresh = [doc for doc in docs if doc.data["id"] != "a1"]
    assert {doc.data["createdAt"] for doc in fresh} == {"2024-05-01T12:00:05.000Z"}


def test_store_is_rechecked_before_each_batch(clock):
    store = _RacingStore()
    repository, _ = _repo(clock, store=store, batch_size=1)

    saved = asyncio.run(repository.save_new_articles(_articles("a1", "b1")))

    docs = asyncio.run(store.query(ARTICLES_COLLECTION))
    assert saved == 1
    assert sorted(doc.data["id"] for doc in docs) == ["a1", "b1"]


def test_writes_require_identity(clock):
    repository, _ = _repo(clock, user=None)

    with pytest.raises(AuthenticationRequired):
        asyncio.run(repository.save_new_articles(_articles("a1")))
    with pytest.raises(AuthenticationRequired):
        asyncio.run(repository.toggle_favorite("a1", True))
    assert asyncio.run(repository.fetch_articles()) == []


def test_reads_are_scoped_to_identity(clock):
    store = MemoryDocumentStore()
    first, _ = _repo(clock, store=store, user="u1")
    second, _ = _repo(clock, store=store, user="u2")
    asyncio.run(first.save_new_articles(_articles("a1")))

    assert [article.id for article in asyncio.run(first.fetch_articles())] == ["a1"]
    assert asyncio.run(second.fetch_articles()) == []


def test_fetch_orders_by_discovery_newest_first(clock):
    repository, _ = _repo(clock)
    asyncio.run(repository.save_new_articles(_articles("old")))
    clock.advance(minutes=1)
    asyncio.run(repository.save_new_articles(_articles("new")))

    assert [article.id for article in asyncio.run(repository.fetch_articles())] == ["new", "old"]


def test_toggle_favorite_and_list(clock):
    repository, _ = _repo(clock)
    asyncio.run(repository.save_new_articles(_articles("a1", "a2", "a3")))

    assert asyncio.run(repository.toggle_favorite("a2", True)) is True
    clock.advance(seconds=1)
    assert asyncio.run(repository.toggle_favorite("a1", True)) is True
    assert asyncio.run(repository.toggle_favorite("missing", True)) is False

    favorites = asyncio.run(repository.favorited_articles())
    assert [article.id for article in favorites] == ["a1", "a2"]
    assert all(article.is_favorited for article in favorites)

    asyncio.run(repository.toggle_favorite("a1", False))
    assert [article.id for article in asyncio.run(repository.favorited_articles())] == ["a2"]


def test_failed_read_opens_breaker(clock):
    store = _FailingStore()
    breaker = CircuitBreaker(cooldown_ms=30000)
    repository, _ = _repo(clock, store=store, breaker=breaker)

    assert asyncio.run(repository.fetch_articles()) == []
    assert asyncio.run(repository.fetch_articles()) == []

    assert store.queries == 1
    assert breaker.last_failure_at is not None


def test_breaker_cooldown():
    breaker = CircuitBreaker(cooldown_ms=30000)
    breaker.record_failure(now_ms=1000)

    assert breaker.is_open(now_ms=30999) is True
    assert breaker.is_open(now_ms=31000) is False
    breaker.record_success()
    assert breaker.is_open(now_ms=1001) is False


def test_legacy_saved_list(clock):
    repository, store = _repo(clock)

    first = asyncio.run(repository.save_item(_articles("a1")[0]))
    again = asyncio.run(repository.save_item(_articles("a1")[0]))
    summary = asyncio.run(repository.save_items(_articles("a1", "a2", "a3")))

    assert first.is_saved is True
    assert again.doc_id == first.doc_id
    assert (summary.newly_saved, summary.already_saved, summary.total) == (2, 1, 3)

    annotated = asyncio.run(repository.annotate_saved(_articles("a2", "zz")))
    assert [article.is_saved for article in annotated] == [True, False]

    assert asyncio.run(repository.unsave_item("a1")) is True
    assert asyncio.run(repository.unsave_item("a1")) is False
    removal = asyncio.run(repository.unsave_items(["a2", "a3", "nope"]))
    assert (removal.unsaved, removal.not_saved) == (2, 1)
    assert asyncio.run(store.query(SAVED_COLLECTION)) == []


def test_stored_articles_tells_failure_from_empty(clock):
    empty, _ = _repo(clock)
    failing, _ = _repo(clock, store=_FailingStore())

    assert asyncio.run(empty.stored_articles()) == []
    assert asyncio.run(failing.stored_articles()) is None


def test_recheck_reads_store_even_when_breaker_is_open(clock):
    breaker = CircuitBreaker(cooldown_ms=30000)
    repository, store = _repo(clock, breaker=breaker)
    asyncio.run(repository.save_new_articles(_articles("a1")))
    breaker.record_failure()

    saved = asyncio.run(repository.save_new_articles(_articles("a1", "b1")))

    docs = asyncio.run(store.query(ARTICLES_COLLECTION))
    assert saved == 1
    assert sorted(doc.data["id"] for doc in docs) == ["a1", "b1"]


def test_recheck_failure_aborts_save(clock):
    store = _FailingStore()
    repository, _ = _repo(clock, store=store)

    with pytest.raises(DocumentStoreError):
        asyncio.run(repository.save_new_articles(_articles("a1")))

    assert asyncio.run(MemoryDocumentStore.query(store, ARTICLES_COLLECTION)) == []


def test_save_items_counts_only_saved_ids_as_already_saved(clock):
    repository, _ = _repo(clock)
    asyncio.run(repository.save_item(_articles("a1")[0]))
    batch = _articles("a1", "a2", "a2") + [Article(id="", title="No id")]

    summary = asyncio.run(repository.save_items(batch))

    assert (summary.newly_saved, summary.already_saved, summary.total) == (1, 1, 4)
