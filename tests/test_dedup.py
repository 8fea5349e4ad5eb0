"""Tests for id-based article deduplication."""

from news_desk.core.dedup import dedupe, ids_of
from news_desk.core.types import Article


def _articles(*ids):
    return [Article(id=article_id, title=f"title-{index}") for index, article_id in enumerate(ids)]


def test_dedupe_keeps_first_occurrence_in_order():
    articles = _articles("a", "b", "a", "c", "b")

    result = dedupe(articles)

    assert [article.id for article in result] == ["a", "b", "c"]
    assert result[0] is articles[0]
    assert result[1].title == "title-1"


def test_dedupe_drops_missing_and_empty_ids():
    articles = _articles("a", None, "", "b")

    assert [article.id for article in dedupe(articles)] == ["a", "b"]


def test_dedupe_is_idempotent():
    once = dedupe(_articles("x", "y", "x", "z"))

    assert dedupe(once) == once


def test_dedupe_does_not_merge_fields():
    first = Article(id="a", title="first", is_favorited=False)
    second = Article(id="a", title="second", is_favorited=True)

    result = dedupe([first, second])

    assert result == [first]
    assert result[0].title == "first"
    assert result[0].is_favorited is False


def test_ids_of_ignores_empty_ids():
    assert ids_of(_articles("a", "", None, "b", "a")) == {"a", "b"}
