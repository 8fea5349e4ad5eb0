"""Tests for LLM semantic filtering."""

from __future__ import annotations

import asyncio

import pytest

from news_desk.analysis import batch
from news_desk.analysis.semantic_filter import SemanticFilter, build_filter_prompt, parse_matching_ids
from news_desk.config import AnalysisConfig
from news_desk.core.types import Article
from news_desk.errors import ProviderError


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    async def _fake_sleep(seconds):  # noqa: ANN001
        return None

    monkeypatch.setattr(batch.asyncio, "sleep", _fake_sleep)


def _articles(count):
    return [Article(id=f"id{n}", title=f"Story {n}", source="example.org") for n in range(count)]


def test_prompt_truncates_content_and_lists_ids():
    article = Article(
        id="x1",
        title="Budget vote",
        source="almayadeen.net/politics",
        category="Politics",
        date="2024-05-01",
        full_content={"fullArticle": {"content": [{"type": "paragraph", "content": "w" * 600}]}},
    )

    prompt = build_filter_prompt([article], "economy", content_chars=500)

    assert 'User Query: "economy"' in prompt
    assert "ID: x1" in prompt
    assert "Category: Politics" in prompt
    assert "Content: " + "w" * 500 + "...\n" in prompt
    assert "w" * 501 not in prompt


def test_parse_matching_ids_keeps_only_chunk_ids():
    chunk = _articles(3)

    assert parse_matching_ids('["id0", "id2", "other"]', chunk, 0) == ["id0", "id2"]


def test_parse_matching_ids_falls_back_to_quoted_strings():
    chunk = _articles(3)
    text = 'The matching articles are "id1" and "id2", I think.'

    assert parse_matching_ids(text, chunk, 0) == ["id1", "id2"]


def test_filter_chunks_by_ten_and_preserves_order(fake_provider):
    articles = _articles(25)
    provider = fake_provider(['["id3", "id1"]', "```json\n[\"id12\"]\n```", "[]"])
    semantic = SemanticFilter(provider, AnalysisConfig())

    matches = asyncio.run(semantic.filter(articles, "  elections  "))

    assert [article.id for article in matches] == ["id1", "id3", "id12"]
    assert len(provider.prompts) == 3
    assert provider.options[0] == {"temperature": 0.1, "max_tokens": 1000}
    assert semantic.last_stats.chunks == 3


def test_filter_survives_a_failed_chunk(fake_provider):
    provider = fake_provider(['["id0"]', ProviderError("empty"), '["id21"]'])
    semantic = SemanticFilter(provider)

    matches = asyncio.run(semantic.filter(_articles(25), "anything"))

    assert [article.id for article in matches] == ["id0", "id21"]
    assert semantic.last_stats.failed_chunks == [1]


def test_blank_query_is_rejected(fake_provider):
    semantic = SemanticFilter(fake_provider([]))

    with pytest.raises(ValueError):
        asyncio.run(semantic.filter(_articles(2), "   "))
