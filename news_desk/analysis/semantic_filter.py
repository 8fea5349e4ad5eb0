"""Semantic article filtering with an LLM."""

from __future__ import annotations

import json
import logging
from typing import Sequence

from ..config import AnalysisConfig
from ..core.content import category_for, extractor_for
from ..core.types import Article
from ..llm.json_extract import extract_json_array, extract_quoted_strings
from ..llm.providers.base import CompletionProvider
from .batch import BatchStats, ProgressCallback, analyze_in_chunks

logger = logging.getLogger(__name__)


def _content_for(article: Article) -> str:
    extractor = extractor_for(article.source)
    return extractor.paragraphs(article) or article.processed_content or article.summary or ""


def build_filter_prompt(chunk: Sequence[Article], query: str, content_chars: int = 500) -> str:
    blocks = []
    for index, article in enumerate(chunk):
        content = _content_for(article)
        trimmed = content[:content_chars] + ("..." if len(content) > content_chars else "")
        blocks.append(
            f"Article {index + 1}:\n"
            f"ID: {article.id}\n"
            f"Title: {article.title}\n"
            f"Source: {article.source}\n"
            f"Category: {category_for(article)}\n"
            f"Content: {trimmed}\n"
            f"Date: {article.date or ''}\n"
            "---"
        )
    articles_block = "\n".join(blocks)
    return (
        "You are an AI assistant that helps filter news articles based on user queries.\n\n"
        f'User Query: "{query}"\n\n'
        "Please analyze the following news articles and determine which ones match the user's query. "
        "Consider the title, source, category, and content of each article. "
        "Look for semantic meaning, not just exact keyword matches.\n\n"
        f"Articles to analyze:\n{articles_block}\n\n"
        "Please respond with ONLY a JSON array containing the IDs of articles that match the query. "
        'For example: ["id1", "id3", "id5"]\n\n'
        "If no articles match, respond with an empty array: []"
    )


def parse_matching_ids(text: str, chunk: Sequence[Article], offset: int) -> list[str]:
    """Return ids from the response that belong to the chunk.

    Falls back to quoted substrings when the response holds no parseable
    JSON array.
    """
    try:
        values = extract_json_array(text)
    except json.JSONDecodeError:
        logger.warning("AI response is not a JSON array; falling back to quoted ids")
        values = extract_quoted_strings(text)
    chunk_ids = {article.id for article in chunk}
    return [str(value) for value in values if str(value) in chunk_ids]


class SemanticFilter:
    """Keeps the articles an LLM judges to match a natural-language query."""

    def __init__(self, provider: CompletionProvider, cfg: AnalysisConfig | None = None):
        self.provider = provider
        self.cfg = cfg or AnalysisConfig()
        self.last_stats: BatchStats | None = None

    async def filter(
        self,
        articles: list[Article],
        query: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[Article]:
        """Return the matching subset of articles, in their original order.

        Raises:
            ValueError: query is blank
        """
        query = query.strip()
        if not query:
            raise ValueError("Please enter a query for AI filtering.")

        stats = BatchStats()
        matches = await analyze_in_chunks(
            articles,
            self.cfg.filter_chunk_size,
            lambda chunk: build_filter_prompt(chunk, query, self.cfg.filter_content_chars),
            parse_matching_ids,
            self.provider,
            delay_seconds=self.cfg.filter_delay_seconds,
            completion_options={"temperature": 0.1, "max_tokens": 1000},
            on_progress=on_progress,
            stats=stats,
        )
        self.last_stats = stats
        matched = set(matches)
        selected = [article for article in articles if article.id in matched]
        logger.info("AI filtering found %d articles matching %r", len(selected), query)
        return selected
