"""
Core data types for news_desk.

This module defines the structures shared by every pipeline stage:
- Article: A news article as seen by the scraper, the cache and the document store
- Sentiment: Ordered stance categories produced by sentiment analysis
- AnalysisResult: One LLM judgment about one article
- LoadResult: Output of the reconciliation engine
- SentimentReport: Aggregated sentiment composition for a topic
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# Wire (camelCase) name -> dataclass attribute
_WIRE_FIELDS = {
    "id": "id",
    "title": "title",
    "source": "source",
    "date": "date",
    "category": "category",
    "imageUrl": "image_url",
    "link": "link",
    "url": "url",
    "summary": "summary",
    "fullContent": "full_content",
    "processedContent": "processed_content",
    "processedImageUrl": "processed_image_url",
    "isFavorited": "is_favorited",
    "isSaved": "is_saved",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "fetchedAt": "fetched_at",
    "userId": "user_id",
    "firestoreId": "doc_id",
}


@dataclass
class Article:
    """A news article.

    The document store is the durable owner of articles; the local cache
    only holds a disposable copy.

    Attributes:
        id: Stable identifier, the only deduplication key
        title: Headline
        source: Source name as reported by the scraper (e.g. "almayadeen.net/politics")
        date: Original publish date string, possibly non-ISO or multilingual
        category: Category label, may be empty
        image_url: Image URL reported by the scraper
        link: Link to the original article
        url: Alternate link field used by newer documents
        summary: Short plain-text summary written at persist time
        full_content: Source-shaped nested payload, not normalized
        processed_content: Precomputed normalized text, preferred over full_content
        processed_image_url: Precomputed image URL, preferred over full_content
        is_favorited: Favorites flag on news_articles documents
        is_saved: Legacy flag from the saved_news list
        created_at: ISO timestamp of first persist (discovery order)
        updated_at: ISO timestamp of the last document update
        fetched_at: ISO timestamp of the scraper pull that produced this copy
        user_id: Owning identity on the document store
        doc_id: Document-store key, distinct from id
        extra: Unknown wire fields, kept for lossless round trips
    """

    id: str | None
    title: str = ""
    source: str = ""
    date: str | None = None
    category: str = ""
    image_url: str | None = None
    link: str | None = None
    url: str | None = None
    summary: str | None = None
    full_content: dict[str, Any] | None = None
    processed_content: str | None = None
    processed_image_url: str | None = None
    is_favorited: bool = False
    is_saved: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    fetched_at: str | None = None
    user_id: str | None = None
    doc_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> "Article":
        """Build an Article from its camelCase wire form.

        Args:
            data: Article payload from the scraper, cache or document store
            source: Source name used when the payload carries none

        Returns:
            Article with unknown keys preserved in extra
        """
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            attr = _WIRE_FIELDS.get(key)
            if attr is None:
                extra[key] = value
            else:
                values[attr] = value
        if values.get("id") is not None:
            values["id"] = str(values["id"])
        if not values.get("source") and source:
            values["source"] = source
        values["is_favorited"] = bool(values.get("is_favorited", False))
        values["is_saved"] = bool(values.get("is_saved", False))
        for attr in ("title", "source", "category"):
            if values.get(attr) is None:
                values.pop(attr, None)
        values.setdefault("id", None)
        return cls(extra=extra, **values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire form, omitting unset optional fields."""
        payload: dict[str, Any] = dict(self.extra)
        for key, attr in _WIRE_FIELDS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            payload[key] = value
        return payload


class Sentiment(str, Enum):
    """Stance of an article toward a topic, ordered from opposing to supporting."""

    STRONGLY_OPPOSING = "STRONGLY_OPPOSING"
    MODERATELY_OPPOSING = "MODERATELY_OPPOSING"
    SLIGHTLY_OPPOSING = "SLIGHTLY_OPPOSING"
    NEUTRAL = "NEUTRAL"
    SLIGHTLY_SUPPORTING = "SLIGHTLY_SUPPORTING"
    MODERATELY_SUPPORTING = "MODERATELY_SUPPORTING"
    STRONGLY_SUPPORTING = "STRONGLY_SUPPORTING"

    @property
    def is_supporting(self) -> bool:
        return self.value.endswith("_SUPPORTING")

    @property
    def is_opposing(self) -> bool:
        return self.value.endswith("_OPPOSING")

    @classmethod
    def parse(cls, value: Any) -> "Sentiment":
        """Parse a model-supplied label, defaulting to NEUTRAL."""
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls(label)
        except ValueError:
            return cls.NEUTRAL


@dataclass
class AnalysisResult:
    """One LLM judgment about one article.

    Attributes:
        article_index: Position of the article within its chunk
        global_index: Position of the article within the submitted batch
        relevance: Relevance to the topic, 0-100
        sentiment: Stance category
        confidence: Model confidence, 0-100
        reasoning: Free-text justification
        article: The judged article
    """

    article_index: int
    global_index: int
    relevance: int
    sentiment: Sentiment
    confidence: int
    reasoning: str
    article: Article


@dataclass
class LoadResult:
    """Output of the reconciliation engine.

    Attributes:
        articles: Deduplicated article set
        new_articles_count: Articles discovered by this pull that the store did not hold
        total_articles_count: len(articles)
        last_fetched: ISO timestamp of this operation
        available_sources: Source names reported by the scraper
        from_cache: True when the result came from the local cache
        error: Error message when the scraper failed and the cache was used instead
    """

    articles: list[Article]
    new_articles_count: int
    total_articles_count: int
    last_fetched: str
    available_sources: list[str] = field(default_factory=list)
    from_cache: bool = False
    error: str | None = None


@dataclass
class SentimentReport:
    """Aggregated sentiment composition for one topic."""

    topic: str
    total_articles: int
    relevant_articles: int
    counts: dict[Sentiment, int]
    supporting_count: int
    opposing_count: int
    neutral_count: int
    supporting_percentage: int
    opposing_percentage: int
    neutral_percentage: int
    sources: list[str]
    related: list[Article]
    results: list[AnalysisResult] = field(default_factory=list)
    study: str | None = None
    last_updated: str | None = None
