"""
Core domain models and business logic.

This package contains data types and identity rules that are
independent of any storage backend or LLM provider.
"""

from .types import AnalysisResult, Article, LoadResult, Sentiment, SentimentReport
from .dedup import dedupe, ids_of
from .content import ContentExtractor, extractor_for, register_extractor

__all__ = [
    "Article",
    "AnalysisResult",
    "LoadResult",
    "Sentiment",
    "SentimentReport",
    "dedupe",
    "ids_of",
    "ContentExtractor",
    "extractor_for",
    "register_extractor",
]
