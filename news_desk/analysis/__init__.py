"""
LLM batch analysis over article collections.

- batch: chunked, paced orchestration shared by every analysis mode
- semantic_filter: natural-language filtering
- sentiment: topic relevance and stance scoring
- dates: multilingual publish-date normalization
"""

from .batch import BatchStats, analyze_in_chunks, chunked
from .dates import DateNormalizer, parse_standard_date
from .semantic_filter import SemanticFilter
from .sentiment import SentimentAnalyzer, build_report

__all__ = [
    "BatchStats",
    "analyze_in_chunks",
    "chunked",
    "DateNormalizer",
    "parse_standard_date",
    "SemanticFilter",
    "SentimentAnalyzer",
    "build_report",
]
