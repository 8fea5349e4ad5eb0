"""
Storage backends.

- local_cache: disposable JSON key/value cache on local disk
- documents: remote document store interface and backends
- articles: article persistence on the document store
- circuit: failure cooldown for remote reads
"""

from .articles import ArticleRepository, SaveSummary, UnsaveSummary
from .circuit import CircuitBreaker
from .documents import (
    Document,
    DocumentStore,
    JsonFileDocumentStore,
    MemoryDocumentStore,
    RestDocumentStore,
)
from .local_cache import ARTICLES_KEY, LAST_FETCHED_KEY, LocalCacheStore

__all__ = [
    "ArticleRepository",
    "SaveSummary",
    "UnsaveSummary",
    "CircuitBreaker",
    "Document",
    "DocumentStore",
    "MemoryDocumentStore",
    "JsonFileDocumentStore",
    "RestDocumentStore",
    "LocalCacheStore",
    "ARTICLES_KEY",
    "LAST_FETCHED_KEY",
]
