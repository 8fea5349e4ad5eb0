"""
News Desk - admin dashboard core for scraped news.

This package pulls articles from the scraper API, reconciles them with a
local cache and a remote document store, and runs LLM batch analysis
(semantic filtering, topic sentiment, date normalization) over the result.

Main entry point is the CLI via the `news-desk` command.

Example:
    $ news-desk load --refresh --user alice
    $ news-desk sentiment "ceasefire negotiations" --user alice
"""

__all__ = [
    "__version__",
    "Article",
    "ArticleRepository",
    "FavoritesManager",
    "Reconciler",
    "SemanticFilter",
    "SentimentAnalyzer",
    "dedupe",
]
__version__ = "0.1.0"

from .analysis import SemanticFilter, SentimentAnalyzer
from .core import Article, dedupe
from .favorites import FavoritesManager
from .pipeline import Reconciler
from .storage import ArticleRepository
