"""Scraper API access."""

from .client import ScraperClient, ScraperResponse

__all__ = ["ScraperClient", "ScraperResponse"]
