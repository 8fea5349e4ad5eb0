"""
Scraper API client.

The scraper exposes one endpoint, `GET {base}/scraper/all-news/`, returning
`{"articlesBySource": {sourceName: [article, ...]}}`. There is no
pagination and no authentication.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any

import httpx

from ..config import ScraperConfig
from ..core.types import Article
from ..errors import ScraperError

logger = logging.getLogger(__name__)


@dataclass
class ScraperResponse:
    """Parsed scraper payload.

    Attributes:
        articles_by_source: Raw article dicts grouped by source name
    """

    articles_by_source: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    @property
    def sources(self) -> list[str]:
        return list(self.articles_by_source.keys())

    def flatten(self, fetched_at: str | None = None) -> list[Article]:
        """Flatten the per-source grouping into one list.

        Each article is tagged with its group's source name when it carries
        none, and with fetched_at when given.
        """
        articles: list[Article] = []
        for source, items in self.articles_by_source.items():
            for item in items:
                if not isinstance(item, dict):
                    continue
                article = Article.from_dict(item, source=source)
                if fetched_at:
                    article.fetched_at = fetched_at
                articles.append(article)
        return articles

    @classmethod
    def from_payload(cls, payload: Any) -> "ScraperResponse":
        if not isinstance(payload, dict) or not isinstance(payload.get("articlesBySource"), dict):
            raise ScraperError("Invalid scraper payload: missing 'articlesBySource'")
        grouped: dict[str, list[dict[str, Any]]] = {}
        for source, items in payload["articlesBySource"].items():
            grouped[str(source)] = list(items) if isinstance(items, list) else []
        return cls(articles_by_source=grouped)


class ScraperClient:
    """Async client for the scraper API."""

    def __init__(self, cfg: ScraperConfig, client: httpx.AsyncClient | None = None):
        self.cfg = cfg
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.cfg.base_url.rstrip('/')}/scraper/all-news/"

    async def fetch_all_news(self) -> ScraperResponse:
        """Fetch every article the scraper currently holds.

        Raises:
            ScraperError: The request failed after all attempts, or the payload is malformed
        """
        last_error: str | None = None

        for attempt in range(self.cfg.retries + 1):
            try:
                resp = await self._get()
                resp.raise_for_status()
                payload = resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning("Scraper request failed (attempt %d): %s", attempt + 1, last_error)
                if attempt < self.cfg.retries:
                    await asyncio.sleep(0.5 * (attempt + 1))
                continue
            response = ScraperResponse.from_payload(payload)
            logger.info(
                "Fetched %d articles from %d sources",
                sum(len(items) for items in response.articles_by_source.values()),
                len(response.articles_by_source),
            )
            return response

        raise ScraperError(f"Scraper request failed: {last_error}")

    async def _get(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.endpoint)
        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            follow_redirects=True,
            trust_env=self.cfg.trust_env,
        ) as client:
            return await client.get(self.endpoint)
