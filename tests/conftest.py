"""Shared fakes for news_desk tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from news_desk.errors import ScraperError
from news_desk.llm.providers.base import Completion
from news_desk.scraper.client import ScraperResponse


class FakeProvider:
    """Completion provider returning scripted responses in call order.

    A scripted Exception instance is raised instead of returned.
    """

    def __init__(self, responses):
        self._responses = list(responses)
        self.prompts: list[str] = []
        self.options: list[dict] = []

    async def complete(self, prompt, model=None, temperature=None, max_tokens=None):  # noqa: ANN001
        self.prompts.append(prompt)
        self.options.append({"temperature": temperature, "max_tokens": max_tokens})
        if not self._responses:
            raise AssertionError("unexpected completion call")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Completion(text=response, model="fake-model")


class FakeScraper:
    """Scraper stub returning a fixed payload or raising ScraperError."""

    def __init__(self, articles_by_source=None, error: str | None = None):
        self.articles_by_source = articles_by_source or {}
        self.error = error
        self.calls = 0

    async def fetch_all_news(self) -> ScraperResponse:
        self.calls += 1
        if self.error:
            raise ScraperError(self.error)
        return ScraperResponse(articles_by_source=self.articles_by_source)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:  # noqa: ANN003
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def fake_scraper():
    return FakeScraper


@pytest.fixture
def clock():
    return FakeClock()
