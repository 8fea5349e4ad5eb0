"""
Cache freshness policy.

The local cache is considered expired when no scraper pull has been
recorded, or when more than CACHE_DURATION has passed since the last one.
The last-fetch timestamp is written only by the path that actually talks to
the scraper API.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from ..storage.local_cache import ARTICLES_KEY, LAST_FETCHED_KEY, LocalCacheStore
from ..utils.timeutil import parse_iso, to_iso, utc_now

CACHE_DURATION = timedelta(hours=2)


@dataclass
class CacheStatus:
    """Snapshot of the local cache.

    Attributes:
        has_cache: Whether a non-empty article list is cached
        article_count: Number of cached articles
        last_fetched: ISO timestamp of the last scraper pull, or None
        is_expired: Freshness verdict
        next_refresh_in: Time left before expiry (zero when expired)
    """

    has_cache: bool
    article_count: int
    last_fetched: str | None
    is_expired: bool
    next_refresh_in: timedelta


class CacheFreshnessPolicy:
    def __init__(
        self,
        cache: LocalCacheStore,
        duration: timedelta = CACHE_DURATION,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.cache = cache
        self.duration = duration
        self.clock = clock

    def last_fetched(self) -> datetime | None:
        return parse_iso(self.cache.get(LAST_FETCHED_KEY))

    def is_expired(self, now: datetime | None = None) -> bool:
        last = self.last_fetched()
        if last is None:
            return True
        now = now or self.clock()
        return now - last > self.duration

    def mark_fetched(self, now: datetime | None = None) -> str:
        stamp = to_iso(now or self.clock())
        self.cache.set(LAST_FETCHED_KEY, stamp)
        return stamp

    def status(self, now: datetime | None = None) -> CacheStatus:
        now = now or self.clock()
        payload = self.cache.get(ARTICLES_KEY)
        articles = payload.get("articles") if isinstance(payload, dict) else None
        count = len(articles) if isinstance(articles, list) else 0
        last = self.last_fetched()
        if last is None:
            remaining = timedelta(0)
        else:
            remaining = max(self.duration - (now - last), timedelta(0))
        return CacheStatus(
            has_cache=count > 0,
            article_count=count,
            last_fetched=to_iso(last) if last else None,
            is_expired=self.is_expired(now),
            next_refresh_in=remaining,
        )
