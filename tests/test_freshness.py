"""Tests for the two-hour cache freshness window."""

from __future__ import annotations

from datetime import timedelta

from news_desk.pipeline.freshness import CACHE_DURATION, CacheFreshnessPolicy
from news_desk.storage.local_cache import ARTICLES_KEY, LAST_FETCHED_KEY, LocalCacheStore


def _policy(tmp_path, clock):
    cache = LocalCacheStore(tmp_path / "cache.json")
    return CacheFreshnessPolicy(cache, clock=clock), cache


def test_never_fetched_is_expired(tmp_path, clock):
    policy, _ = _policy(tmp_path, clock)

    assert policy.last_fetched() is None
    assert policy.is_expired() is True


def test_expiry_boundary_is_strict(tmp_path, clock):
    policy, _ = _policy(tmp_path, clock)
    fetched = clock()
    policy.mark_fetched(fetched)

    assert policy.is_expired(fetched + CACHE_DURATION - timedelta(milliseconds=1)) is False
    assert policy.is_expired(fetched + CACHE_DURATION) is False
    assert policy.is_expired(fetched + CACHE_DURATION + timedelta(milliseconds=1)) is True


def test_mark_fetched_persists_iso_timestamp(tmp_path, clock):
    policy, cache = _policy(tmp_path, clock)

    stamp = policy.mark_fetched()

    assert stamp == "2024-05-01T12:00:00.000Z"
    assert cache.get(LAST_FETCHED_KEY) == stamp
    assert policy.last_fetched() == clock()


def test_unreadable_timestamp_counts_as_expired(tmp_path, clock):
    policy, cache = _policy(tmp_path, clock)
    cache.set(LAST_FETCHED_KEY, "not a date")

    assert policy.is_expired() is True


def test_status_reports_remaining_window(tmp_path, clock):
    policy, cache = _policy(tmp_path, clock)
    cache.set(ARTICLES_KEY, {"articles": [{"id": "a"}, {"id": "b"}], "timestamp": "x"})
    policy.mark_fetched()
    clock.advance(minutes=30)

    status = policy.status()

    assert status.has_cache is True
    assert status.article_count == 2
    assert status.is_expired is False
    assert status.next_refresh_in == timedelta(minutes=90)


def test_status_after_expiry(tmp_path, clock):
    policy, _ = _policy(tmp_path, clock)
    policy.mark_fetched()
    clock.advance(hours=3)

    status = policy.status()

    assert status.has_cache is False
    assert status.is_expired is True
    assert status.next_refresh_in == timedelta(0)
