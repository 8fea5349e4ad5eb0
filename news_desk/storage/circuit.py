"""Failure cooldown for remote document-store reads."""

from __future__ import annotations

import time


def _now_ms() -> float:
    return time.time() * 1000


class CircuitBreaker:
    """Suppresses remote calls for a cooldown window after a failure.

    Attributes:
        cooldown_ms: Length of the suppression window in milliseconds
        last_failure_at: Epoch milliseconds of the last recorded failure, or None
    """

    def __init__(self, cooldown_ms: int = 30000):
        self.cooldown_ms = cooldown_ms
        self.last_failure_at: float | None = None

    def is_open(self, now_ms: float | None = None) -> bool:
        if self.last_failure_at is None:
            return False
        now_ms = _now_ms() if now_ms is None else now_ms
        return now_ms - self.last_failure_at < self.cooldown_ms

    def record_failure(self, now_ms: float | None = None) -> None:
        self.last_failure_at = _now_ms() if now_ms is None else now_ms

    def record_success(self) -> None:
        self.last_failure_at = None
