"""
Local JSON key/value cache.

The local cache is a disposable accelerator: it can always be rebuilt from
the document store plus a fresh scraper pull. Read and write failures are
logged and never raised.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

logger = logging.getLogger(__name__)

ARTICLES_KEY = "news_desk.articles"
LAST_FETCHED_KEY = "news_desk.last_fetched"


class LocalCacheStore:
    """Key/value store persisted as a single JSON object on disk.

    Attributes:
        path: JSON file holding every key
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None when absent or unreadable."""
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)

    def clear(self) -> None:
        self._dump({})

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error reading local cache %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Local cache %s is not a JSON object; ignoring", self.path)
            return {}
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error writing local cache %s: %s", self.path, exc)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
