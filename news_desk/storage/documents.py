"""
Remote document store interface and backends.

The document store holds named collections of JSON documents. Three backends
are provided:
1. MemoryDocumentStore: In-process store for tests
2. JsonFileDocumentStore: Memory store persisted to a local JSON file
3. RestDocumentStore: PostgREST-style HTTP API (e.g. Supabase REST)

All operations are coroutines so callers can await them from one event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import copy
import json
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any
import uuid

import httpx

from ..errors import DocumentStoreError

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A stored document.

    Attributes:
        id: Store-assigned document key
        data: Document fields
    """

    id: str
    data: dict[str, Any]


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class DocumentStore(ABC):
    """Create/query/update/delete over named collections."""

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> str:
        """Insert one document and return its key."""
        raise NotImplementedError

    @abstractmethod
    async def batch_write(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        """Insert several documents atomically and return their keys in order."""
        raise NotImplementedError

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        """Return documents whose fields equal every value in filters."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def batch_delete(self, collection: str, doc_ids: list[str]) -> None:
        raise NotImplementedError

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document by key."""
        for doc in await self.query(collection):
            if doc.id == doc_id:
                return doc
        return None

    async def aclose(self) -> None:
        return None


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort before everything else in ascending order
    if value is None:
        return (0, "")
    return (1, value)


class MemoryDocumentStore(DocumentStore):
    """Document store held in process memory.

    Documents are deep-copied on the way in and out so callers cannot mutate
    stored state by accident.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        ids = await self.batch_write(collection, [data])
        return ids[0]

    async def batch_write(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        async with self._lock:
            bucket = self._collections.setdefault(collection, {})
            ids = []
            for data in docs:
                doc_id = new_document_id()
                bucket[doc_id] = copy.deepcopy(data)
                ids.append(doc_id)
            return ids

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        bucket = self._collections.get(collection, {})
        docs = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in bucket.items()
            if all(data.get(key) == value for key, value in (filters or {}).items())
        ]
        if order_by:
            docs.sort(key=lambda doc: _sort_key(doc.data.get(order_by)), reverse=descending)
        return docs

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            bucket = self._collections.get(collection, {})
            if doc_id not in bucket:
                raise DocumentStoreError(f"No document {doc_id} in {collection}")
            bucket[doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)

    async def batch_delete(self, collection: str, doc_ids: list[str]) -> None:
        async with self._lock:
            bucket = self._collections.get(collection, {})
            for doc_id in doc_ids:
                bucket.pop(doc_id, None)


class JsonFileDocumentStore(MemoryDocumentStore):
    """MemoryDocumentStore that is loaded from and saved to one JSON file.

    Every mutation rewrites the whole file, which is fine for a single-user
    desk but not for concurrent processes.
    """

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                with self.path.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
            except (OSError, json.JSONDecodeError) as exc:
                raise DocumentStoreError(f"Cannot read document file {self.path}: {exc}") from exc
            if isinstance(data, dict):
                self._collections = data

    async def batch_write(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        ids = await super().batch_write(collection, docs)
        self._save()
        return ids

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await super().update(collection, doc_id, fields)
        self._save()

    async def delete(self, collection: str, doc_id: str) -> None:
        await super().delete(collection, doc_id)
        self._save()

    async def batch_delete(self, collection: str, doc_ids: list[str]) -> None:
        await super().batch_delete(collection, doc_ids)
        self._save()

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(self._collections, handle, ensure_ascii=False)
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise DocumentStoreError(f"Cannot write document file {self.path}: {exc}") from exc


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class RestDocumentStore(DocumentStore):
    """Document store backed by a PostgREST-style HTTP API.

    Each collection is a table. The document key lives in the column named
    by key_column and is generated client-side so batch inserts can return
    keys without a second round trip.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: float = 30.0,
        key_column: str = "docId",
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.key_column = key_column
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        ids = await self.batch_write(collection, [data])
        return ids[0]

    async def batch_write(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        rows = []
        ids = []
        for data in docs:
            doc_id = new_document_id()
            ids.append(doc_id)
            rows.append({**data, self.key_column: doc_id})
        # A single POST of an array is one transaction on the server side
        await self._request(
            "POST",
            collection,
            json=rows,
            headers={"Prefer": "return=minimal"},
        )
        return ids

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        params = {key: f"eq.{_filter_value(value)}" for key, value in (filters or {}).items()}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        resp = await self._request("GET", collection, params=params)
        rows = resp.json()
        if not isinstance(rows, list):
            raise DocumentStoreError(f"Unexpected payload from {collection}: {type(rows).__name__}")
        docs = []
        for row in rows:
            row = dict(row)
            doc_id = str(row.pop(self.key_column, ""))
            docs.append(Document(id=doc_id, data=row))
        return docs

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            collection,
            params={self.key_column: f"eq.{doc_id}"},
            json=fields,
        )

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._request("DELETE", collection, params={self.key_column: f"eq.{doc_id}"})

    async def batch_delete(self, collection: str, doc_ids: list[str]) -> None:
        if not doc_ids:
            return
        joined = ",".join(doc_ids)
        await self._request("DELETE", collection, params={self.key_column: f"in.({joined})"})

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, collection: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}/{collection}"
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise DocumentStoreError(f"{method} {collection} failed: {type(exc).__name__}: {exc}") from exc
        return resp
