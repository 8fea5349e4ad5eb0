"""
Identity and per-user profile lookup.

Reads from the document store are scoped to the current identity. When
nobody is signed in, reads degrade to empty results and writes are refused
with AuthenticationRequired.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from .config import ProviderConfig, get_api_key
from .errors import DocumentStoreError

if TYPE_CHECKING:
    from .storage.documents import DocumentStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


@dataclass(frozen=True)
class Identity:
    """An authenticated user.

    Attributes:
        uid: Stable user id, stored as userId on owned documents
        email: Optional contact address
    """

    uid: str
    email: str | None = None


class IdentityProvider(ABC):
    @abstractmethod
    async def current_user(self) -> Identity | None:
        """Return the signed-in identity, or None."""
        raise NotImplementedError


class StaticIdentityProvider(IdentityProvider):
    """Identity provider that always reports the same identity (or none)."""

    def __init__(self, identity: Identity | None):
        self.identity = identity

    async def current_user(self) -> Identity | None:
        return self.identity


class ProfileStore(ABC):
    @abstractmethod
    async def llm_api_key(self, identity: Identity | None) -> str | None:
        """Return the LLM API key configured for identity, or None."""
        raise NotImplementedError


class DocumentProfileStore(ProfileStore):
    """Reads the per-user key from the `geminiApiKey` field of the users collection.

    Documents are matched on their `uid` field.
    """

    def __init__(self, store: DocumentStore, field_name: str = "geminiApiKey"):
        self.store = store
        self.field_name = field_name

    async def llm_api_key(self, identity: Identity | None) -> str | None:
        if identity is None:
            return None
        try:
            docs = await self.store.query(USERS_COLLECTION, {"uid": identity.uid})
        except DocumentStoreError as exc:
            logger.error("Error reading profile for %s: %s", identity.uid, exc)
            return None
        for doc in docs:
            key = doc.data.get(self.field_name)
            if key:
                return str(key)
        return None


class ConfigProfileStore(ProfileStore):
    """Falls back to the key configured in ProviderConfig or its environment variable."""

    def __init__(self, cfg: ProviderConfig, primary: ProfileStore | None = None):
        self.cfg = cfg
        self.primary = primary

    async def llm_api_key(self, identity: Identity | None) -> str | None:
        if self.primary is not None:
            key = await self.primary.llm_api_key(identity)
            if key:
                return key
        return get_api_key(self.cfg)
