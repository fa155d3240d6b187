"""
Memory record types and collaborator interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class MemoryKind(Enum):
    DAILY_SUMMARY = "DAILY_SUMMARY"
    USER_INSIGHT = "USER_INSIGHT"
    LONG_TERM_FACT = "LONG_TERM_FACT"


DEFAULT_IMPORTANCE = 3


@dataclass(frozen=True)
class MemoryRecord:
    """Persisted memory about one owner. Never mutated after creation."""

    id: str
    owner_id: str
    kind: MemoryKind
    content: str
    created_at: datetime
    reference_date: date | None = None
    importance_score: int = DEFAULT_IMPORTANCE  # 1-5
    expires_at: date | None = None  # None = never expires

    def is_active(self, today: date) -> bool:
        return self.expires_at is None or self.expires_at >= today


@dataclass(frozen=True)
class MemoryCandidate:
    """Unpersisted (kind, content) proposal produced by extraction."""

    kind: MemoryKind
    content: str


class MemoryStore(ABC):
    """Append-only, per-owner memory storage."""

    @abstractmethod
    async def insert(self, record: MemoryRecord) -> str:
        """Persist a record, return its ID."""
        ...

    @abstractmethod
    async def recent_by_kind(
        self,
        owner_id: str,
        kind: MemoryKind,
        limit: int,
        today: date,
        order: str = "created",
    ) -> list[MemoryRecord]:
        """Most recent active records of one kind.

        order: "created" (created_at desc) or "reference" (reference_date desc)
        """
        ...

    @abstractmethod
    async def list_active(
        self,
        owner_id: str,
        today: date,
        limit: int | None = None,
    ) -> list[MemoryRecord]:
        """Active records of all kinds, newest first."""
        ...


class OwnerResolver(ABC):
    """Maps a caller-supplied owner reference to a stable owner key."""

    @abstractmethod
    async def resolve(self, owner_ref: str | None) -> str | None:
        """Return the owner key, or None if the reference is unknown."""
        ...


class PassthroughOwnerResolver(OwnerResolver):
    """Accepts any non-blank reference as its own key."""

    async def resolve(self, owner_ref: str | None) -> str | None:
        if owner_ref is None:
            return None
        key = str(owner_ref).strip()
        return key or None


class KnownOwnerResolver(OwnerResolver):
    """Accepts only references from a fixed set of owners."""

    def __init__(self, owners: set[str]):
        self._owners = frozenset(owners)

    async def resolve(self, owner_ref: str | None) -> str | None:
        if owner_ref is None:
            return None
        key = str(owner_ref).strip()
        return key if key in self._owners else None
