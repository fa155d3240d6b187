"""Per-owner cache of the memory lines surfaced on the latest turn.

Purely a UI affordance: created empty, lost on restart, entries expire
when read after their TTL. No background sweeper.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

MAX_HITS = 6
DEFAULT_TTL = timedelta(minutes=10)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class MemoryHitSnapshot:
    hits: list[str] = field(default_factory=list)
    updated_at: datetime | None = None


def normalize_hits(hits: list[str] | None) -> list[str]:
    """Trim, collapse whitespace, drop blanks and repeats, keep first 6."""
    unique: list[str] = []
    for hit in hits or []:
        if not hit or not hit.strip():
            continue
        normalized = _WHITESPACE.sub(" ", hit.strip())
        if normalized not in unique:
            unique.append(normalized)
        if len(unique) >= MAX_HITS:
            break
    return unique


class TurnMemoryHitTracker:
    """Latest-turn memory hits keyed by owner.

    Each operation touches a single key with one dict assignment or pop,
    so owners never contend with each other.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = ttl
        self.clock = clock
        self._snapshots: dict[str, MemoryHitSnapshot] = {}

    def record(self, owner_id: str, hits: list[str] | None) -> None:
        """Overwrite the owner's snapshot."""
        if not owner_id or not owner_id.strip():
            return
        self._snapshots[owner_id] = MemoryHitSnapshot(normalize_hits(hits), self.clock())

    def read(self, owner_id: str) -> MemoryHitSnapshot:
        """Snapshot if still fresh; stale entries are evicted."""
        if not owner_id or not owner_id.strip():
            return MemoryHitSnapshot()
        snapshot = self._snapshots.get(owner_id)
        if snapshot is None:
            return MemoryHitSnapshot()
        if snapshot.updated_at is None or snapshot.updated_at < self.clock() - self.ttl:
            self._snapshots.pop(owner_id, None)
            return MemoryHitSnapshot()
        return snapshot

    def __len__(self) -> int:
        return len(self._snapshots)
