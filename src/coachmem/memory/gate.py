"""Persistence gate - dedup, score, expire and commit memory candidates."""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from uuid import uuid4

from coachmem.core.logging import get_logger
from coachmem.memory.base import (
    DEFAULT_IMPORTANCE,
    MemoryCandidate,
    MemoryKind,
    MemoryRecord,
    MemoryStore,
)
from coachmem.memory.extraction import normalize_for_dedup
from coachmem.memory.keywords import DURABILITY_KEYWORDS, VOLATILITY_KEYWORDS, contains_any

logger = get_logger("memory.gate")

MAX_SAVED_PER_COMMIT = 3
MIN_NORMALIZED_CHARS = 8
DEDUP_WINDOW = 20  # recent same-kind records compared against
NEAR_DUPLICATE_MIN_CHARS = 20
LONG_CONTENT_CHARS = 180

SUMMARY_TTL = timedelta(days=35)
STRONG_INSIGHT_TTL = timedelta(days=180)
INSIGHT_TTL = timedelta(days=90)


def compute_importance(kind: MemoryKind, content: str | None) -> int:
    """Hand-tuned 1-5 retention priority."""
    text = (content or "").lower()
    score = DEFAULT_IMPORTANCE

    if kind == MemoryKind.LONG_TERM_FACT:
        score += 1
    if contains_any(text, DURABILITY_KEYWORDS):
        score += 1
    if contains_any(text, VOLATILITY_KEYWORDS):
        score -= 1
    if len(text) > LONG_CONTENT_CHARS:
        score -= 1

    return max(1, min(5, score))


def compute_expiry(kind: MemoryKind, importance: int, today: date) -> date | None:
    if kind == MemoryKind.LONG_TERM_FACT:
        return None
    if kind == MemoryKind.DAILY_SUMMARY:
        return today + SUMMARY_TTL
    # Stronger insights live longer.
    if importance >= 4:
        return today + STRONG_INSIGHT_TTL
    return today + INSIGHT_TTL


def is_near_duplicate(existing: str, candidate: str) -> bool:
    """Equal, or one contains the other and the contained one is >= 20 chars."""
    if existing == candidate:
        return True
    if len(existing) >= NEAR_DUPLICATE_MIN_CHARS and existing in candidate:
        return True
    if len(candidate) >= NEAR_DUPLICATE_MIN_CHARS and candidate in existing:
        return True
    return False


class PersistenceGate:
    """Turns candidates into stored records, rejecting repeats and noise.

    Each save is its own store transaction; a storage error aborts the
    remaining candidates but leaves earlier saves in place.
    """

    def __init__(self, store: MemoryStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def save(self, owner_id: str, kind: MemoryKind, content: str | None) -> bool:
        """Save one memory. False when empty, too short or a duplicate."""
        if not owner_id or kind is None or not content or not content.strip():
            return False

        normalized = normalize_for_dedup(content)
        if len(normalized) < MIN_NORMALIZED_CHARS:
            logger.debug(f"Rejected short memory for {owner_id}: {content!r}")
            return False

        now = self.clock()
        today = now.date()

        recent = await self.store.recent_by_kind(owner_id, kind, DEDUP_WINDOW, today)
        for record in recent:
            if not record.content:
                continue
            if is_near_duplicate(normalize_for_dedup(record.content), normalized):
                logger.debug(f"Rejected duplicate {kind.value} for {owner_id}: {content!r}")
                return False

        importance = compute_importance(kind, content)
        record = MemoryRecord(
            id=str(uuid4()),
            owner_id=owner_id,
            kind=kind,
            content=content.strip(),
            # Keep timeline display consistent for all kinds.
            reference_date=today,
            importance_score=importance,
            expires_at=compute_expiry(kind, importance, today),
            created_at=now,
        )
        await self.store.insert(record)
        return True

    async def commit(self, owner_id: str, candidates: list[MemoryCandidate]) -> int:
        """Save up to 3 candidates in order, return how many were saved."""
        if not owner_id or not candidates:
            return 0

        saved = 0
        seen: set[str] = set()
        for candidate in candidates:
            key = f"{candidate.kind.value}|{normalize_for_dedup(candidate.content)}"
            if key in seen:
                continue
            seen.add(key)

            if await self.save(owner_id, candidate.kind, candidate.content):
                saved += 1
            if saved >= MAX_SAVED_PER_COMMIT:
                break

        if saved:
            logger.info(f"Saved {saved} memories for {owner_id}")
        return saved
