"""Context composition - formats stored memory for prompt injection.

Two views over an owner's active records:
- summary: facts/insights by importance plus recent day summaries
- relevant: facts/insights ranked against the current user query
"""

import re
from collections.abc import Callable
from datetime import date, datetime

from coachmem.core.logging import get_logger
from coachmem.memory.base import MemoryKind, MemoryRecord, MemoryStore
from coachmem.memory.extraction import normalize_for_dedup
from coachmem.memory.keywords import QUERY_STOPWORDS

logger = get_logger("memory.context")

NO_MEMORY_YET = "No saved long-term memory yet. Build memory from this conversation."
OWNER_NOT_FOUND = "No saved long-term memory found for this user."
SENTINEL_PREFIX = "No saved long-term memory"

SUMMARY_HEADER = "LONG-TERM USER MEMORY:"
RELEVANT_HEADER = "LONG-TERM USER MEMORY (retrieved for current turn):"

PER_KIND_FETCH = 10
SUMMARY_LIMIT_MAX = 10
RELEVANT_LIMIT_MAX = 12
PRIORITY_MIN_SCORE = 4
PRIORITY_LIMIT = 3
SNAPSHOT_LIMIT = 3
MAX_QUERY_TOKENS = 12
MIN_TOKEN_CHARS = 3
MAX_TOKEN_BONUS = 8
MAX_HITS = 6

_KIND_BONUS = {MemoryKind.LONG_TERM_FACT: 2, MemoryKind.USER_INSIGHT: 1}
_NON_WORD = re.compile(r"[\W_]+")
_SCORE_SUFFIX = re.compile(r"\s*\(P\d+\)$")


def _clamp(value: int, upper: int) -> int:
    return max(1, min(value, upper))


def _created_ts(record: MemoryRecord) -> float:
    return record.created_at.timestamp() if record.created_at else float("-inf")


def priority_key(record: MemoryRecord) -> tuple[int, float]:
    """Sort key: importance desc, then newest first."""
    return (-record.importance_score, -_created_ts(record))


def extract_query_tokens(query: str | None) -> list[str]:
    """Lowercase alphanumeric tokens, stopwords removed.

    The first 12 kept tokens count toward the cap, repeats included;
    repeats are dropped afterwards.
    """
    if not query or not query.strip():
        return []
    kept = [
        token
        for token in _NON_WORD.split(query.lower())
        if len(token) >= MIN_TOKEN_CHARS and token not in QUERY_STOPWORDS
    ][:MAX_QUERY_TOKENS]
    return list(dict.fromkeys(kept))


def relevance_score(record: MemoryRecord, query_tokens: list[str]) -> int:
    score = record.importance_score * 2 + _KIND_BONUS.get(record.kind, 0)
    if query_tokens and record.content:
        padded = f" {normalize_for_dedup(record.content)} "
        hits = sum(1 for token in query_tokens if f" {token} " in padded)
        score += min(hits * 2, MAX_TOKEN_BONUS)
    return score


def rank_relevant(
    records: list[MemoryRecord], query_tokens: list[str], limit: int
) -> list[MemoryRecord]:
    profile = [r for r in records if r.kind in _KIND_BONUS]
    profile.sort(key=lambda r: (-relevance_score(r, query_tokens), -_created_ts(r)))
    return profile[:limit]


def _date_label(record: MemoryRecord) -> str:
    return record.reference_date.isoformat() if record.reference_date else "unknown-date"


def _scored_line(record: MemoryRecord) -> str:
    return f"- {record.content} (P{record.importance_score})"


def _dated_line(record: MemoryRecord) -> str:
    return f"- [{_date_label(record)}] {record.content}"


def extract_memory_hits(context: str | None) -> list[str]:
    """Bullet lines of a rendered context, score annotations stripped."""
    if not context or not context.strip() or context.startswith(SENTINEL_PREFIX):
        return []
    hits: list[str] = []
    for line in context.splitlines():
        trimmed = line.strip()
        if not trimmed.startswith("- "):
            continue
        hit = _SCORE_SUFFIX.sub("", trimmed[2:]).strip()
        if hit:
            hits.append(hit)
        if len(hits) >= MAX_HITS:
            break
    return hits


class ContextComposer:
    """Read-only queries over one owner's active memory."""

    def __init__(
        self,
        store: MemoryStore,
        clock: Callable[[], datetime] = datetime.now,
        scan_limit: int | None = None,
    ):
        self.store = store
        self.clock = clock
        self.scan_limit = scan_limit

    def _today(self) -> date:
        return self.clock().date()

    async def summary_context(
        self,
        owner_id: str,
        fact_limit: int = 6,
        insight_limit: int = 8,
        summary_limit: int = 5,
    ) -> str:
        today = self._today()

        facts = await self.store.recent_by_kind(
            owner_id, MemoryKind.LONG_TERM_FACT, PER_KIND_FETCH, today
        )
        facts = sorted(facts, key=priority_key)[:_clamp(fact_limit, SUMMARY_LIMIT_MAX)]

        insights = await self.store.recent_by_kind(
            owner_id, MemoryKind.USER_INSIGHT, PER_KIND_FETCH, today
        )
        insights = sorted(insights, key=priority_key)[:_clamp(insight_limit, SUMMARY_LIMIT_MAX)]

        summaries = await self.store.recent_by_kind(
            owner_id, MemoryKind.DAILY_SUMMARY, PER_KIND_FETCH, today, order="reference"
        )
        summaries = summaries[:_clamp(summary_limit, SUMMARY_LIMIT_MAX)]
        # Oldest first, for narrative order.
        summaries.sort(key=lambda r: (r.reference_date is None, r.reference_date or date.min))

        if not facts and not insights and not summaries:
            return NO_MEMORY_YET

        priority = sorted(
            (m for m in facts + insights if m.importance_score >= PRIORITY_MIN_SCORE),
            key=priority_key,
        )[:PRIORITY_LIMIT]

        lines = [SUMMARY_HEADER]
        if priority:
            lines.append("Priority coaching preferences:")
            lines.extend(f"- {m.content}" for m in priority)
        if facts:
            lines.append("Stable facts:")
            lines.extend(_scored_line(m) for m in facts)
        if insights:
            lines.append("Behavioral insights:")
            lines.extend(_scored_line(m) for m in insights)
        if summaries:
            lines.append("Recent day summaries:")
            lines.extend(_dated_line(m) for m in summaries)
        return "\n".join(lines).strip()

    async def relevant_context(self, owner_id: str, query: str | None, limit: int = 8) -> str:
        active = await self.store.list_active(owner_id, self._today(), self.scan_limit)
        if not active:
            return NO_MEMORY_YET

        tokens = extract_query_tokens(query)
        profile = rank_relevant(active, tokens, _clamp(limit, RELEVANT_LIMIT_MAX))

        summaries = [r for r in active if r.kind == MemoryKind.DAILY_SUMMARY]
        summaries.sort(
            key=lambda r: (r.reference_date is not None, r.reference_date or date.min),
            reverse=True,
        )
        summaries = summaries[:SNAPSHOT_LIMIT]

        if not profile and not summaries:
            return NO_MEMORY_YET

        logger.debug(
            f"Relevant context for {owner_id}: {len(tokens)} tokens, "
            f"{len(profile)} profile, {len(summaries)} snapshots"
        )

        lines = [RELEVANT_HEADER]
        if profile:
            lines.append("Most relevant profile signals:")
            lines.extend(_scored_line(m) for m in profile)
        if summaries:
            lines.append("Recent trajectory snapshots:")
            lines.extend(_dated_line(m) for m in summaries)
        return "\n".join(lines).strip()
