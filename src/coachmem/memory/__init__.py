"""
Memory module - long-term coaching memory.

Pipeline:
- extraction: utterances -> candidates (model-assisted, then heuristic)
- gate: dedup, importance score, expiry, commit
- context: summary and query-relevant context rendering
- hits: per-owner cache of lines surfaced on the latest turn

Storage: SQLite (append-only, per-owner)
"""

from coachmem.memory.base import MemoryCandidate, MemoryKind, MemoryRecord
from coachmem.memory.hits import MemoryHitSnapshot
from coachmem.memory.service import CoachMemoryService, open_memory_service

__all__ = [
    "CoachMemoryService",
    "MemoryCandidate",
    "MemoryHitSnapshot",
    "MemoryKind",
    "MemoryRecord",
    "open_memory_service",
]
