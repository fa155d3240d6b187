"""Coaching memory service - public entry points of the memory engine.

Wires the extractor, persistence gate, context composer and hit tracker
behind owner resolution. Unknown owners get empty/no-op results; storage
errors propagate to direct callers but never out of background ingestion.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

from coachmem.core.config import Settings, get_settings
from coachmem.core.errors import ModelRegistryError
from coachmem.core.logging import get_logger
from coachmem.core.types import Message, recent_user_texts
from coachmem.llm.base import TextCompleter
from coachmem.llm.litellm_adapter import create_completer
from coachmem.memory.base import (
    MemoryKind,
    MemoryRecord,
    MemoryStore,
    OwnerResolver,
    PassthroughOwnerResolver,
)
from coachmem.memory.context import OWNER_NOT_FOUND, ContextComposer, extract_memory_hits
from coachmem.memory.extraction import CandidateExtractor
from coachmem.memory.gate import PersistenceGate
from coachmem.memory.hits import MemoryHitSnapshot, TurnMemoryHitTracker
from coachmem.memory.store import SQLiteMemoryStore

logger = get_logger("memory.service")

RECENT_UTTERANCES = 3
RECENT_MEMORIES_LIMIT = 30


class CoachMemoryService:
    """Long-term coaching memory for many owners."""

    def __init__(
        self,
        store: MemoryStore,
        completer: TextCompleter | None = None,
        settings: Settings | None = None,
        owner_resolver: OwnerResolver | None = None,
        hit_tracker: TurnMemoryHitTracker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.clock = clock
        self.owner_resolver = owner_resolver or PassthroughOwnerResolver()
        self.extractor = CandidateExtractor(
            completer, llm_enabled=self.settings.llm_extraction_enabled
        )
        self.gate = PersistenceGate(store, clock=clock)
        self.composer = ContextComposer(
            store, clock=clock, scan_limit=self.settings.relevance_scan_limit
        )
        self.hits = hit_tracker or TurnMemoryHitTracker(
            ttl=timedelta(minutes=self.settings.hit_ttl_minutes), clock=clock
        )
        self._background: set[asyncio.Task] = set()

    async def _resolve(self, owner_ref: str | None) -> str | None:
        try:
            return await self.owner_resolver.resolve(owner_ref)
        except Exception as e:
            logger.warning(f"Owner resolution failed for {owner_ref!r}: {e}")
            return None

    # Write path

    async def ingest(self, owner_ref: str | None, turn_messages: list[Message] | None) -> int:
        """Extract and persist memory from the latest turn. Returns saved count."""
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return 0

        utterances = recent_user_texts(turn_messages, RECENT_UTTERANCES)
        if not utterances:
            return 0

        candidates = await self.extractor.extract(utterances)
        if not candidates:
            return 0
        return await self.gate.commit(owner_id, candidates)

    def schedule_ingest(
        self, owner_ref: str | None, turn_messages: list[Message] | None
    ) -> asyncio.Task:
        """Run ingest off the turn path. Failures are logged, never raised."""
        task = asyncio.create_task(self._ingest_in_background(owner_ref, list(turn_messages or [])))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _ingest_in_background(self, owner_ref: str | None, turn_messages: list[Message]) -> int:
        try:
            return await asyncio.wait_for(
                self.ingest(owner_ref, turn_messages),
                timeout=self.settings.ingest_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Memory ingestion timed out for {owner_ref}")
        except Exception as e:
            logger.warning(f"Failed to record long-term memory for {owner_ref}: {e}")
        return 0

    async def drain(self) -> None:
        """Wait for in-flight background ingestion, including tasks scheduled meanwhile."""
        while self._background:
            await asyncio.gather(*list(self._background))

    async def save_memory(self, owner_ref: str | None, kind: MemoryKind, content: str | None) -> bool:
        """Direct single-item save ("remember this")."""
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return False
        return await self.gate.save(owner_id, kind, content)

    async def save_user_insight(self, owner_ref: str | None, insight: str | None) -> bool:
        return await self.save_memory(owner_ref, MemoryKind.USER_INSIGHT, insight)

    async def save_long_term_fact(self, owner_ref: str | None, fact: str | None) -> bool:
        return await self.save_memory(owner_ref, MemoryKind.LONG_TERM_FACT, fact)

    # Read path

    async def get_summary_context(
        self,
        owner_ref: str | None,
        fact_limit: int = 6,
        insight_limit: int = 8,
        summary_limit: int = 5,
    ) -> str:
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return OWNER_NOT_FOUND
        return await self.composer.summary_context(
            owner_id, fact_limit, insight_limit, summary_limit
        )

    async def get_relevant_context(
        self, owner_ref: str | None, query_text: str | None, limit: int = 8
    ) -> str:
        """Query-ranked context; also refreshes the owner's hit snapshot."""
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return OWNER_NOT_FOUND
        context = await self.composer.relevant_context(owner_id, query_text, limit)
        self.hits.record(owner_id, extract_memory_hits(context))
        return context

    async def get_latest_hits(self, owner_ref: str | None) -> MemoryHitSnapshot:
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return MemoryHitSnapshot()
        return self.hits.read(owner_id)

    async def list_recent_memories(
        self, owner_ref: str | None, limit: int = RECENT_MEMORIES_LIMIT
    ) -> list[MemoryRecord]:
        """Active memories, newest first."""
        owner_id = await self._resolve(owner_ref)
        if owner_id is None:
            return []
        return await self.store.list_active(owner_id, self.clock().date(), limit)

    async def close(self) -> None:
        await self.drain()
        if hasattr(self.store, "close"):
            await self.store.close()


async def open_memory_service(
    settings: Settings | None = None,
    owner_resolver: OwnerResolver | None = None,
) -> CoachMemoryService:
    """Connect the SQLite store and build a service from settings."""
    settings = settings or get_settings()
    store = SQLiteMemoryStore(settings.db_path)
    await store.connect()

    completer = None
    if settings.llm_extraction_enabled:
        try:
            completer = create_completer(settings)
        except ModelRegistryError as e:
            logger.warning(f"Model-assisted extraction disabled: {e}")

    return CoachMemoryService(
        store,
        completer=completer,
        settings=settings,
        owner_resolver=owner_resolver,
    )
