"""Shared fixtures for memory engine tests."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from coachmem.core.config import Settings
from coachmem.llm.base import TextCompleter
from coachmem.memory.service import CoachMemoryService
from coachmem.memory.store import SQLiteMemoryStore


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubCompleter(TextCompleter):
    """Returns a canned response and records prompts."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 0, 0))


@pytest.fixture
async def memory_store(tmp_path: Path):
    """Create a temporary memory store."""
    store = SQLiteMemoryStore(tmp_path / "test.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, llm_extraction_enabled=False)


@pytest.fixture
def service(memory_store: SQLiteMemoryStore, settings: Settings, clock: FakeClock):
    """Service with model-assisted extraction disabled."""
    return CoachMemoryService(memory_store, settings=settings, clock=clock)
