"""Tests for the persistence gate: scoring, expiry, dedup and commit caps."""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from coachmem.core.errors import MemoryStoreError
from coachmem.memory.base import MemoryCandidate, MemoryKind
from coachmem.memory.gate import (
    PersistenceGate,
    compute_expiry,
    compute_importance,
    is_near_duplicate,
)

TODAY = date(2026, 3, 14)


def test_importance_baseline_insight():
    assert compute_importance(MemoryKind.USER_INSIGHT, "I lose focus after lunch.") == 3


def test_importance_fact_with_durable_keyword():
    assert compute_importance(MemoryKind.LONG_TERM_FACT, "I prefer mornings.") == 5


def test_importance_volatile_and_long_content():
    content = "Maybe I will try something new this week. " + "x" * 160
    assert compute_importance(MemoryKind.USER_INSIGHT, content) == 1


def test_importance_bounds():
    """Scores always land in 1..5."""
    samples = [
        "",
        "I prefer to work every morning and evening, always on schedule.",
        "maybe today sometimes yesterday this week " * 10,
        "x" * 500,
    ]
    for kind in MemoryKind:
        for content in samples:
            assert 1 <= compute_importance(kind, content) <= 5


def test_expiry_rules():
    assert compute_expiry(MemoryKind.LONG_TERM_FACT, 5, TODAY) is None
    assert compute_expiry(MemoryKind.DAILY_SUMMARY, 2, TODAY) == TODAY + timedelta(days=35)
    assert compute_expiry(MemoryKind.USER_INSIGHT, 4, TODAY) == TODAY + timedelta(days=180)
    assert compute_expiry(MemoryKind.USER_INSIGHT, 3, TODAY) == TODAY + timedelta(days=90)


def test_near_duplicate_exact_and_containment():
    assert is_near_duplicate("i prefer mornings", "i prefer mornings")
    assert is_near_duplicate("i work nights at the hospital", "i work nights at the hospital on weekends")
    # Contained string shorter than 20 chars is not enough.
    assert not is_near_duplicate("i work nights", "i work nights at the hospital")
    assert not is_near_duplicate("i like tea a lot", "i like coffee a lot")


@pytest.mark.asyncio
async def test_save_sets_score_expiry_and_reference_date(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)

    assert await gate.save("alice", MemoryKind.USER_INSIGHT, "  I procrastinate on work emails.  ")

    [record] = await memory_store.list_active("alice", TODAY)
    assert record.content == "I procrastinate on work emails."
    assert record.importance_score == 4
    assert record.expires_at == TODAY + timedelta(days=180)
    assert record.reference_date == TODAY
    assert record.created_at == clock.now


@pytest.mark.asyncio
async def test_save_rejects_short_or_empty(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)

    assert not await gate.save("alice", MemoryKind.LONG_TERM_FACT, "")
    assert not await gate.save("alice", MemoryKind.LONG_TERM_FACT, "   ")
    assert not await gate.save("alice", MemoryKind.LONG_TERM_FACT, "I... run!")
    assert await memory_store.count("alice") == 0


@pytest.mark.asyncio
async def test_duplicate_check_is_per_kind(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)

    assert await gate.save("alice", MemoryKind.LONG_TERM_FACT, "I train before work.")
    assert await gate.save("alice", MemoryKind.USER_INSIGHT, "I train before work.")
    assert not await gate.save("alice", MemoryKind.USER_INSIGHT, "i train before WORK")


@pytest.mark.asyncio
async def test_duplicate_check_is_per_owner(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)

    assert await gate.save("alice", MemoryKind.LONG_TERM_FACT, "I train before work.")
    assert await gate.save("bob", MemoryKind.LONG_TERM_FACT, "I train before work.")


@pytest.mark.asyncio
async def test_expired_record_does_not_block_resave(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)

    assert await gate.save("alice", MemoryKind.USER_INSIGHT, "I lose focus after lunch.")
    clock.advance(days=91)
    assert await gate.save("alice", MemoryKind.USER_INSIGHT, "I lose focus after lunch.")


@pytest.mark.asyncio
async def test_commit_caps_at_three(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)
    candidates = [
        MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I prefer morning workouts."),
        MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I commute by bike on weekdays."),
        MemoryCandidate(MemoryKind.USER_INSIGHT, "I get distracted by my phone."),
        MemoryCandidate(MemoryKind.USER_INSIGHT, "I lose motivation after travel."),
    ]

    assert await gate.commit("alice", candidates) == 3

    contents = {r.content for r in await memory_store.list_active("alice", TODAY)}
    assert "I lose motivation after travel." not in contents


@pytest.mark.asyncio
async def test_commit_skips_batch_repeats_and_rejections(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)
    candidates = [
        MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I prefer morning workouts."),
        MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I prefer morning workouts!"),
        MemoryCandidate(MemoryKind.USER_INSIGHT, "Short."),
        MemoryCandidate(MemoryKind.USER_INSIGHT, "I get distracted by my phone."),
    ]

    assert await gate.commit("alice", candidates) == 2


@pytest.mark.asyncio
async def test_commit_without_owner_saves_nothing(memory_store, clock):
    gate = PersistenceGate(memory_store, clock=clock)
    candidates = [MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I prefer morning workouts.")]

    assert await gate.commit("", candidates) == 0


@pytest.mark.asyncio
async def test_storage_error_propagates_after_partial_commit(memory_store, clock):
    """Earlier saves stay committed when a later insert fails."""
    gate = PersistenceGate(memory_store, clock=clock)
    real_insert = memory_store.insert
    inserts = 0

    async def flaky_insert(record):
        nonlocal inserts
        inserts += 1
        if inserts > 1:
            raise MemoryStoreError("disk full")
        return await real_insert(record)

    memory_store.insert = AsyncMock(side_effect=flaky_insert)
    candidates = [
        MemoryCandidate(MemoryKind.LONG_TERM_FACT, "I prefer morning workouts."),
        MemoryCandidate(MemoryKind.USER_INSIGHT, "I get distracted by my phone."),
    ]

    with pytest.raises(MemoryStoreError):
        await gate.commit("alice", candidates)

    memory_store.insert = real_insert
    assert await memory_store.count("alice") == 1
