"""Tests for the turn memory-hit tracker."""

from datetime import timedelta

from coachmem.memory.hits import MemoryHitSnapshot, TurnMemoryHitTracker, normalize_hits


def test_normalize_hits():
    hits = ["  I prefer   mornings. ", "", "   ", "I prefer mornings.", "i prefer mornings."]
    assert normalize_hits(hits) == ["I prefer mornings.", "i prefer mornings."]
    assert normalize_hits(None) == []


def test_normalize_hits_caps_at_six():
    assert normalize_hits([f"hit {i}" for i in range(10)]) == [f"hit {i}" for i in range(6)]


def test_record_and_read(clock):
    tracker = TurnMemoryHitTracker(clock=clock)
    tracker.record("alice", ["I prefer mornings."])

    snapshot = tracker.read("alice")
    assert snapshot.hits == ["I prefer mornings."]
    assert snapshot.updated_at == clock.now


def test_record_overwrites(clock):
    tracker = TurnMemoryHitTracker(clock=clock)
    tracker.record("alice", ["old"])
    clock.advance(minutes=1)
    tracker.record("alice", ["new"])

    snapshot = tracker.read("alice")
    assert snapshot.hits == ["new"]
    assert snapshot.updated_at == clock.now


def test_snapshot_expires_after_ttl(clock):
    tracker = TurnMemoryHitTracker(clock=clock)
    tracker.record("alice", ["I prefer mornings."])

    clock.advance(minutes=9, seconds=59)
    assert tracker.read("alice").hits == ["I prefer mornings."]

    clock.advance(seconds=2)
    assert tracker.read("alice") == MemoryHitSnapshot(hits=[], updated_at=None)
    assert len(tracker) == 0


def test_custom_ttl(clock):
    tracker = TurnMemoryHitTracker(ttl=timedelta(seconds=30), clock=clock)
    tracker.record("alice", ["hit"])
    clock.advance(seconds=31)
    assert tracker.read("alice").updated_at is None


def test_owners_are_independent(clock):
    tracker = TurnMemoryHitTracker(clock=clock)
    tracker.record("alice", ["a"])
    tracker.record("bob", ["b"])

    assert tracker.read("alice").hits == ["a"]
    assert tracker.read("bob").hits == ["b"]
    assert tracker.read("carol") == MemoryHitSnapshot()


def test_blank_owner_ignored(clock):
    tracker = TurnMemoryHitTracker(clock=clock)
    tracker.record("  ", ["a"])
    assert len(tracker) == 0
    assert tracker.read("") == MemoryHitSnapshot()
