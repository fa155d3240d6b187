"""Tests for shared types."""

from coachmem.core.types import Message, recent_user_texts


def test_recent_user_texts_oldest_first():
    messages = [
        Message(role="user", content="one"),
        Message(role="assistant", content="reply"),
        Message(role="user", content="  "),
        Message(role="user", content=" two "),
        Message(role="user", content="three"),
        Message(role="user", content="four"),
    ]
    assert recent_user_texts(messages) == ["two", "three", "four"]
    assert recent_user_texts(messages, limit=1) == ["four"]


def test_recent_user_texts_empty():
    assert recent_user_texts(None) == []
    assert recent_user_texts([Message(role="assistant", content="hi")]) == []
