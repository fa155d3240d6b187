"""
Shared type definitions.

Core data structures used across modules.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Message:
    """Conversation message as handed over by the chat layer."""

    role: str  # "user" | "assistant" | "system"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_user(self) -> bool:
        return self.role == "user"


def recent_user_texts(messages: list[Message] | None, limit: int = 3) -> list[str]:
    """Last `limit` non-blank user utterances, oldest first."""
    collected: list[str] = []
    for msg in reversed(messages or []):
        if len(collected) >= limit:
            break
        if msg is None or not msg.is_user:
            continue
        text = (msg.content or "").strip()
        if text:
            collected.append(text)
    collected.reverse()
    return collected
