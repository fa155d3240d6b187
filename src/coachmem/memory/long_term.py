"""Agent-facing long-term memory hooks.

The chat agent calls `record()` after each turn and `retrieve()` before
generating a reply. Neither ever raises: memory problems must not break
the conversation.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from coachmem.core.logging import get_logger
from coachmem.core.types import Message
from coachmem.memory.service import CoachMemoryService

logger = get_logger("memory.long_term")

USER_THREAD_PREFIX = "user-"
RETRIEVE_LIMIT = 8

UserLookup = Callable[[int], Awaitable[str | None]]


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_user_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def last_user_message(messages: list[Message] | None) -> Message | None:
    """Last user message, or the last message if none is from the user."""
    if not messages:
        return None
    for msg in reversed(messages):
        if msg is not None and msg.is_user:
            return msg
    return messages[-1]


class CoachLongTermMemory:
    """Owner-resolving wrapper around CoachMemoryService for the chat agent."""

    def __init__(
        self,
        service: CoachMemoryService,
        user_lookup: UserLookup | None = None,
    ):
        self.service = service
        self.user_lookup = user_lookup

    async def owner_from_metadata(self, metadata: dict[str, Any] | None) -> str | None:
        """Owner key from message metadata.

        Order: email / user_email, then user_id / uid, then a
        thread_id / conversation_id of the form "user-<id>".
        """
        if not metadata:
            return None

        email = _as_text(metadata.get("email")) or _as_text(metadata.get("user_email"))
        if email:
            return email

        raw_id = metadata.get("user_id")
        if raw_id is None:
            raw_id = metadata.get("uid")
        user_id = _parse_user_id(raw_id)
        if user_id is not None:
            return await self._lookup(user_id)

        thread_id = _as_text(metadata.get("thread_id")) or _as_text(metadata.get("conversation_id"))
        if thread_id and thread_id.startswith(USER_THREAD_PREFIX):
            parsed = _parse_user_id(thread_id[len(USER_THREAD_PREFIX):])
            if parsed is not None:
                return await self._lookup(parsed)

        return None

    async def _lookup(self, user_id: int) -> str | None:
        if self.user_lookup is None:
            return None
        return await self.user_lookup(user_id)

    async def record(self, messages: list[Message] | None) -> asyncio.Task | None:
        """Schedule background ingestion of a finished turn."""
        try:
            probe = last_user_message(messages)
            if probe is None:
                return None
            owner = await self.owner_from_metadata(probe.metadata)
            if not owner:
                return None
            return self.service.schedule_ingest(owner, messages)
        except Exception as e:
            logger.warning(f"Failed to record long-term memory: {e}")
            return None

    async def retrieve(self, message: Message | None) -> str:
        """Relevant memory context for the incoming message, or ""."""
        try:
            if message is None:
                return ""
            owner = await self.owner_from_metadata(message.metadata)
            if not owner:
                return ""
            return await self.service.get_relevant_context(owner, message.content, RETRIEVE_LIMIT)
        except Exception as e:
            logger.warning(f"Failed to retrieve long-term memory: {e}")
            return ""
