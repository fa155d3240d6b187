"""
Core module - configuration, shared types, errors.

Components:
- config: Settings management via pydantic-settings
- types: Shared data structures (Message)
- errors: Exception hierarchy
- logging: Structured logging setup
"""

from coachmem.core.config import Settings
from coachmem.core.types import Message

__all__ = ["Settings", "Message"]
