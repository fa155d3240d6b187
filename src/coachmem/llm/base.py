"""
Text completion interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMConfig:
    """Configuration for a completion call."""

    model: str
    max_tokens: int = 400
    temperature: float = 0.2
    timeout: float = 30.0


@dataclass
class LLMResponse:
    """Response from the completion service."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class TextCompleter(ABC):
    """Outbound text-completion service: system + user prompt in, text out."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Generate a completion.

        Raises:
            CompletionError: service unavailable, timed out, or returned garbage
        """
        ...
