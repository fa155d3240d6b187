"""LiteLLM adapter - text completion over any provider in the model registry."""

import os
from pathlib import Path
from typing import Any

import litellm
import yaml
from litellm import acompletion

from coachmem.core.config import Settings
from coachmem.core.errors import CompletionError, ModelRegistryError
from coachmem.core.logging import get_logger
from coachmem.llm.base import LLMConfig, LLMResponse, TextCompleter

logger = get_logger("llm.litellm_adapter")

# Disable LiteLLM's verbose logging
litellm.suppress_debug_info = True

DEFAULT_REGISTRY_PATH = Path(__file__).parent.parent / "configs" / "models.yaml"


class ModelConfig:
    """Model configuration from YAML."""

    def __init__(self, data: dict[str, Any]):
        self.model_id = data["model_id"]
        self.litellm_name = data["litellm_name"]
        self.provider = data.get("provider", "")
        self.cost_per_1m_input = data.get("cost_per_1m_input", 0.0)
        self.cost_per_1m_output = data.get("cost_per_1m_output", 0.0)
        self.auth_env = data.get("auth_env")
        self.base_url_env = data.get("base_url_env")

    @property
    def api_key(self) -> str | None:
        """Get API key from environment."""
        if not self.auth_env:
            return None
        return os.getenv(self.auth_env)

    @property
    def base_url(self) -> str | None:
        """Get base URL from environment."""
        if not self.base_url_env:
            return None
        return os.getenv(self.base_url_env)

    @property
    def is_available(self) -> bool:
        """Check if model is available (has required credentials)."""
        if self.auth_env and not self.api_key:
            return False
        if self.base_url_env and not self.base_url:
            return False
        return True


class ModelRegistry:
    """Load and manage model configurations from YAML."""

    def __init__(self, config_path: Path | str = DEFAULT_REGISTRY_PATH):
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
            self.models = {m["model_id"]: ModelConfig(m) for m in data["models"]}
        except (OSError, yaml.YAMLError, KeyError, TypeError) as e:
            raise ModelRegistryError(f"Cannot load model registry {config_path}: {e}") from e

        logger.debug(f"Loaded {len(self.models)} models from registry")

    def get(self, model_id: str) -> ModelConfig | None:
        """Get model config by ID."""
        return self.models.get(model_id)

    def require(self, model_id: str) -> ModelConfig:
        """Get an available model config or raise."""
        model_config = self.get(model_id)
        if not model_config:
            raise ModelRegistryError(f"Model {model_id} not in registry")
        if not model_config.is_available:
            raise ModelRegistryError(
                f"Model {model_id} not available (missing credentials/config)"
            )
        return model_config


class LiteLLMCompleter(TextCompleter):
    """TextCompleter backed by litellm.acompletion."""

    def __init__(self, model_config: ModelConfig, config: LLMConfig):
        self.model_config = model_config
        self.config = config

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.complete_full(system_prompt, user_prompt)
        return response.content

    async def complete_full(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Call the model and return content with usage accounting."""
        params: dict[str, Any] = {
            "model": self.model_config.litellm_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "timeout": self.config.timeout,
        }
        if self.model_config.api_key:
            params["api_key"] = self.model_config.api_key
        if self.model_config.base_url:
            params["api_base"] = self.model_config.base_url

        logger.debug(
            f"LiteLLM request: model_id={self.config.model}, "
            f"provider={self.model_config.provider}, "
            f"litellm_name={self.model_config.litellm_name}"
        )

        try:
            response = await acompletion(**params)
        except Exception as e:
            raise CompletionError(f"LiteLLM error for {self.model_config.model_id}: {e}") from e

        content = response.choices[0].message.content or ""

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        cost_usd = (
            (input_tokens / 1_000_000) * self.model_config.cost_per_1m_input
            + (output_tokens / 1_000_000) * self.model_config.cost_per_1m_output
        )

        logger.debug(
            f"LiteLLM response: model={response.model}, "
            f"tokens={input_tokens}+{output_tokens}, "
            f"cost=${cost_usd:.4f}"
        )

        return LLMResponse(
            content=content,
            model=response.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost_usd,
        )


def create_completer(
    settings: Settings,
    registry: ModelRegistry | None = None,
) -> LiteLLMCompleter:
    """Build the extraction completer from settings and the model registry."""
    registry = registry or ModelRegistry()
    model_config = registry.require(settings.extraction_model)
    return LiteLLMCompleter(
        model_config,
        LLMConfig(
            model=settings.extraction_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
        ),
    )
