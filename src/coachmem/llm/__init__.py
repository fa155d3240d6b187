"""
LLM module - text completion abstraction.

- base: TextCompleter interface and call configuration
- litellm_adapter: litellm-backed completer driven by the YAML model registry

Used only by the model-assisted memory extraction tier.
"""
