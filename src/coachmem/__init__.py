"""
Coachmem - long-term coaching memory engine.

Package structure:
- core: Config, logging, errors, shared types
- llm: Text completion abstraction (litellm-backed)
- memory: Extraction, persistence gate, retrieval, turn hit cache
"""

__version__ = "0.1.0"
