"""Exception hierarchy for the memory engine."""


class CoachMemoryError(Exception):
    """Base class for all coachmem errors."""


class MemoryStoreError(CoachMemoryError):
    """Storage backend failed to read or write memory records."""


class CompletionError(CoachMemoryError):
    """Text completion service call failed."""


class ModelRegistryError(CoachMemoryError):
    """Model registry missing, malformed, or model unavailable."""
