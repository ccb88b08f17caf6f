"""Custom exceptions for prattention."""


class PrAttentionError(Exception):
    """Base exception for all prattention errors."""


class ConfigError(PrAttentionError):
    """Configuration-related errors."""


class CodeOwnersError(PrAttentionError):
    """A CODEOWNERS file that cannot be resolved as a whole."""


class UndefinedGroupError(CodeOwnersError):
    """Raised when an owner list references a group that is never declared."""

    def __init__(self, group: str):
        super().__init__(f"Undefined group in CODEOWNERS: '{group}'")
        self.group = group


class CyclicGroupError(CodeOwnersError):
    """Raised when groups are nested inside themselves."""

    def __init__(self, cycle: list[str]):
        super().__init__(f"Cyclic group nesting in CODEOWNERS: {' -> '.join(cycle)}")
        self.cycle = cycle


class PatternError(PrAttentionError, ValueError):
    """Invalid glob syntax in a path pattern."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Bad path pattern '{pattern}': {reason}")
        self.pattern = pattern


class SourceFetchError(PrAttentionError):
    """Source file retrieval errors (other than "not found")."""


class StoreError(PrAttentionError):
    """Document persistence errors."""
