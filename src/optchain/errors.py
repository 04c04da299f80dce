"""Exception hierarchy for optchain.

Only the library's own failures live here. Exceptions raised by caller
callbacks are never wrapped: unguarded combinators let them through as-is and
guarded combinators capture them verbatim in an ``Outcome``.
"""

from __future__ import annotations


class OptchainError(Exception):
    """Base exception for all optchain errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message, followed by the hint when one is attached."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(OptchainError):
    """Configuration validation or resolution failed."""
