"""Exceptions raised by htmlscrub.

Sanitizing itself never fails on bad markup; these cover misconfiguration,
opt-in limits and strict mode.
"""

from __future__ import annotations

from .tokens import Removal


class SanitizeError(Exception):
    """Base class for all htmlscrub errors."""


class PolicyError(SanitizeError, ValueError):
    """A SanitizationPolicy was constructed with invalid settings."""


class InputTooLargeError(SanitizeError, ValueError):
    """Input is longer than the sanitizer's configured max_input_length."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Input of {length} characters exceeds the limit of {limit}")


class StrictModeError(SanitizeError):
    """Raised in strict mode on the first removal."""

    def __init__(self, removal: Removal) -> None:
        self.removal = removal
        super().__init__(str(removal))
