from .errors import InputTooLargeError, PolicyError, SanitizeError, StrictModeError
from .policy import DEFAULT_POLICY, SanitizationPolicy, UrlRule
from .rewriter import Rewriter, iter_events
from .sanitizer import Sanitizer, clean, collect_removals
from .tokens import Removal

__all__ = [
    "DEFAULT_POLICY",
    "InputTooLargeError",
    "PolicyError",
    "Removal",
    "Rewriter",
    "SanitizationPolicy",
    "SanitizeError",
    "Sanitizer",
    "StrictModeError",
    "UrlRule",
    "clean",
    "collect_removals",
    "iter_events",
]
