"""Rewrite directives issued by the engine, one per event."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class _StrEnum(str, Enum):
    """Backport of enum.StrEnum (Python 3.11+).

    We support Python 3.10+, so we use this small mixin instead.
    """


class Directive(_StrEnum):
    KEEP = "keep"
    REMOVE_ATTRIBUTE = "remove-attribute"
    REPLACE_ATTRIBUTE_VALUE = "replace-attribute-value"
    INSERT_ATTRIBUTE = "insert-attribute"
    REMOVE_ELEMENT_AND_DESCENDANTS = "remove-element-and-descendants"
    REMOVE_ELEMENT_ONLY = "remove-element-only"
    ESCAPE_ELEMENT = "escape-element"
    REPLACE_TEXT = "replace-text"
    REMOVE_TEXT = "remove-text"


@dataclass(frozen=True, slots=True)
class AttributeDecision:
    """What to do with one attribute of a kept start tag.

    `value` is the value to write for KEEP, REPLACE_ATTRIBUTE_VALUE and
    INSERT_ATTRIBUTE; it is None for REMOVE_ATTRIBUTE.
    """

    name: str
    directive: Directive
    value: str | None = None
    reason: str | None = None

    @property
    def emitted(self) -> bool:
        return self.directive is not Directive.REMOVE_ATTRIBUTE
