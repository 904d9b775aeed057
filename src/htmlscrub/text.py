"""Text and comment handling.

Text is escaped and kept unless it sits inside a discarded subtree.
Comments, doctypes and processing instructions never reach the output:
they render nothing and conditional comments have been used to smuggle
markup past sanitizers.
"""

from __future__ import annotations

from .constants import TABLE_CHILDREN
from .directives import Directive
from .serialize import escape_text
from .stack import ElementStack


def handle_text(stack: ElementStack, data: str) -> tuple[Directive, str | None]:
    if not data or stack.currently_discarding():
        return Directive.REMOVE_TEXT, None
    parent = stack.kept_parent()
    # Only whitespace may sit directly in a table section; the parser moves
    # any other text out in front of the table.
    if parent is not None and parent.name in TABLE_CHILDREN and data.strip(" \t\n\f\r"):
        return Directive.REMOVE_TEXT, None
    return Directive.REPLACE_TEXT, escape_text(data)


def handle_comment() -> tuple[Directive, None]:
    return Directive.REMOVE_TEXT, None


def handle_doctype() -> tuple[Directive, None]:
    return Directive.REMOVE_TEXT, None
