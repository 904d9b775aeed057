"""Escaping and tag serialization for sanitized output."""

from __future__ import annotations

from collections.abc import Iterable


def escape_text(text: str | None) -> str:
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attr_value(value: str | None) -> str:
    if value is None:
        return ""
    # Escaping < and > as well keeps values inert if a browser re-parses the
    # output in a raw text context (e.g. <noscript> with scripting on).
    return escape_text(value).replace('"', "&quot;")


def serialize_start_tag(name: str, attrs: Iterable[tuple[str, str | None]] | None = None) -> str:
    parts: list[str] = ["<", name]
    for key, value in attrs or ():
        # Empty values are written as bare boolean attributes.
        if not value:
            parts.extend([" ", key])
            continue
        parts.extend([" ", key, '="', escape_attr_value(value), '"'])
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def escape_tag(name: str, attrs: Iterable[tuple[str, str | None]] | None = None, *, end: bool = False) -> str:
    """Render a tag as inert text, e.g. `&lt;font size="20"&gt;`."""
    if end:
        return escape_text(f"</{name}>")
    parts: list[str] = ["<", name]
    for key, value in attrs or ():
        parts.extend([" ", key, '="', value or "", '"'])
    parts.append(">")
    return escape_text("".join(parts))
