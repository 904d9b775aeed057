"""Streaming tokenizer adapter and output rewriter.

html5lib does the tokenizing and the tree-construction error recovery: it
parses the input as a fragment (as if assigned to a <div>'s innerHTML) and
its tree walker yields a balanced token stream, even for malformed input.
`iter_events` turns that stream into htmlscrub's own event objects.

`Rewriter` is the other half of the collaboration: the engine hands it one
directive per event and it appends the resulting markup to its output.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import html5lib
from html5lib.constants import namespaces as _NAMESPACES

from .constants import HTML_NAMESPACE, NEWLINE_SENSITIVE_ELEMENTS, VOID_ELEMENTS
from .directives import AttributeDecision, Directive
from .serialize import escape_tag, serialize_end_tag, serialize_start_tag
from .tokens import Characters, Comment, Doctype, EndTag, StartTag

Event = StartTag | EndTag | Characters | Comment | Doctype

_TEXT_TOKENS = frozenset({"Characters", "SpaceCharacters"})
_NAMESPACE_PREFIXES = {uri: prefix for prefix, uri in _NAMESPACES.items()}


def _attribute_name(namespace: str | None, name: str) -> str:
    if namespace is None:
        return name
    prefix = _NAMESPACE_PREFIXES.get(namespace)
    return f"{prefix}:{name}" if prefix else name


def _attributes(data) -> list[tuple[str, str]]:
    if not data:
        return []
    return [(_attribute_name(namespace, name), value) for (namespace, name), value in data.items()]


def _is_void(name: str, namespace: str | None) -> bool:
    return (namespace is None or namespace == HTML_NAMESPACE) and name in VOID_ELEMENTS


def iter_events(markup: str, *, container: str = "div") -> Iterator[Event]:
    """Yield structural events for `markup` parsed as an HTML fragment.

    Start and end tags are balanced. Void elements arrive as a single
    StartTag with `void=True` and no EndTag.
    """
    # A parser holds per-parse state, so every call gets its own.
    parser = html5lib.HTMLParser(tree=html5lib.getTreeBuilder("etree"))
    fragment = parser.parseFragment(markup, container=container)
    walker = html5lib.getTreeWalker("etree")

    for token in walker(fragment):
        kind = token["type"]
        if kind in _TEXT_TOKENS:
            yield Characters(token["data"])
        elif kind == "StartTag" or kind == "EmptyTag":
            name = token["name"]
            namespace = token["namespace"]
            void = kind == "EmptyTag" or _is_void(name, namespace)
            yield StartTag(name, _attributes(token["data"]), namespace, void)
        elif kind == "EndTag":
            if _is_void(token["name"], token["namespace"]):
                continue
            yield EndTag(token["name"], token["namespace"])
        elif kind == "Comment":
            yield Comment(token["data"])
        elif kind == "Doctype":
            yield Doctype(token.get("name"))
        # Anything else (tree walker "SerializeError" tokens) carries no
        # renderable content and is skipped.


class Rewriter:
    """Applies per-event directives and accumulates the sanitized output."""

    __slots__ = ("_newline_guard", "_parts")

    def __init__(self) -> None:
        self._parts: list[str] = []
        # True right after a kept <pre>/<textarea>/<listing> start tag. The
        # parser eats one newline there, so a text run starting with a
        # newline needs an extra one to survive a re-parse.
        self._newline_guard = False

    def _write(self, markup: str) -> None:
        self._parts.append(markup)
        self._newline_guard = False

    def start_tag(self, event: StartTag, directive: Directive, attributes: Iterable[AttributeDecision] = ()) -> None:
        if directive is Directive.KEEP:
            kept = [(decision.name, decision.value) for decision in attributes if decision.emitted]
            self._write(serialize_start_tag(event.name, kept))
            self._newline_guard = not event.void and event.name in NEWLINE_SENSITIVE_ELEMENTS
        elif directive is Directive.ESCAPE_ELEMENT:
            self._write(escape_tag(event.name, event.attrs))
        # REMOVE_ELEMENT_ONLY and REMOVE_ELEMENT_AND_DESCENDANTS write nothing.

    def end_tag(self, name: str, directive: Directive) -> None:
        if directive is Directive.KEEP:
            self._write(serialize_end_tag(name))
        elif directive is Directive.ESCAPE_ELEMENT:
            self._write(escape_tag(name, end=True))

    def text(self, directive: Directive, replacement: str | None = None) -> None:
        if directive is not Directive.REPLACE_TEXT or not replacement:
            return
        if self._newline_guard and replacement[0] == "\n":
            replacement = "\n" + replacement
        self._write(replacement)

    def getvalue(self) -> str:
        return "".join(self._parts)
