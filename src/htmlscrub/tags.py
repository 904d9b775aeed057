"""Tag sanitizer: per-element keep / unwrap / escape / discard decisions.

Decisions are made against the element stack only, never by looking ahead.
Once a frame is discarding, every descendant is discarded with it, whatever
the policy says about the descendant itself.

Unwrapping an element can put two kept elements next to each other that the
HTML parser never lets nest, e.g. a <div> directly inside a <p> once a
<button> between them is gone. A browser re-parsing the output would close
the outer element early and build a different tree. To keep the output
stable, a kept start tag first closes the kept elements the parser would
close at that point (`TagDecision.closes`), and table parts are only kept
where the parser accepts them.
"""

from __future__ import annotations

from dataclasses import dataclass

from html5lib.constants import headingElements, scopingElements, specialElements

from .constants import HTML_NAMESPACE, TABLE_CHILDREN, TABLE_PARTS
from .directives import Directive
from .policy import SanitizationPolicy
from .stack import ElementStack, Frame, FrameState


@dataclass(frozen=True, slots=True)
class TagDecision:
    directive: Directive
    # Why the tag was not kept as-is. None for kept tags, and for tags that
    # vanish only because an ancestor is already being discarded.
    reason: str | None = None
    # Kept frames ended before this start tag, innermost first.
    closes: tuple[Frame, ...] = ()


KEEP = TagDecision(Directive.KEEP)
_SILENT_DISCARD = TagDecision(Directive.REMOVE_ELEMENT_AND_DESCENDANTS)

_STATE_FOR_DIRECTIVE = {
    Directive.KEEP: FrameState.KEPT,
    Directive.REMOVE_ELEMENT_ONLY: FrameState.UNWRAPPED,
    Directive.ESCAPE_ELEMENT: FrameState.ESCAPED,
    Directive.REMOVE_ELEMENT_AND_DESCENDANTS: FrameState.DISCARDING,
}

# html5lib's element categories, HTML namespace only.
_SCOPE = frozenset(name for namespace, name in scopingElements if namespace == HTML_NAMESPACE)
_BUTTON_SCOPE = _SCOPE | {"button"}
_SPECIAL = frozenset(name for namespace, name in specialElements if namespace == HTML_NAMESPACE)
_HEADINGS = frozenset(headingElements)

# Start tags that end an open <p>.
_CLOSES_P = _HEADINGS | {
    "address", "article", "aside", "blockquote", "center", "dd", "details",
    "dir", "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer",
    "form", "header", "hgroup", "hr", "li", "listing", "main", "menu", "nav",
    "ol", "p", "plaintext", "pre", "section", "summary", "table", "ul", "xmp",
}

_LIST_ITEM_PEERS = {"li": ("li",), "dd": ("dd", "dt"), "dt": ("dd", "dt")}
_LIST_ITEM_PASS_THROUGH = frozenset({"address", "div", "p"})

# Elements that start a new run of active formatting elements.
_FORMATTING_MARKERS = frozenset({"applet", "caption", "marquee", "object", "td", "th"})

_IMPLIED_END = frozenset({"dd", "dt", "li", "option", "optgroup", "p", "rp", "rt"})


def is_foreign(namespace: str | None) -> bool:
    return namespace is not None and namespace != HTML_NAMESPACE


def _in_scope(stack: ElementStack, name: str, boundary: frozenset[str]) -> Frame | None:
    for frame in stack.kept_frames():
        if frame.name == name:
            return frame
        if frame.name in boundary:
            return None
    return None


def _implied_ends(stack: ElementStack, tag: str) -> list[Frame]:
    """Close the kept frames a parser would end before a kept `tag`."""
    closed: list[Frame] = []

    peers = _LIST_ITEM_PEERS.get(tag)
    if peers is not None:
        for frame in stack.kept_frames():
            if frame.name in peers:
                closed += stack.close_through(frame)
                break
            if frame.name in _SPECIAL and frame.name not in _LIST_ITEM_PASS_THROUGH:
                break

    if tag in _CLOSES_P:
        paragraph = _in_scope(stack, "p", _BUTTON_SCOPE)
        if paragraph is not None:
            closed += stack.close_through(paragraph)

    if tag in _HEADINGS:
        parent = stack.kept_parent()
        if parent is not None and parent.name in _HEADINGS:
            closed += stack.close_through(parent)
    elif tag == "a":
        for frame in stack.kept_frames():
            if frame.name in _FORMATTING_MARKERS:
                break
            if frame.name == "a":
                closed += stack.close_through(frame)
                break
    elif tag == "button" or tag == "nobr":
        same = _in_scope(stack, tag, _SCOPE)
        if same is not None:
            closed += stack.close_through(same)
    elif tag == "option" or tag == "optgroup":
        parent = stack.kept_parent()
        if parent is not None and parent.name == "option":
            closed += stack.close_through(parent)
    elif tag == "rp" or tag == "rt":
        if _in_scope(stack, "ruby", _SCOPE) is not None:
            parent = stack.kept_parent()
            while parent is not None and parent.name in _IMPLIED_END:
                closed += stack.close_through(parent)
                parent = stack.kept_parent()

    return closed


def decide_element(policy: SanitizationPolicy, stack: ElementStack, tag: str, namespace: str | None = None) -> TagDecision:
    """Decide the fate of an element without touching the stack."""
    if stack.currently_discarding():
        return _SILENT_DISCARD

    if policy.is_subtree_discarded(tag):
        return TagDecision(Directive.REMOVE_ELEMENT_AND_DESCENDANTS, "discarded-subtree")

    if policy.drop_foreign_namespaces and is_foreign(namespace):
        return TagDecision(Directive.REMOVE_ELEMENT_AND_DESCENDANTS, "foreign-element")

    parent = stack.kept_parent()
    table_children = TABLE_CHILDREN.get(parent.name) if parent is not None else None

    if not policy.is_tag_allowed(tag):
        # Escaped markup is text, and text directly inside a table section
        # would be moved out of the table on re-parse.
        if policy.escape_disallowed_tags and table_children is None:
            return TagDecision(Directive.ESCAPE_ELEMENT, "escaped-tag")
        if policy.strip_disallowed_tags:
            return TagDecision(Directive.REMOVE_ELEMENT_ONLY, "disallowed-tag")
        return TagDecision(Directive.REMOVE_ELEMENT_AND_DESCENDANTS, "disallowed-tag")

    if table_children is not None:
        if tag not in table_children:
            return TagDecision(Directive.REMOVE_ELEMENT_AND_DESCENDANTS, "misplaced-table-content")
    elif tag in TABLE_PARTS:
        return TagDecision(Directive.REMOVE_ELEMENT_ONLY, "misplaced-table-part")

    if tag == "form" and any(frame.name == "form" for frame in stack.kept_frames()):
        return TagDecision(Directive.REMOVE_ELEMENT_ONLY, "nested-form")

    return KEEP


def _keep(stack: ElementStack, decision: TagDecision, tag: str) -> TagDecision:
    if decision.directive is not Directive.KEEP:
        return decision
    closed = _implied_ends(stack, tag)
    return TagDecision(Directive.KEEP, closes=tuple(closed)) if closed else decision


def open_element(policy: SanitizationPolicy, stack: ElementStack, tag: str, namespace: str | None = None) -> TagDecision:
    """Decide an element start tag and push its frame."""
    decision = _keep(stack, decide_element(policy, stack, tag, namespace), tag)
    stack.push(tag, _STATE_FOR_DIRECTIVE[decision.directive])
    return decision


def void_element(policy: SanitizationPolicy, stack: ElementStack, tag: str, namespace: str | None = None) -> TagDecision:
    """Decide an element that has no content; no frame is pushed."""
    return _keep(stack, decide_element(policy, stack, tag, namespace), tag)


def close_element(stack: ElementStack, tag: str) -> tuple[Directive, Frame | None]:
    """Pop the frame for an end tag and say what to write for it.

    Orphan end tags (no matching open frame) produce no output.
    """
    frame = stack.pop(tag)
    if frame is None:
        return Directive.REMOVE_ELEMENT_ONLY, None
    if frame.state is FrameState.KEPT:
        return Directive.KEEP, frame
    if frame.state is FrameState.ESCAPED:
        return Directive.ESCAPE_ELEMENT, frame
    if frame.state is FrameState.DISCARDING:
        return Directive.REMOVE_ELEMENT_AND_DESCENDANTS, frame
    return Directive.REMOVE_ELEMENT_ONLY, frame
