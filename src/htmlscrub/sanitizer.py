"""Sanitization engine.

`clean()` folds the event stream from the tokenizer into sanitized output in
one forward pass: each event updates the element stack, is judged by the
tag, attribute or text handler, and the resulting directive goes straight to
the rewriter. Nothing is buffered beyond the current event.

Diagnostics: every removal or rewrite decision produces a `Removal` record.
Records go to the `report` callback passed to `clean()`, to the list opened
by `collect_removals()`, or, with `strict=True`, are raised as
`StrictModeError`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from .attrs import finalize_attributes, sanitize_attribute
from .directives import AttributeDecision, Directive
from .errors import InputTooLargeError, StrictModeError
from .policy import DEFAULT_POLICY, SanitizationPolicy
from .rewriter import Event, Rewriter, iter_events
from .stack import ElementStack, FrameState
from .tags import close_element, open_element, void_element
from .text import handle_comment, handle_doctype, handle_text
from .tokens import Characters, Comment, Doctype, EndTag, Removal, StartTag

ReportCallback = Callable[[Removal], None]

_REMOVAL_SINK: ContextVar[list[Removal] | None] = ContextVar("htmlscrub_removal_sink", default=None)


@contextmanager
def collect_removals() -> Iterator[list[Removal]]:
    """Collect the Removal records of every clean() call in this context."""
    removals: list[Removal] = []
    token = _REMOVAL_SINK.set(removals)
    try:
        yield removals
    finally:
        _REMOVAL_SINK.reset(token)


def _coerce_markup(markup: str | bytes | None) -> str:
    if markup is None:
        return ""
    if isinstance(markup, str):
        return markup
    if isinstance(markup, (bytes, bytearray)):
        return bytes(markup).decode("utf-8", errors="replace")
    raise TypeError(f"clean() expects str or bytes, got {type(markup).__name__}")


class _Pass:
    """State of one sanitizing pass. Never shared between calls."""

    __slots__ = ("_note", "policy", "rewriter", "stack")

    def __init__(self, policy: SanitizationPolicy, note: Callable[[Removal], None]) -> None:
        self.policy = policy
        self.stack = ElementStack()
        self.rewriter = Rewriter()
        self._note = note

    def feed(self, event: Event) -> None:
        if isinstance(event, Characters):
            directive, replacement = handle_text(self.stack, event.data)
            if directive is Directive.REMOVE_TEXT and event.data and not self.stack.currently_discarding():
                self._note(Removal("misplaced-table-text"))
            self.rewriter.text(directive, replacement)
        elif isinstance(event, StartTag):
            self._start_tag(event)
        elif isinstance(event, EndTag):
            directive, frame = close_element(self.stack, event.name)
            if frame is not None:
                self.rewriter.end_tag(frame.name, directive)
        elif isinstance(event, Comment):
            if not self.stack.currently_discarding():
                self._note(Removal("dropped-comment", message=f"dropped comment {event.data[:40]!r}"))
            self.rewriter.text(*handle_comment())
        elif isinstance(event, Doctype):
            self._note(Removal("dropped-doctype", tag=event.name))
            self.rewriter.text(*handle_doctype())

    def _start_tag(self, event: StartTag) -> None:
        policy = self.policy
        if event.void:
            decision = void_element(policy, self.stack, event.name, event.namespace)
        else:
            decision = open_element(policy, self.stack, event.name, event.namespace)

        if decision.reason is not None:
            self._note(Removal(decision.reason, tag=event.name))
        for frame in decision.closes:
            self._note(Removal("implied-end-tag", tag=frame.name, message=f"<{frame.name}> closed before <{event.name}>"))
            self.rewriter.end_tag(frame.name, Directive.KEEP)

        attributes: list[AttributeDecision] = []
        if decision.directive is Directive.KEEP:
            attributes = self._attributes(event)
        self.rewriter.start_tag(event, decision.directive, attributes)

    def _attributes(self, event: StartTag) -> list[AttributeDecision]:
        policy = self.policy
        tag = event.name
        decisions: list[AttributeDecision] = []
        for name, value in event.attrs:
            decision = sanitize_attribute(policy, tag, name, value)
            if decision.directive is not Directive.KEEP:
                self._note(Removal(decision.reason or decision.directive.value, tag=tag, attr=name))
            decisions.append(decision)

        final = finalize_attributes(policy, tag, decisions)
        # Forced attributes show up as decisions finalize created.
        original = {id(decision) for decision in decisions}
        for decision in final:
            if id(decision) not in original:
                self._note(Removal(decision.reason or decision.directive.value, tag=tag, attr=decision.name))
        return final

    def finish(self) -> str:
        # Close whatever the event stream left open so the output balances.
        for frame in self.stack.drain():
            if frame.state is FrameState.KEPT:
                self.rewriter.end_tag(frame.name, Directive.KEEP)
            elif frame.state is FrameState.ESCAPED:
                self.rewriter.end_tag(frame.name, Directive.ESCAPE_ELEMENT)
        return self.rewriter.getvalue()


class Sanitizer:
    """Sanitizes HTML fragments with a fixed policy.

    A Sanitizer holds no per-call state; one instance can serve concurrent
    callers on any number of threads.
    """

    __slots__ = ("max_input_length", "policy")

    def __init__(self, policy: SanitizationPolicy = DEFAULT_POLICY, *, max_input_length: int | None = None) -> None:
        if not isinstance(policy, SanitizationPolicy):
            raise TypeError(f"policy must be a SanitizationPolicy, got {type(policy).__name__}")
        if max_input_length is not None and max_input_length < 0:
            raise ValueError("max_input_length must be non-negative")
        self.policy = policy
        self.max_input_length = max_input_length

    def __repr__(self) -> str:
        return f"Sanitizer(max_input_length={self.max_input_length!r})"

    def clean(self, markup: str | bytes | None, *, report: ReportCallback | None = None, strict: bool = False) -> str:
        """Return `markup` reduced to the subset the policy allows."""
        text = _coerce_markup(markup)
        if self.max_input_length is not None and len(text) > self.max_input_length:
            raise InputTooLargeError(len(text), self.max_input_length)

        sink = _REMOVAL_SINK.get()

        def note(removal: Removal) -> None:
            if sink is not None:
                sink.append(removal)
            if report is not None:
                report(removal)
            if strict:
                raise StrictModeError(removal)

        run = _Pass(self.policy, note)
        for event in iter_events(text):
            run.feed(event)
        return run.finish()


_DEFAULT_SANITIZER = Sanitizer()


def clean(
    markup: str | bytes | None,
    *,
    policy: SanitizationPolicy | None = None,
    report: ReportCallback | None = None,
    strict: bool = False,
) -> str:
    """Sanitize `markup` with `policy` (DEFAULT_POLICY when omitted)."""
    sanitizer = _DEFAULT_SANITIZER if policy is None or policy is DEFAULT_POLICY else Sanitizer(policy)
    return sanitizer.clean(markup, report=report, strict=strict)
