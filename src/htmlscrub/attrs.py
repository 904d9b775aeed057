"""Attribute sanitizer.

Decides, for one attribute of a kept start tag, whether it is dropped,
passed through or rewritten. URL-bearing attributes get scheme checks that
tolerate the control and whitespace characters browsers ignore while
sniffing a scheme (`jav&#x09;ascript:` still executes in a browser, so it
must not pass here).
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from .constants import (
    CLASS_ATTRIBUTE,
    REL_ATTRIBUTE,
    SRCSET_ATTRIBUTES,
    TARGET_ATTRIBUTE,
    URL_ATTRIBUTES,
    URL_IGNORED_CHARACTERS,
)
from .directives import AttributeDecision, Directive
from .policy import SanitizationPolicy, UrlRule

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*$")
_STRIP_IGNORED = str.maketrans("", "", URL_IGNORED_CHARACTERS)
_URL_PATH_DELIMITERS = "/?#\\"
_WHITESPACE_RE = re.compile(r"[ \t\n\f\r]+")


def url_scheme(value: str) -> str | None:
    """Return the lowercased scheme of `value`, or None for a relative URL.

    The scheme candidate is the text before the first ":" that is not
    preceded by a path, query or fragment delimiter. Control characters and
    whitespace anywhere in the candidate are removed before comparison. The
    result may be syntactically invalid (e.g. "java\\ufffdscript"); callers
    must reject anything that is not in their allowlist.
    """
    colon = value.find(":")
    if colon == -1:
        return None
    prefix = value[:colon]
    for delimiter in _URL_PATH_DELIMITERS:
        if delimiter in prefix:
            return None
    return prefix.translate(_STRIP_IGNORED).lower()


def _is_protocol_relative(value: str) -> bool:
    head = value[:2]
    return len(head) == 2 and head[0] in "/\\" and head[1] in "/\\"


def _host_allowed(rule: UrlRule, value: str) -> bool:
    if rule.allowed_hosts is None:
        return True
    try:
        host = urlsplit(value).hostname
    except ValueError:
        return False
    return host is not None and host in rule.allowed_hosts


def check_url(rule: UrlRule, value: str) -> str | None:
    """Check one URL against `rule`.

    Returns None when the URL is acceptable, otherwise a short reason code.
    """
    scheme = url_scheme(value)
    if scheme is not None:
        if not _SCHEME_RE.match(scheme):
            return "invalid-url-scheme"
        if not rule.allows_scheme(scheme):
            return "disallowed-url-scheme"
        if not _host_allowed(rule, value.strip(URL_IGNORED_CHARACTERS)):
            return "disallowed-url-host"
        return None

    stripped = value.strip(URL_IGNORED_CHARACTERS)
    if _is_protocol_relative(stripped):
        if not rule.allow_protocol_relative:
            return "protocol-relative-url"
        if not _host_allowed(rule, "//" + stripped[2:]):
            return "disallowed-url-host"
        return None
    if stripped.startswith("#"):
        return None if rule.allow_fragment else "fragment-url"
    return None if rule.allow_relative else "relative-url"


def _sanitize_url_value(policy: SanitizationPolicy, tag: str, attr: str, value: str) -> tuple[str | None, str | None]:
    reason = check_url(policy.url_rule(tag, attr), value)
    if reason is not None:
        return None, reason
    if policy.url_filter is not None:
        filtered = policy.url_filter(tag, attr, value)
        if filtered is None:
            return None, "url-filter"
        return str(filtered), None
    return value, None


def _sanitize_srcset_value(policy: SanitizationPolicy, tag: str, attr: str, value: str) -> tuple[str | None, str | None]:
    rule = policy.url_rule(tag, attr)
    candidates: list[str] = []
    for candidate in value.split(","):
        parts = candidate.split()
        if not parts:
            continue
        url = parts[0]
        reason = check_url(rule, url)
        if reason is not None:
            return None, reason
        if policy.url_filter is not None:
            filtered = policy.url_filter(tag, attr, url)
            if filtered is None:
                return None, "url-filter"
            parts[0] = str(filtered)
        candidates.append(" ".join(parts))
    if not candidates:
        return None, "empty-srcset"
    return ", ".join(candidates), None


def _filter_classes(policy: SanitizationPolicy, value: str) -> str:
    return " ".join(token for token in _WHITESPACE_RE.split(value) if token and policy.is_class_allowed(token))


def sanitize_attribute(policy: SanitizationPolicy, tag: str, name: str, value: str | None) -> AttributeDecision:
    """Decide what happens to attribute `name` on a kept `tag`."""
    if value is None:
        value = ""

    if not policy.is_attribute_allowed(tag, name):
        return AttributeDecision(name, Directive.REMOVE_ATTRIBUTE, reason="disallowed-attribute")

    if name in URL_ATTRIBUTES or name in SRCSET_ATTRIBUTES:
        if name in SRCSET_ATTRIBUTES:
            cleaned, reason = _sanitize_srcset_value(policy, tag, name, value)
        else:
            cleaned, reason = _sanitize_url_value(policy, tag, name, value)
        if cleaned is None:
            return AttributeDecision(name, Directive.REMOVE_ATTRIBUTE, reason=reason)
        if cleaned != value:
            return AttributeDecision(name, Directive.REPLACE_ATTRIBUTE_VALUE, cleaned, reason="rewritten-url")
        return AttributeDecision(name, Directive.KEEP, value)

    if name == CLASS_ATTRIBUTE and policy.allowed_classes is not None:
        filtered = _filter_classes(policy, value)
        if not filtered:
            return AttributeDecision(name, Directive.REMOVE_ATTRIBUTE, reason="disallowed-class")
        if filtered != value:
            return AttributeDecision(name, Directive.REPLACE_ATTRIBUTE_VALUE, filtered, reason="disallowed-class")

    return AttributeDecision(name, Directive.KEEP, value)


def _emitted_index(decisions: list[AttributeDecision], name: str) -> int | None:
    for index in range(len(decisions) - 1, -1, -1):
        decision = decisions[index]
        if decision.name == name and decision.emitted:
            return index
    return None


def _set_attribute(decisions: list[AttributeDecision], name: str, value: str, reason: str) -> None:
    index = _emitted_index(decisions, name)
    if index is None:
        decisions.append(AttributeDecision(name, Directive.INSERT_ATTRIBUTE, value, reason=reason))
    elif decisions[index].value != value:
        directive = decisions[index].directive
        if directive is not Directive.INSERT_ATTRIBUTE:
            directive = Directive.REPLACE_ATTRIBUTE_VALUE
        decisions[index] = AttributeDecision(name, directive, value, reason=reason)


def merge_tokens(existing: str, tokens) -> str:
    """Add missing `tokens` to a whitespace separated list, keeping the rest."""
    current = [token for token in _WHITESPACE_RE.split(existing) if token]
    present = {token.lower() for token in current}
    current.extend(token for token in sorted(tokens) if token not in present)
    return " ".join(current)


def finalize_attributes(policy: SanitizationPolicy, tag: str, decisions: list[AttributeDecision]) -> list[AttributeDecision]:
    """Apply per-tag rules that depend on the whole attribute set.

    Forced attributes from `set_tag_attributes` are written first, then the
    `rel` tokens from `force_link_rel` are merged into anchors.
    """
    decisions = list(decisions)

    forced = policy.set_tag_attributes.get(tag)
    if forced:
        for name, value in forced.items():
            _set_attribute(decisions, name, value, "forced-attribute")

    if policy.forces_link_rel(tag):
        if not policy.force_link_rel_requires_target or _emitted_index(decisions, TARGET_ATTRIBUTE) is not None:
            index = _emitted_index(decisions, REL_ATTRIBUTE)
            existing = (decisions[index].value or "") if index is not None else ""
            _set_attribute(decisions, REL_ATTRIBUTE, merge_tokens(existing, policy.force_link_rel), "forced-link-rel")

    return decisions
