"""Sanitization policy model.

A policy is an allowlist: tags, attributes and URL schemes that are not
listed are rejected. Policies are frozen after construction, so one policy
can be shared by any number of concurrent `clean()` calls.

Derive variants from the default with `dataclasses.replace`:

    from dataclasses import replace
    policy = replace(DEFAULT_POLICY, allowed_classes={"highlight"})
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field

from .constants import (
    ANCHOR_TAG,
    DEFAULT_ALLOWED_TAGS,
    DEFAULT_DROP_CONTENT_TAGS,
    DEFAULT_GLOBAL_ATTRIBUTES,
    DEFAULT_LINK_REL,
    DEFAULT_TAG_ATTRIBUTES,
    DEFAULT_URL_SCHEMES,
)
from .errors import PolicyError

UrlFilter = Callable[[str, str, str], str | None]
UrlRuleKey = str | tuple[str, str]

GLOBAL_ATTRIBUTES_KEY = "*"

_ATTRIBUTE_NAME_RE = re.compile(r"^[a-z_:][-a-z0-9_:.]*$")


def _lowered(values: Collection[str]) -> set[str]:
    return {str(value).lower() for value in values}


@dataclass(frozen=True, slots=True)
class UrlRule:
    """Rule for a URL-valued attribute (e.g. href, a[href], img[src]).

    Keeping a URL can still cause network requests when the output is
    rendered (notably for <img src>); restrict `allowed_schemes` or
    `allowed_hosts` where remote loads are unwanted.
    """

    # Absolute URLs are allowed only with these schemes (lowercase).
    # None allows any scheme, an empty collection allows none.
    allowed_schemes: Collection[str] | None = field(default_factory=set)

    # Allow relative URLs (/path, ./path, ../path, ?query).
    allow_relative: bool = True

    # Allow same-document fragments (#foo).
    allow_fragment: bool = True

    # Allow protocol-relative URLs (//example.com).
    allow_protocol_relative: bool = True

    # If provided, absolute and protocol-relative URLs are allowed only if
    # the parsed host is in this allowlist.
    allowed_hosts: Collection[str] | None = None

    def __post_init__(self) -> None:
        # Accept lists/tuples from user code, normalize for internal use.
        if self.allowed_schemes is not None:
            object.__setattr__(self, "allowed_schemes", _lowered(self.allowed_schemes))
        if self.allowed_hosts is not None:
            object.__setattr__(self, "allowed_hosts", _lowered(self.allowed_hosts))

    def allows_scheme(self, scheme: str) -> bool:
        return self.allowed_schemes is None or scheme in self.allowed_schemes


@dataclass(frozen=True, slots=True)
class SanitizationPolicy:
    """An allowlist driven policy for sanitizing untrusted HTML.

    - Tags not in `allowed_tags` are disallowed. They are unwrapped (their
      children are still sanitized and may be kept), or escaped as text when
      `escape_disallowed_tags` is set, or discarded with their whole subtree
      when `strip_disallowed_tags` is False.
    - Tags in `drop_content_tags` are always discarded with their subtree.
    - Attributes not in `allowed_attributes[tag]` or `allowed_attributes["*"]`
      are dropped.
    - URL-bearing attributes must use a scheme from `url_schemes`, unless a
      `url_rules` entry for the attribute (or the (tag, attribute) pair)
      says otherwise.

    Names are matched ASCII-case-insensitively; they are lowercased here.
    """

    allowed_tags: Collection[str]
    allowed_attributes: Mapping[str, Collection[str]]

    # Default scheme allowlist for every URL-bearing attribute.
    url_schemes: Collection[str] = field(default_factory=lambda: set(DEFAULT_URL_SCHEMES))

    # Per attribute ("src") or per (tag, attribute) (("img", "src")) overrides.
    url_rules: Mapping[UrlRuleKey, UrlRule] = field(default_factory=dict)

    # `url_filter(tag, attr, value)` runs after the rule checks and returns
    # a replacement string to keep (possibly rewritten), or None to drop.
    url_filter: UrlFilter | None = None

    # Dangerous containers whose text payload must not be preserved.
    drop_content_tags: Collection[str] = field(default_factory=lambda: set(DEFAULT_DROP_CONTENT_TAGS))

    # Optional allowlist of class tokens. None keeps every class.
    allowed_classes: Collection[str] | None = None

    # Link hardening: ensure these tokens are present in <a rel="...">.
    # Existing tokens are kept.
    force_link_rel: Collection[str] = field(default_factory=lambda: set(DEFAULT_LINK_REL))
    force_link_rel_requires_target: bool = True

    # Attributes written onto every kept element of a tag, replacing any
    # value from the input: {"img": {"loading": "lazy"}}.
    set_tag_attributes: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    strip_disallowed_tags: bool = True
    escape_disallowed_tags: bool = False
    drop_foreign_namespaces: bool = True

    def __post_init__(self) -> None:
        # Normalize to sets so the sanitizer can do fast membership checks.
        object.__setattr__(self, "allowed_tags", _lowered(self.allowed_tags))

        normalized_attrs: dict[str, set[str]] = {}
        for tag, attrs in self.allowed_attributes.items():
            normalized_attrs[str(tag).lower()] = _lowered(attrs)
        normalized_attrs.setdefault(GLOBAL_ATTRIBUTES_KEY, set())
        object.__setattr__(self, "allowed_attributes", normalized_attrs)

        object.__setattr__(self, "url_schemes", _lowered(self.url_schemes))

        normalized_rules: dict[UrlRuleKey, UrlRule] = {}
        for key, rule in self.url_rules.items():
            if not isinstance(rule, UrlRule):
                raise PolicyError(f"url_rules[{key!r}] must be a UrlRule, got {type(rule).__name__}")
            if isinstance(key, tuple):
                if len(key) != 2:
                    raise PolicyError(f"url_rules key must be 'attr' or ('tag', 'attr'), got {key!r}")
                normalized_rules[(str(key[0]).lower(), str(key[1]).lower())] = rule
            else:
                normalized_rules[str(key).lower()] = rule
        object.__setattr__(self, "url_rules", normalized_rules)

        object.__setattr__(self, "drop_content_tags", _lowered(self.drop_content_tags))
        if self.allowed_classes is not None:
            object.__setattr__(self, "allowed_classes", {str(c) for c in self.allowed_classes})
        object.__setattr__(self, "force_link_rel", _lowered(self.force_link_rel))

        normalized_set: dict[str, dict[str, str]] = {}
        for tag, attrs in self.set_tag_attributes.items():
            forced: dict[str, str] = {}
            for name, value in attrs.items():
                name = str(name).lower()
                if not _ATTRIBUTE_NAME_RE.match(name):
                    raise PolicyError(f"Invalid attribute name in set_tag_attributes[{tag!r}]: {name!r}")
                forced[name] = str(value)
            normalized_set[str(tag).lower()] = forced
        object.__setattr__(self, "set_tag_attributes", normalized_set)

        if self.url_filter is not None and not callable(self.url_filter):
            raise PolicyError("url_filter must be callable")

    def is_tag_allowed(self, tag: str) -> bool:
        return tag in self.allowed_tags

    def is_attribute_allowed(self, tag: str, attr: str) -> bool:
        if attr in self.allowed_attributes[GLOBAL_ATTRIBUTES_KEY]:
            return True
        allowed = self.allowed_attributes.get(tag)
        return allowed is not None and attr in allowed

    def url_rule(self, tag: str, attr: str) -> UrlRule:
        rule = self.url_rules.get((tag, attr))
        if rule is None:
            rule = self.url_rules.get(attr)
        if rule is None:
            rule = UrlRule(allowed_schemes=self.url_schemes)
        return rule

    def allowed_schemes(self, attr: str, tag: str | None = None) -> set[str] | None:
        """Schemes allowed for a URL attribute; None means any scheme."""
        if tag is None:
            rule = self.url_rules.get(attr)
            if rule is None:
                return set(self.url_schemes)
        else:
            rule = self.url_rule(tag, attr)
        return None if rule.allowed_schemes is None else set(rule.allowed_schemes)

    def is_subtree_discarded(self, tag: str) -> bool:
        return tag in self.drop_content_tags

    def is_class_allowed(self, token: str) -> bool:
        return self.allowed_classes is None or token in self.allowed_classes

    def forces_link_rel(self, tag: str) -> bool:
        return tag == ANCHOR_TAG and bool(self.force_link_rel)


DEFAULT_POLICY: SanitizationPolicy = SanitizationPolicy(
    allowed_tags=DEFAULT_ALLOWED_TAGS,
    allowed_attributes={
        GLOBAL_ATTRIBUTES_KEY: DEFAULT_GLOBAL_ATTRIBUTES,
        **DEFAULT_TAG_ATTRIBUTES,
    },
)
