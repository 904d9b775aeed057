"""HTML element and attribute tables used by the sanitizer.

Lists keep a stable, readable order; the frozen sets next to them are what
hot paths use for membership checks.

Usage:
    from htmlscrub.constants import VOID_ELEMENTS, URL_ATTRIBUTES

References:
    - https://html.spec.whatwg.org/multipage/syntax.html#void-elements
    - https://html.spec.whatwg.org/multipage/indices.html#attributes-3
"""

# HTML Element Sets
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "basefont",
        "bgsound",
        "br",
        "col",
        "embed",
        "frame",
        "hr",
        "img",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# The parser drops one newline directly after these start tags, so the
# serializer has to double it to round-trip.
NEWLINE_SENSITIVE_ELEMENTS = frozenset({"pre", "textarea", "listing"})

# Table sections only take these children. Anything else placed directly
# inside one is moved out in front of the table by the parser.
TABLE_CHILDREN = {
    "table": frozenset({"caption", "colgroup", "tbody", "thead", "tfoot"}),
    "tbody": frozenset({"tr"}),
    "thead": frozenset({"tr"}),
    "tfoot": frozenset({"tr"}),
    "tr": frozenset({"td", "th"}),
    "colgroup": frozenset({"col"}),
}

# And the table parts the parser ignores anywhere but under those parents.
TABLE_PARTS = frozenset().union(*TABLE_CHILDREN.values())

HTML_NAMESPACE = "http://www.w3.org/1999/xhtml"
SVG_NAMESPACE = "http://www.w3.org/2000/svg"
MATHML_NAMESPACE = "http://www.w3.org/1998/Math/MathML"

# Attributes whose value the browser dereferences as a URL.
URL_ATTRIBUTES = frozenset(
    {
        "action",
        "background",
        "cite",
        "codebase",
        "data",
        "formaction",
        "href",
        "icon",
        "longdesc",
        "manifest",
        "ping",
        "poster",
        "src",
        "usemap",
        "xlink:href",
    }
)

# Comma separated lists of "url [descriptor]" candidates.
SRCSET_ATTRIBUTES = frozenset({"srcset", "imagesrcset"})

ANCHOR_TAG = "a"
REL_ATTRIBUTE = "rel"
TARGET_ATTRIBUTE = "target"
CLASS_ATTRIBUTE = "class"

# ASCII whitespace and C0 controls. Browsers strip or ignore these while
# sniffing a URL scheme, so `jav\tascript:` still runs script.
URL_IGNORED_CHARACTERS = "".join(chr(code) for code in range(0x21)) + "\x7f"

# Safe defaults, after ammonia's curated allowlist.
DEFAULT_ALLOWED_TAGS = [
    "a",
    "abbr",
    "acronym",
    "area",
    "article",
    "aside",
    "b",
    "bdi",
    "bdo",
    "blockquote",
    "br",
    "caption",
    "center",
    "cite",
    "code",
    "col",
    "colgroup",
    "data",
    "dd",
    "del",
    "details",
    "dfn",
    "div",
    "dl",
    "dt",
    "em",
    "figcaption",
    "figure",
    "footer",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "hgroup",
    "hr",
    "i",
    "img",
    "ins",
    "kbd",
    "li",
    "map",
    "mark",
    "nav",
    "ol",
    "p",
    "pre",
    "q",
    "rp",
    "rt",
    "rtc",
    "ruby",
    "s",
    "samp",
    "small",
    "span",
    "strike",
    "strong",
    "sub",
    "summary",
    "sup",
    "table",
    "tbody",
    "td",
    "tfoot",
    "th",
    "thead",
    "time",
    "tr",
    "tt",
    "u",
    "ul",
    "var",
    "wbr",
]

DEFAULT_GLOBAL_ATTRIBUTES = ["lang", "title"]

_TABLE_CELL_ALIGNMENT = ["align", "char", "charoff"]

DEFAULT_TAG_ATTRIBUTES = {
    "a": ["href", "hreflang", "target"],
    "bdo": ["dir"],
    "blockquote": ["cite"],
    "col": [*_TABLE_CELL_ALIGNMENT, "span"],
    "colgroup": [*_TABLE_CELL_ALIGNMENT, "span"],
    "del": ["cite", "datetime"],
    "hr": ["align", "size", "width"],
    "img": ["align", "alt", "height", "src", "width"],
    "ins": ["cite", "datetime"],
    "ol": ["start"],
    "q": ["cite"],
    "table": [*_TABLE_CELL_ALIGNMENT, "summary"],
    "tbody": _TABLE_CELL_ALIGNMENT,
    "td": [*_TABLE_CELL_ALIGNMENT, "colspan", "headers", "rowspan"],
    "tfoot": _TABLE_CELL_ALIGNMENT,
    "th": [*_TABLE_CELL_ALIGNMENT, "colspan", "headers", "rowspan", "scope"],
    "thead": _TABLE_CELL_ALIGNMENT,
    "tr": _TABLE_CELL_ALIGNMENT,
}

DEFAULT_URL_SCHEMES = [
    "bitcoin",
    "ftp",
    "ftps",
    "geo",
    "http",
    "https",
    "im",
    "irc",
    "ircs",
    "magnet",
    "mailto",
    "mms",
    "mx",
    "news",
    "nntp",
    "openpgp4fpr",
    "sip",
    "sms",
    "smsto",
    "ssh",
    "tel",
    "url",
    "webcal",
    "wtai",
    "xmpp",
]

DEFAULT_DROP_CONTENT_TAGS = ["script", "style"]

DEFAULT_LINK_REL = ["noopener", "noreferrer"]
