"""HTML sanitization for user-supplied content.

Post bodies (``additionalContent``, ``graphContent``) may carry rich HTML and
embedded iframes; comments are plain text and lose all markup. Comment text
is stored HTML-escaped (``Tom &amp; Jerry``) and cleaning it again leaves it
unchanged, so an edit that sends back the stored text is a no-op.
"""

import html
from urllib.parse import urlparse

import bleach
from bleach.css_sanitizer import CSSSanitizer


RICH_TAGS = frozenset(
    {
        # bleach defaults
        "a",
        "abbr",
        "acronym",
        "b",
        "blockquote",
        "code",
        "em",
        "i",
        "li",
        "ol",
        "strong",
        "ul",
        # block content
        "p",
        "br",
        "hr",
        "div",
        "span",
        "pre",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        # embeds
        "img",
        "iframe",
    }
)

ALLOWED_STYLES = frozenset(
    {
        "margin-top",
        "margin-bottom",
        "font-size",
        "line-height",
        "text-wrap",
        "max-width",
        "height",
        "width",
        "margin",
        "display",
        "float",
        "text-align",
    }
)

_TAG_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "name", "target", "title"}),
    "abbr": frozenset({"title"}),
    "acronym": frozenset({"title"}),
    "img": frozenset({"src", "alt", "width", "height", "data-align"}),
    "iframe": frozenset({"src", "width", "height", "allow", "allowfullscreen"}),
}
_GLOBAL_ATTRIBUTES = frozenset({"style", "class"})
_URL_ATTRIBUTES = frozenset({"href", "src"})

# data: URIs are only acceptable as inline images
_SCHEMES_BY_TAG: dict[str, frozenset[str]] = {
    "img": frozenset({"data", "http", "https"}),
    "iframe": frozenset({"http", "https"}),
    "a": frozenset({"http", "https", "mailto"}),
}

_css_sanitizer = CSSSanitizer(allowed_css_properties=ALLOWED_STYLES)


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    if name in _GLOBAL_ATTRIBUTES:
        return True
    if name not in _TAG_ATTRIBUTES.get(tag, frozenset()):
        return False
    if name in _URL_ATTRIBUTES:
        # Protocol-relative and relative URLs are rejected
        scheme = urlparse(value.strip()).scheme.lower()
        return scheme in _SCHEMES_BY_TAG.get(tag, frozenset())
    return True


def sanitize_html(markup: str | None) -> str:
    """Clean rich post HTML down to the allowed tags, attributes and styles."""
    if not markup:
        return ""
    return bleach.clean(
        markup,
        tags=RICH_TAGS,
        attributes=_allow_attribute,
        protocols=frozenset({"data", "http", "https", "mailto"}),
        css_sanitizer=_css_sanitizer,
        strip=True,
        strip_comments=True,
    )


def sanitize_text(text: str | None) -> str:
    """Strip every tag from plain-text input such as comments.

    Entities are decoded first so already-escaped text is not escaped twice.
    """
    if not text:
        return ""
    return bleach.clean(html.unescape(text), tags=set(), strip=True).strip()
