"""Allow-list sanitization of untrusted rich text shown on public pages."""

from typing import Optional

import nh3

ALLOWED_TAGS = {
    "a",
    "b",
    "blockquote",
    "br",
    "code",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "hr",
    "i",
    "li",
    "mark",
    "ol",
    "p",
    "pre",
    "s",
    "span",
    "strong",
    "sub",
    "sup",
    "table",
    "tbody",
    "td",
    "th",
    "thead",
    "tr",
    "u",
    "ul",
}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "title"},
    "td": {"colspan", "rowspan"},
    "th": {"colspan", "rowspan"},
}

# Content of these tags is dropped entirely, not just the tags
DROPPED_CONTENT_TAGS = {"script", "style", "iframe", "object", "embed"}

ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}


def sanitize_rich_text(html: Optional[str]) -> str:
    """Return HTML containing only allow-listed tags and attributes.

    Event-handler attributes are never in the allow-list, so ``on*`` handlers
    cannot survive regardless of how they are spelled.
    """
    if not html or not html.strip():
        return ""
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        clean_content_tags=DROPPED_CONTENT_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_URL_SCHEMES,
        strip_comments=True,
    )
