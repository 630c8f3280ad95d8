# Text_Sanitization.py
# Description: Plain-text and allow-list rich-text sanitizers for incoming record fields, plus URL checks.
#
# Imports
import html
import re
from typing import Optional
#
# 3rd-party Libraries
import bleach
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError
#
# Local Imports
#
########################################################################################################################
#
# Functions:

# Markup permitted in long-form fields. Everything else is stripped, keeping its text.
ALLOWED_RICH_TAGS = frozenset({
    "a", "abbr", "b", "blockquote", "br", "cite", "code", "del", "div", "em", "h1", "h2", "h3", "h4", "h5", "h6",
    "hr", "i", "img", "ins", "li", "ol", "p", "pre", "q", "s", "small", "span", "strong", "sub", "sup", "table",
    "tbody", "td", "tfoot", "th", "thead", "tr", "u", "ul",
})

ALLOWED_RICH_ATTRIBUTES = {
    "*": ["class", "dir", "lang", "title"],
    "a": ["href", "rel", "target", "name"],
    "img": ["src", "alt", "width", "height"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
    "ol": ["start", "type"],
}

ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})

# Elements whose content is code, not text; removed with their content before bleach runs
_EXECUTABLE_BLOCKS = re.compile(r"<(script|style|iframe|object|embed|noscript)\b[^>]*>.*?</\1\s*>",
                                re.IGNORECASE | re.DOTALL)
_WHITESPACE_RUN = re.compile(r"\s+")
_BLOCK_LEVEL_START = re.compile(r"<(p|div|ul|ol|blockquote|h[1-6]|pre|table|hr)\b", re.IGNORECASE)

_http_url_adapter = TypeAdapter(AnyHttpUrl)


def strip_executable_blocks(value: str) -> str:
    return _EXECUTABLE_BLOCKS.sub("", value)


def sanitize_text_field(value: Optional[str]) -> str:
    """
    Reduces a value to a single line of plain text: markup removed (script and
    style bodies included), entities decoded, whitespace collapsed, ends trimmed.
    """
    if value is None:
        return ""
    cleaned = bleach.clean(strip_executable_blocks(str(value)), tags=[], attributes={}, strip=True,
                           strip_comments=True)
    cleaned = html.unescape(cleaned)
    return _WHITESPACE_RUN.sub(" ", cleaned).strip()


def sanitize_rich_text(value: Optional[str]) -> str:
    """Allow-list sanitizer for long-form fields. Permitted markup such as <strong> survives unchanged."""
    if value is None:
        return ""
    return bleach.clean(
        strip_executable_blocks(str(value)),
        tags=ALLOWED_RICH_TAGS,
        attributes=ALLOWED_RICH_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def is_valid_url(value: str) -> bool:
    """True for an absolute http(s) URL with a host."""
    if not value or _WHITESPACE_RUN.search(value):
        return False
    try:
        _http_url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def autop(text: Optional[str]) -> str:
    """Turns blank-line separated blocks into <p> paragraphs and single newlines into <br />."""
    if not text or not text.strip():
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = [block.strip() for block in re.split(r"\n\s*\n", normalized) if block.strip()]
    rendered = []
    for block in paragraphs:
        if _BLOCK_LEVEL_START.match(block):
            rendered.append(block)
        else:
            rendered.append("<p>" + block.replace("\n", "<br />\n") + "</p>")
    return "\n".join(rendered)

#
# End of Text_Sanitization.py
########################################################################################################################
