# test_text_sanitization.py
#
#
# Imports
import pytest
#
# Third-Party Imports
#
# Local Imports
from transcriptions_Server_API.app.core.Utils.Text_Sanitization import (
    autop,
    is_valid_url,
    sanitize_rich_text,
    sanitize_text_field,
)
#
#######################################################################################################################
#
# Functions:


@pytest.mark.parametrize("raw, expected", [
    ("  Munir   Bashir ", "Munir Bashir"),
    ("<b>Sama'i</b> Bayati", "Sama'i Bayati"),
    ("Line one\nLine\ttwo", "Line one Line two"),
    ("Tom &amp; Jerry", "Tom & Jerry"),
    ("<script>alert('x')</script>Rast", "Rast"),
    ("", ""),
    (None, ""),
])
def test_sanitize_text_field(raw, expected):
    assert sanitize_text_field(raw) == expected


def test_rich_text_keeps_permitted_markup():
    raw = '<p>The <strong>first</strong> <em>khana</em> <a href="https://example.org/x">repeats</a>.</p>'
    assert sanitize_rich_text(raw) == raw


def test_rich_text_strips_scripts_and_handlers():
    raw = '<p onclick="steal()">Intro</p><script>alert(1)</script><iframe src="x"></iframe>'
    cleaned = sanitize_rich_text(raw)
    assert cleaned == "<p>Intro</p>"


def test_rich_text_drops_unsafe_link_protocols():
    cleaned = sanitize_rich_text('<a href="javascript:alert(1)">click</a>')
    assert "javascript" not in cleaned
    assert "click" in cleaned


def test_rich_text_strips_unknown_tags_but_keeps_text():
    assert sanitize_rich_text("<marquee>moving</marquee> text") == "moving text"


@pytest.mark.parametrize("url, valid", [
    ("https://example.org/scores/longa.pdf", True),
    ("http://localhost:8000/file.pdf", True),
    ("not-a-url", False),
    ("ftp://example.org/file.pdf", False),
    ("https://exa mple.org/file.pdf", False),
    ("/relative/path.pdf", False),
    ("", False),
])
def test_is_valid_url(url, valid):
    assert is_valid_url(url) is valid


def test_autop_paragraphs_and_breaks():
    assert autop("First line\nsecond line\n\nNext paragraph") == (
        "<p>First line<br />\nsecond line</p>\n<p>Next paragraph</p>")


def test_autop_leaves_block_markup_alone():
    assert autop("<ul><li>a</li></ul>\n\ntext") == "<ul><li>a</li></ul>\n<p>text</p>"


def test_autop_empty():
    assert autop("   ") == ""

#
# End of test_text_sanitization.py
#######################################################################################################################
