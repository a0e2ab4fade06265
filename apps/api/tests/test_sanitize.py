"""Tests for rich text sanitization on public pages."""

import pytest

from actas_api.security.sanitize import sanitize_rich_text


def test_keeps_basic_formatting():
    html = "<p>Hola <strong>equipo</strong>, <em>gracias</em></p><ul><li>uno</li></ul>"
    assert sanitize_rich_text(html) == html


def test_drops_script_with_content():
    cleaned = sanitize_rich_text("<p>ok</p><script>alert('x')</script>")
    assert "script" not in cleaned
    assert "alert" not in cleaned
    assert "<p>ok</p>" in cleaned


def test_drops_iframe():
    cleaned = sanitize_rich_text('<p>a</p><iframe src="https://evil.example"></iframe>')
    assert "iframe" not in cleaned
    assert "evil" not in cleaned


@pytest.mark.parametrize(
    "html",
    [
        '<p onclick="steal()">x</p>',
        '<img src="x" onerror="steal()">',
        '<a href="https://ok.example" onmouseover="steal()">x</a>',
        '<p ONLOAD="steal()">x</p>',
    ],
)
def test_event_handlers_never_survive(html):
    cleaned = sanitize_rich_text(html)
    assert "steal" not in cleaned
    assert " on" not in cleaned.lower()


def test_javascript_urls_removed():
    cleaned = sanitize_rich_text('<a href="javascript:steal()">x</a>')
    assert "javascript" not in cleaned


def test_links_keep_http_href():
    cleaned = sanitize_rich_text('<a href="https://ok.example/doc">doc</a>')
    assert 'href="https://ok.example/doc"' in cleaned


def test_style_attribute_removed():
    cleaned = sanitize_rich_text('<p style="background:url(x)">x</p>')
    assert "style" not in cleaned


@pytest.mark.parametrize("html", [None, "", "   "])
def test_empty_input(html):
    assert sanitize_rich_text(html) == ""
