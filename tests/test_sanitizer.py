import dataclasses

import pytest

from canonfeed import STRICT_CONFIG, ContentKind, Sanitizer, SanitizerConfig

HTML = ContentKind.HTML


def test_script_and_style_are_removed_with_their_content():
    raw = "<p>Hi</p><script>alert(1)</script><style>p {color: red}</style>"
    assert Sanitizer().sanitize(raw, kind=HTML) == "<p>Hi</p>"


def test_unknown_tags_are_unwrapped():
    raw = "<blink>Hi <b>there</b></blink>"
    assert Sanitizer().sanitize(raw, kind=HTML) == "Hi <b>there</b>"


def test_event_handlers_and_styles_are_dropped():
    raw = '<a href="http://example.com/" onclick="steal()" style="x">link</a>'
    assert (
        Sanitizer().sanitize(raw, kind=HTML) == '<a href="http://example.com/">link</a>'
    )


@pytest.mark.parametrize(
    "href",
    [
        "javascript:alert(1)",
        "JavaScript:alert(1)",
        "java\tscript:alert(1)",
        " javascript:alert(1)",
        "data:text/html;base64,PHNjcmlwdD4=",
        "vbscript:msgbox(1)",
    ],
)
def test_unsafe_schemes_drop_the_attribute_only(href):
    raw = f'<a href="{href}">link</a>'
    assert Sanitizer().sanitize(raw, kind=HTML) == "<a>link</a>"


def test_mailto_is_allowed():
    raw = '<a href="mailto:joe@example.com">mail</a>'
    assert Sanitizer().sanitize(raw, kind=HTML) == raw


def test_relative_uris_resolve_against_base():
    raw = '<img src="a.png"><a href="/about">about</a>'
    assert Sanitizer().sanitize(raw, "http://example.com/dir/", HTML) == (
        '<img src="http://example.com/dir/a.png">'
        '<a href="http://example.com/about">about</a>'
    )


def test_relative_uris_without_base_are_kept():
    raw = '<a href="/about">about</a>'
    assert Sanitizer().sanitize(raw, kind=HTML) == raw


@pytest.mark.parametrize(
    "raw",
    [
        "<p>Hello <b>world</b></p><script>x()</script>",
        '<a href="/rel" onclick="x">link</a> &amp; text',
        "5 &lt; 6 &amp;&amp; 7 &gt; 3",
        "<table><tr><td>cell</td></tr></table>",
        "<ul><li>one<li>two</ul>",
        "plain text",
    ],
)
def test_html_sanitization_is_idempotent(raw):
    sanitizer = Sanitizer()
    once = sanitizer.sanitize(raw, "http://example.com/", HTML)
    assert sanitizer.sanitize(once, "http://example.com/", HTML) == once


def test_plain_text_is_escaped_without_touching_quotes():
    raw = " He said \"5 < 6\" & 'so on' "
    assert Sanitizer().sanitize(raw) == "He said \"5 &lt; 6\" &amp; 'so on'"


@pytest.mark.parametrize(
    "raw,base,expected",
    [
        ("http://example.com/a?b=1&c=2", None, "http://example.com/a?b=1&amp;c=2"),
        ("/feed", "http://example.com/blog/", "http://example.com/feed"),
        ("javascript:alert(1)", None, ""),
        ("javascript:alert(1)", "http://example.com/", ""),
        ("  ", None, ""),
    ],
)
def test_uri_kind(raw, base, expected):
    assert Sanitizer().sanitize(raw, base, ContentKind.URI) == expected


@pytest.mark.parametrize("raw", [None, "", "<<<>>>", "<p", "&#xFFFF;", "</div></div>"])
def test_sanitizer_never_raises(raw):
    assert isinstance(Sanitizer().sanitize(raw, kind=HTML), str)


@pytest.mark.parametrize("raw", ["<plaintext><b>x", "<textarea>x", "<xmp>x", "<p>x"])
def test_unclosed_raw_text_elements_do_not_leak_document_wrapper(raw):
    cleaned = Sanitizer().sanitize(raw, kind=HTML)
    assert "body" not in cleaned
    assert "html" not in cleaned
    assert "x" in cleaned


def test_strict_config_keeps_inline_markup_only():
    raw = '<img src="x.png">Title <b>bold</b> <div>block</div>'
    assert Sanitizer(STRICT_CONFIG).sanitize(raw, kind=HTML) == "Title <b>bold</b> block"


def test_configs_coexist():
    default = Sanitizer()
    strict = Sanitizer(STRICT_CONFIG)
    raw = "<p>para</p>"
    assert default.sanitize(raw, kind=HTML) == "<p>para</p>"
    assert strict.sanitize(raw, kind=HTML) == "para"
    assert default.sanitize(raw, kind=HTML) == "<p>para</p>"


def test_custom_config():
    config = SanitizerConfig(allowed_schemes=frozenset({"https"}))
    sanitizer = Sanitizer(config)
    assert sanitizer.sanitize('<a href="http://x.com/">x</a>', kind=HTML) == "<a>x</a>"
    assert (
        sanitizer.sanitize('<a href="https://x.com/">x</a>', kind=HTML)
        == '<a href="https://x.com/">x</a>'
    )


def test_config_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        STRICT_CONFIG.allowed_tags = frozenset()
