import pytest

from canonfeed import parse


def test_parse_str_with_non_utf8_xml_declaration():
    xml = (
        '<?xml version="1.0" encoding="iso-8859-1"?>'
        '<rss version="2.0">'
        "<channel>"
        "<title>café</title>"
        "<item><title>café</title></item>"
        "</channel>"
        "</rss>"
    )
    feed = parse(xml)
    assert feed.title == "café"
    assert feed.items[0].title == "café"


def test_parse_str_with_utf16_xml_declaration():
    xml = (
        '<?xml version="1.0" encoding="UTF-16"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>日本語</title></feed>'
    )
    assert parse(xml).title == "日本語"


def test_parse_bytes_requires_decoding_first():
    xml_bytes = (
        b'<?xml version="1.0" encoding="iso-8859-1"?>'
        b'<rss version="2.0"><channel><title>caf\xe9</title></channel></rss>'
    )
    with pytest.raises(TypeError):
        parse(xml_bytes)
    assert parse(xml_bytes.decode("iso-8859-1")).title == "café"


def test_byte_order_mark_is_skipped():
    xml = '\ufeff<rss version="2.0"><channel><title>BOM</title></channel></rss>'
    assert parse(xml).title == "BOM"


def test_line_separators_do_not_break_parsing():
    xml = '<rss version="2.0"><channel><title>a\u2028b</title></channel></rss>'
    assert parse(xml).title == "a\nb"
