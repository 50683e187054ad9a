import pytest

from canonfeed import parse
from feed_templates import (
    ALL_ROOTS,
    ATOM_PREFIX,
    ATOM_ROOTS,
    DC10,
    DC11,
    RDF_ROOTS,
    RSS_ROOTS,
    document,
)

NATIVE_DESCRIPTION = {
    **{root: "description" for root in RSS_ROOTS + RDF_ROOTS},
    "atom-0.3": "tagline",
    "atom-1.0": "subtitle",
}
NATIVE_COPYRIGHT = {
    **{root: "copyright" for root in RSS_ROOTS},
    "atom-0.3": "copyright",
    "atom-1.0": "rights",
}


@pytest.mark.parametrize("root", ALL_ROOTS)
def test_native_description(root):
    tag = NATIVE_DESCRIPTION[root]
    feed = parse(document(root, f"<{tag}>Feed description</{tag}>"))
    assert feed.description == "Feed description"


@pytest.mark.parametrize("root", ALL_ROOTS)
@pytest.mark.parametrize("ns", [DC10, DC11], ids=["dc-1.0", "dc-1.1"])
def test_dublin_core_description(root, ns):
    feed = parse(document(root, "<dc:description>Feed description</dc:description>", ns))
    assert feed.description == "Feed description"


MARKUP_DESCRIPTION = "A &lt;b&gt;bold&lt;/b&gt; &amp;amp; claim"


@pytest.mark.parametrize("root", RSS_ROOTS + RDF_ROOTS)
@pytest.mark.parametrize("ns", [DC10, DC11], ids=["dc-1.0", "dc-1.1"])
def test_dublin_core_description_matches_native(root, ns):
    native = parse(document(root, f"<description>{MARKUP_DESCRIPTION}</description>"))
    dublin_core = parse(
        document(root, f"<dc:description>{MARKUP_DESCRIPTION}</dc:description>", ns)
    )
    assert dublin_core.description == native.description == "A <b>bold</b> &amp; claim"


def test_rss_description_keeps_safe_markup():
    channel = (
        "<description>&lt;p onclick=\"x()\"&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;"
        "</description>"
    )
    assert parse(document("rss-2.0", channel)).description == "<p>Hello <b>world</b></p>"


@pytest.mark.parametrize("root", sorted(NATIVE_COPYRIGHT))
def test_native_copyright(root):
    tag = NATIVE_COPYRIGHT[root]
    feed = parse(document(root, f"<{tag}>Example Copyright Information</{tag}>"))
    assert feed.copyright == "Example Copyright Information"


@pytest.mark.parametrize("root", ALL_ROOTS)
@pytest.mark.parametrize("ns", [DC10, DC11], ids=["dc-1.0", "dc-1.1"])
def test_dublin_core_rights(root, ns):
    feed = parse(document(root, "<dc:rights>Example Copyright Information</dc:rights>", ns))
    assert feed.copyright == "Example Copyright Information"


def test_dc_rights_beats_atom_rights_in_rss_root():
    channel = "<atom:rights>Atom rights</atom:rights><dc:rights>DC rights</dc:rights>"
    feed = parse(document("rss-2.0", channel, f"{DC11} {ATOM_PREFIX}"))
    assert feed.copyright == "DC rights"


def test_atom_rights_beats_dc_rights_in_atom_root():
    channel = "<dc:rights>DC rights</dc:rights><rights>Atom rights</rights>"
    feed = parse(document("atom-1.0", channel, DC11))
    assert feed.copyright == "Atom rights"


@pytest.mark.parametrize("root", RSS_ROOTS)
def test_native_language(root):
    assert parse(document(root, "<language>en-GB</language>")).language == "en-GB"


@pytest.mark.parametrize("root", ALL_ROOTS)
@pytest.mark.parametrize("ns", [DC10, DC11], ids=["dc-1.0", "dc-1.1"])
def test_dublin_core_language(root, ns):
    feed = parse(document(root, "<dc:language>en-GB</dc:language>", ns))
    assert feed.language == "en-GB"


@pytest.mark.parametrize("root", ATOM_ROOTS)
def test_xml_lang_on_root(root):
    assert parse(document(root, "", 'xml:lang="en-US"')).language == "en-US"


def test_explicit_language_beats_xml_lang():
    feed = parse(document("rss-2.0", "<language>fr</language>", 'xml:lang="en"'))
    assert feed.language == "fr"


@pytest.mark.parametrize("root", RSS_ROOTS + RDF_ROOTS)
def test_native_link(root):
    feed = parse(document(root, "<link>http://example.com/</link>"))
    assert feed.link == "http://example.com/"


@pytest.mark.parametrize("root", ATOM_ROOTS)
@pytest.mark.parametrize(
    "rel",
    ["", ' rel="alternate"', ' rel="http://www.iana.org/assignments/relation/alternate"'],
    ids=["no-rel", "alternate", "iana-alternate"],
)
def test_atom_alternate_link(root, rel):
    feed = parse(document(root, f'<link{rel} href="http://example.com/"/>'))
    assert feed.link == "http://example.com/"


def test_atom_self_link_is_not_the_feed_link():
    channel = (
        '<link rel="self" href="http://example.com/feed.atom"/>'
        '<link rel="alternate" href="http://example.com/"/>'
    )
    assert parse(document("atom-1.0", channel)).link == "http://example.com/"


def test_atom_link_fallback_in_rss():
    channel = '<atom:link rel="self" href="http://example.com/feed"/><atom:link href="http://example.com/"/>'
    feed = parse(document("rss-2.0", channel, ATOM_PREFIX))
    assert feed.link == "http://example.com/"


def test_relative_link_resolves_against_base_uri():
    feed = parse(
        document("rss-2.0", "<link>/about</link>"), base_uri="http://example.org/feed.xml"
    )
    assert feed.link == "http://example.org/about"


def test_xml_base_resolves_atom_link():
    channel = '<link xml:base="http://example.com/blog/" href="index.html"/>'
    feed = parse(document("atom-1.0", channel))
    assert feed.link == "http://example.com/blog/index.html"


def test_javascript_link_is_dropped():
    assert parse(document("rss-2.0", "<link>javascript:alert(1)</link>")).link is None


@pytest.mark.parametrize("root", RSS_ROOTS)
def test_rss_image_url_gets_legacy_dimensions(root):
    feed = parse(document(root, "<image><url>http://example.com/</url></image>"))
    assert feed.image_url == "http://example.com/"
    assert feed.image_width == 88
    assert feed.image_height == 31


@pytest.mark.parametrize("root", RDF_ROOTS)
def test_rdf_image_has_no_default_dimensions(root):
    feed = parse(document(root, "<image><url>http://example.com/</url></image>"))
    assert feed.image_url == "http://example.com/"
    assert feed.image_width is None
    assert feed.image_height is None


def test_rdf_root_level_image():
    xml = document("rss-1.0", '<image rdf:resource="http://example.com/logo.png"/>')
    xml = xml.replace(
        "</rdf:RDF>",
        '<image rdf:about="http://example.com/logo.png">'
        "<title>Logo</title><url>http://example.com/logo.png</url></image></rdf:RDF>",
    )
    feed = parse(xml)
    assert feed.image_url == "http://example.com/logo.png"
    assert feed.image_title == "Logo"


@pytest.mark.parametrize(
    "root,tag",
    [("atom-1.0", "icon"), ("atom-1.0", "logo"), ("atom-0.3", "logo")],
)
def test_atom_image_url_has_no_dimensions(root, tag):
    feed = parse(document(root, f"<{tag}>http://example.com/</{tag}>"))
    assert feed.image_url == "http://example.com/"
    assert feed.image_width is None
    assert feed.image_height is None


@pytest.mark.parametrize("root", RSS_ROOTS + RDF_ROOTS)
def test_explicit_image_height(root):
    channel = "<image><url>http://example.com/</url><height>100</height></image>"
    assert parse(document(root, channel)).image_height == 100


def test_unparseable_image_width_falls_back_to_default():
    channel = "<image><url>http://example.com/</url><width>wide</width></image>"
    assert parse(document("rss-2.0", channel)).image_width == 88


def test_no_image_no_dimensions():
    feed = parse(document("rss-2.0", "<title>Feed</title>"))
    assert feed.image_url is None
    assert feed.image_width is None
    assert feed.image_height is None


@pytest.mark.parametrize("root", RSS_ROOTS + RDF_ROOTS)
@pytest.mark.parametrize(
    "title,ns",
    [
        ("<title>Image title</title>", ""),
        ("<dc:title>Image title</dc:title>", DC10),
        ("<dc:title>Image title</dc:title>", DC11),
    ],
    ids=["native", "dc-1.0", "dc-1.1"],
)
def test_image_title(root, title, ns):
    feed = parse(document(root, f"<image>{title}</image>", ns))
    assert feed.image_title == "Image title"


@pytest.mark.parametrize("root", RSS_ROOTS + RDF_ROOTS)
def test_image_link(root):
    feed = parse(document(root, "<image><link>http://example.com/</link></image>"))
    assert feed.image_link == "http://example.com/"


def test_feed_id_and_updated():
    channel = (
        "<id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>"
        "<updated>2003-12-13T18:30:02Z</updated>"
    )
    feed = parse(document("atom-1.0", channel))
    assert feed.id == "urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6"
    assert feed.updated == "2003-12-13T18:30:02+00:00"


def test_rdf_channel_about_is_feed_id():
    assert parse(document("rss-1.0", "<title>T</title>")).id == "http://example.com/"


def test_feed_authors_and_categories():
    channel = (
        "<managingEditor>editor@example.com (Jane Editor)</managingEditor>"
        '<category domain="http://example.com/tags">news</category>'
        "<category>news</category>"
    )
    feed = parse(document("rss-2.0", channel))
    assert [(a.name, a.email) for a in feed.authors] == [
        ("Jane Editor", "editor@example.com")
    ]
    assert [(c.term, c.scheme) for c in feed.categories] == [
        ("news", "http://example.com/tags"),
        ("news", None),
    ]


@pytest.mark.parametrize(
    "xml,vocabulary",
    [
        (document("rss-0.90", ""), "RSS 0.90 (RDF)"),
        (document("rss-0.91-userland", ""), "RSS 0.91"),
        (document("rss-0.92", ""), "RSS 0.92"),
        (document("rss-1.0", ""), "RSS 1.0 (RDF)"),
        (document("rss-2.0", ""), "RSS 2.0"),
        ("<rss><channel/></rss>", "RSS 2.0"),
        (document("atom-0.3", ""), "Atom 0.3"),
        (document("atom-1.0", ""), "Atom 1.0"),
    ],
)
def test_vocabulary_detection(xml, vocabulary):
    assert str(parse(xml).vocabulary) == vocabulary
