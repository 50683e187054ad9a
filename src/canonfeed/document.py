from __future__ import annotations

import html as _html_mod
from html.entities import name2codepoint
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterator, Mapping, NamedTuple, Optional
from urllib.parse import urljoin, urlsplit

from lxml import etree

from .errors import MalformedMarkupError, UnexpectedEofError, UnsupportedRootError
from .registry import (
    ATOM,
    ATOM_VERSIONS,
    DEFAULT_RDF_VERSION,
    RDF_NS,
    RDF_VERSIONS,
    XML_NS,
    RootVocabulary,
    native_namespaces,
    parse_rss_version,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger(__name__)

# Pre-compiled regex patterns for performance
_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding\s*=\s*["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_DOUBLE_XML_DECL_BYTES = re.compile(rb"<\?xml\?xml\s+", re.IGNORECASE)
_RE_DOUBLE_CLOSE_BYTES = re.compile(rb"\?\?>\s*")
_RE_UNQUOTED_ATTR_BYTES = re.compile(rb'("[^"]*"|\'[^\']*\')|(\s+[\w:]+)=([^\s>"\']+)')
_RE_UNCLOSED_LINK_BYTES = re.compile(
    rb"<link([^>]*[^/])>\s*(?=\n\s*<(?!/link\s*>))", re.MULTILINE
)
_RE_CDATA_SECTION = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_RE_CDATA_SECTION_BYTES = re.compile(rb"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_RE_START_TAG_BYTES = re.compile(rb"<[A-Za-z][^<>]*>")
_RE_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")

_XML_PREDEFINED_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})
_EOF_MARKERS = (
    "premature end of data",
    "document is empty",
    "endtag: '</' not found",
    "unexpected end",
)
_VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
     "param", "source", "track", "wbr"}
)  # fmt: skip

_XML_BASE_ATTR = (XML_NS, "base")
_XML_LANG_ATTR = (XML_NS, "lang")


@dataclass(frozen=True, eq=False)
class ElementNode:
    """One element of the immutable document tree.

    ``text`` is every direct text/CDATA run of the element concatenated, decoded
    exactly once. ``head`` (text before the first child) and ``tail`` (text
    after this element inside its parent) are kept so embedded markup can be
    re-serialized. ``base`` and ``lang`` are inherited from the nearest
    enclosing ``xml:base``/``xml:lang``.
    """

    namespace: str
    local: str
    attributes: Mapping[tuple[str, str], str]
    text: str
    head: str
    tail: str
    children: tuple["ElementNode", ...]
    base: Optional[str]
    lang: Optional[str]

    def get(self, local: str, namespace: str = "") -> Optional[str]:
        return self.attributes.get((namespace, local))

    def iter_children(self, namespaces: frozenset, local: str) -> Iterator[ElementNode]:
        """Direct children in ``namespaces`` named ``local`` (case-insensitive)."""
        local_lower = local.lower()
        for child in self.children:
            if child.namespace in namespaces and (
                child.local == local or child.local.lower() == local_lower
            ):
                yield child

    def find(self, namespaces: frozenset, local: str) -> Optional[ElementNode]:
        return next(self.iter_children(namespaces, local), None)

    def inner_markup(self) -> str:
        """Serialize the children back into (X)HTML, dropping namespace prefixes."""
        parts = [_html_mod.escape(self.head, quote=False)]
        for child in self.children:
            parts.append(child._outer_markup())
        return "".join(parts)

    def _outer_markup(self) -> str:
        attributes = "".join(
            f' {local}="{_html_mod.escape(value)}"'
            for (namespace, local), value in self.attributes.items()
            if not namespace
        )
        tail = _html_mod.escape(self.tail, quote=False)
        if self.local in _VOID_ELEMENTS and not self.children and not self.head:
            return f"<{self.local}{attributes}>{tail}"
        return f"<{self.local}{attributes}>{self.inner_markup()}</{self.local}>{tail}"

    def itertext(self) -> Iterator[str]:
        yield self.head
        for child in self.children:
            yield from child.itertext()
            yield child.tail


class ParsedDocument(NamedTuple):
    root: ElementNode
    vocabulary: RootVocabulary
    channel: ElementNode
    items: tuple[ElementNode, ...]
    images: tuple[ElementNode, ...]


_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
    load_dtd=False,
    no_network=True,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
    load_dtd=False,
    no_network=True,
)


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Ensure the XML declaration's encoding matches the UTF-8 bytes we emit."""
    if not content.startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _clean_feed_text(content: str) -> str:
    """Extract the XML document from text that may carry junk before the prolog."""
    stripped_content = content.lstrip().lstrip("\ufeff").lstrip()
    preview_lower = stripped_content[:2000].lower()

    if preview_lower.startswith("<!doctype html") or preview_lower.startswith(
        "<html"
    ):
        raise UnsupportedRootError(
            "Content appears to be HTML, not a valid RSS/Atom feed"
        )

    if preview_lower.startswith(
        ("<?xml", "<rss", "<feed", "<rdf", "<!doctype", "<!--")
    ):
        return stripped_content

    xml_start_patterns = (
        "<?xml",
        "<rss",
        "<feed",
        "<rdf:rdf",
        "<?xml-stylesheet",
    )

    search_chunk = stripped_content[:8192].lower()
    earliest = -1
    for pattern in xml_start_patterns:
        idx = search_chunk.find(pattern)
        if idx != -1 and (earliest == -1 or idx < earliest):
            earliest = idx
    if earliest != -1:
        return stripped_content[earliest:]

    if "<script>" in preview_lower or "<body>" in preview_lower:
        raise UnsupportedRootError(
            "Content appears to be HTML, not a valid RSS/Atom feed"
        )

    return stripped_content


def _numeric_reference(match: re.Match) -> str:
    name = match.group(1)
    if name in _XML_PREDEFINED_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        return match.group(0)
    return f"&#{codepoint};"


def _replace_html_entities(content: str) -> str:
    """Rewrite HTML named entities (declared by legacy RSS DTDs) as numeric references.

    CDATA sections are left untouched because their content is literal.
    """
    if "&" not in content:
        return content
    parts = _RE_CDATA_SECTION.split(content)
    for idx in range(0, len(parts), 2):
        parts[idx] = _RE_NAMED_ENTITY.sub(_numeric_reference, parts[idx])
    return "".join(parts)


def _prepare_xml_bytes(content: str) -> bytes:
    if not isinstance(content, str):
        raise TypeError(
            f"Expected decoded text, got {type(content).__name__}; "
            "decode the document before parsing it"
        )
    cleaned = _clean_feed_text(content)
    if not cleaned.strip():
        raise UnexpectedEofError("Empty content")

    # U+2028/U+2029 are invalid in XML 1.0 and make libxml2 fail.
    if "\u2028" in cleaned or "\u2029" in cleaned:
        cleaned = cleaned.replace("\u2028", "\n").replace("\u2029", "\n")

    cleaned = _ensure_utf8_xml_declaration(cleaned)
    cleaned = _replace_html_entities(cleaned)
    return cleaned.encode("utf-8", errors="replace")


def _fix_malformed_xml_bytes(content: bytes) -> bytes:
    # XML declarations live at the top of the file; only scan the first 2 KB.
    header = content[:2048]
    tail = content[2048:]

    # Fix double XML declarations like "<?xml?xml version="1.0"?>"
    header = _RE_DOUBLE_XML_DECL_BYTES.sub(b"<?xml ", header)

    # Fix double closing ?> in XML declaration like "??>>"
    header = _RE_DOUBLE_CLOSE_BYTES.sub(b"?>", header)

    # Markup repairs stay outside CDATA sections, whose content is literal.
    parts = _RE_CDATA_SECTION_BYTES.split(header + tail)
    for idx in range(0, len(parts), 2):
        # Fix malformed attribute syntax like rss:version=2.0 (missing quotes),
        # inside start tags only so element text keeps its "x=5".
        part = _RE_START_TAG_BYTES.sub(_quote_attributes, parts[idx])

        # Fix unclosed link tags - common in Atom feeds
        parts[idx] = _RE_UNCLOSED_LINK_BYTES.sub(rb"<link\1/>", part)

    return b"".join(parts)


def _quote_attribute(match: re.Match) -> bytes:
    if match.group(1) is not None:
        return match.group(1)
    return match.group(2) + b'="' + match.group(3) + b'"'


def _quote_attributes(match: re.Match) -> bytes:
    return _RE_UNQUOTED_ATTR_BYTES.sub(_quote_attribute, match.group(0))


def _syntax_error(error: etree.XMLSyntaxError) -> Exception:
    message = str(error)
    if any(marker in message.lower() for marker in _EOF_MARKERS):
        return UnexpectedEofError(f"Document ended unexpectedly: {message}")
    return MalformedMarkupError(f"Failed to parse XML content: {message}")


def _parse_xml_root(xml_content: bytes) -> _Element:
    try:
        return etree.fromstring(xml_content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError as e:
        strict_error = e

    logger.debug("Strict XML parse failed (%s), running repair pass", strict_error)
    repaired = _fix_malformed_xml_bytes(xml_content)
    try:
        root = etree.fromstring(repaired, parser=_RECOVER_XML_PARSER)
    except etree.XMLSyntaxError as e:
        raise _syntax_error(e) from e

    if root is None:
        raise _syntax_error(strict_error) from strict_error
    return root


def _split_tag(tag: str) -> tuple[str, str]:
    if tag[:1] == "{":
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return "", tag


def _join_base(parent_base: Optional[str], value: str) -> Optional[str]:
    value = value.strip()
    try:
        joined = urljoin(parent_base, value) if parent_base else value
        urlsplit(joined)
    except ValueError:
        logger.warning("Ignoring malformed xml:base %r", value)
        return parent_base
    return joined or parent_base


def _build_node(
    element: _Element,
    parent_base: Optional[str],
    parent_lang: Optional[str],
    tail: str = "",
) -> ElementNode:
    namespace, local = _split_tag(element.tag)
    attributes = {_split_tag(key): value for key, value in element.attrib.items()}

    base = parent_base
    if _XML_BASE_ATTR in attributes:
        base = _join_base(parent_base, attributes[_XML_BASE_ATTR])
    lang = parent_lang
    if _XML_LANG_ATTR in attributes:
        lang = attributes[_XML_LANG_ATTR].strip() or None

    # Comments and processing instructions vanish; their tails stay in place.
    head = element.text or ""
    entries: list[list] = []
    for child in element:
        if isinstance(child.tag, str):
            entries.append([child, child.tail or ""])
        elif entries:
            entries[-1][1] += child.tail or ""
        else:
            head += child.tail or ""

    children = tuple(
        _build_node(child, base, lang, child_tail) for child, child_tail in entries
    )
    return ElementNode(
        namespace=namespace,
        local=local,
        attributes=MappingProxyType(attributes),
        text=head + "".join(child_tail for _, child_tail in entries),
        head=head,
        tail=tail,
        children=children,
        base=base,
        lang=lang,
    )


_NON_FEED_MESSAGES: dict[str, str] = {
    "html": "Received HTML page instead of feed",
    "div": "Received HTML fragment instead of feed",
    "body": "Received HTML fragment instead of feed",
    "br": "Received HTML fragment instead of feed",
    "status": "Feed server returned status message",
    "error": "Feed server returned error",
    "opml": "Received OPML document instead of feed (OPML is an outline format, not a feed)",
    "urlset": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
    "sitemapindex": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
}


def _unsupported_root(root: ElementNode) -> UnsupportedRootError:
    root_tag_local = root.local.lower()
    base_msg = _NON_FEED_MESSAGES.get(root_tag_local)
    if base_msg is None:
        return UnsupportedRootError(f"Unknown feed type: {root.local}")

    error_msg = " ".join(" ".join(root.itertext()).split())
    if len(error_msg) > 10:
        return UnsupportedRootError(f"{base_msg}: {error_msg[:150]}")
    return UnsupportedRootError(base_msg)


def _first_child_named(node: ElementNode, local: str) -> Optional[ElementNode]:
    for child in node.children:
        if child.local.lower() == local:
            return child
    return None


def _detect_feed_structure(root: ElementNode) -> ParsedDocument:
    root_tag_local = root.local.lower()

    if root_tag_local == "rss":
        vocabulary = RootVocabulary("rss", *parse_rss_version(root.get("version")))
        native = native_namespaces(vocabulary)
        channel = _first_child_named(root, "channel")
        if channel is None:
            has_feed_elements = any(
                child.local in {"item", "title", "link", "description", "entry"}
                for child in root.children
            )
            if not has_feed_elements:
                raise UnsupportedRootError("Invalid RSS feed: missing channel element")
            channel = root

        items = tuple(channel.iter_children(native, "item"))
        if not items and channel is not root:
            items = tuple(root.iter_children(native, "item"))
        images = tuple(channel.iter_children(native, "image"))
        return ParsedDocument(root, vocabulary, channel, items, images)

    if root.namespace == RDF_NS and root.local == "RDF":
        channel = _first_child_named(root, "channel")
        first_item = _first_child_named(root, "item")
        marker = channel if channel is not None else first_item
        if marker is None:
            raise UnsupportedRootError("RDF document has neither channel nor items")

        version = RDF_VERSIONS.get(marker.namespace, DEFAULT_RDF_VERSION)
        vocabulary = RootVocabulary("rdf", *version)
        native = native_namespaces(vocabulary)
        if channel is None:
            channel = root

        items = tuple(root.iter_children(native, "item"))
        if not items and channel is not root:
            items = tuple(channel.iter_children(native, "item"))
        images = tuple(channel.iter_children(native, "image"))
        if channel is not root:
            images += tuple(root.iter_children(native, "image"))
        return ParsedDocument(root, vocabulary, channel, items, images)

    if root_tag_local == "feed":
        version = ATOM_VERSIONS.get(root.namespace)
        if version is None:
            raise UnsupportedRootError(
                f"Unknown Atom namespace in feed type: {root.namespace or '(none)'}"
            )
        vocabulary = RootVocabulary("atom", *version)
        items = tuple(root.iter_children(ATOM, "entry"))
        return ParsedDocument(root, vocabulary, root, items, ())

    raise _unsupported_root(root)


def parse_document(text: str, base_uri: Optional[str] = None) -> ParsedDocument:
    """Build the element tree for ``text`` and locate its feed structure.

    Args:
        text: Decoded document text
        base_uri: Retrieval URL, the outermost base for relative references

    Raises:
        MalformedMarkupError: If the markup cannot be repaired
        UnexpectedEofError: If the document is empty or truncated
        UnsupportedRootError: If the root is not a known feed vocabulary
    """
    xml_content = _prepare_xml_bytes(text)
    lxml_root = _parse_xml_root(xml_content)
    root = _build_node(lxml_root, base_uri or None, None)
    document = _detect_feed_structure(root)
    logger.debug(
        "Parsed %s document with %d items", document.vocabulary, len(document.items)
    )
    return document
