"""Static vocabulary registry.

Everything that differs between RSS 0.90, 0.91, 0.92, 1.0, 2.0, Atom 0.3 and
Atom 1.0 lives here as data: namespace equivalence classes, the native
namespace of each root vocabulary, ordered candidate tables per canonical
field and the legacy defaults. The resolver walks these tables and never
branches on a version itself.
"""

from __future__ import annotations

import enum
from functools import lru_cache
from typing import NamedTuple, Optional

from .sanitizer import ContentKind

XML_NS = "http://www.w3.org/XML/1998/namespace"
XHTML_NS = "http://www.w3.org/1999/xhtml"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RSS090_NS = "http://my.netscape.com/rdf/simple/0.9/"
RSS10_NS = "http://purl.org/rss/1.0/"
ATOM10_NS = "http://www.w3.org/2005/Atom"
ATOM03_NS = "http://purl.org/atom/ns#"
DC10_NS = "http://purl.org/dc/elements/1.0/"
DC11_NS = "http://purl.org/dc/elements/1.1/"
DCTERMS_NS = "http://purl.org/dc/terms/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
MEDIA_NS = "http://search.yahoo.com/mrss/"

# Namespace equivalence classes. "" is the empty namespace used by RSS 0.9x/2.0.
RSS = frozenset(
    {
        "",
        "http://backend.userland.com/rss2",
        "http://blogs.law.harvard.edu/tech/rss",
    }
)
RSS10 = frozenset({RSS10_NS})
RSS090 = frozenset({RSS090_NS})
ATOM10 = frozenset({ATOM10_NS, "https://www.w3.org/2005/Atom"})
ATOM03 = frozenset({ATOM03_NS})
ATOM = ATOM10 | ATOM03
DC = frozenset({DC10_NS, DC11_NS})
DCTERMS = frozenset({DCTERMS_NS})
CONTENT = frozenset({CONTENT_NS})
MEDIA = frozenset({MEDIA_NS})
RDF = frozenset({RDF_NS})
XML = frozenset({XML_NS})

# rel values that mean "alternate" on an Atom link; None is an absent rel.
ALTERNATE_RELS = frozenset(
    {None, "alternate", "http://www.iana.org/assignments/relation/alternate"}
)
ENCLOSURE_RELS = frozenset(
    {"enclosure", "http://www.iana.org/assignments/relation/enclosure"}
)


class RootVocabulary(NamedTuple):
    """Document family and version, determined once from the root element."""

    family: str  # "rss", "atom" or "rdf"
    major: int
    minor: int

    def __str__(self) -> str:
        name = "Atom" if self.family == "atom" else "RSS"
        suffix = " (RDF)" if self.family == "rdf" else ""
        return f"{name} {self.major}.{self.minor}{suffix}"


class Source(enum.Enum):
    """Where a candidate's raw value is read from."""

    TEXT = "text"  # text of a matching child element
    LINK = "link"  # href of a child link whose rel means alternate
    PERMALINK = "permalink"  # RSS guid unless isPermaLink="false"
    SCOPE_ATTRIBUTE = "scope-attribute"  # attribute on the scope element itself
    INHERITED_LANG = "inherited-lang"  # nearest enclosing xml:lang
    PERSON = "person"  # Atom person construct
    ADDRESS = "address"  # RSS "email (Name)" mailbox
    TERM_ATTRIBUTES = "term-attributes"  # Atom category
    ENCLOSURE = "enclosure"  # url/type/length attributes
    ENCLOSURE_LINK = "enclosure-link"  # Atom link rel="enclosure"


class Candidate(NamedTuple):
    namespaces: frozenset
    local: str
    kind: ContentKind = ContentKind.PLAIN
    source: Source = Source.TEXT
    scope: str = "self"
    # (url, type, length) attribute names for enclosure-like sources,
    # (scheme,) for text categories.
    attributes: tuple = ()


_TC = ContentKind.TEXT_CONSTRUCT

FEED_FIELDS: dict[str, tuple[Candidate, ...]] = {
    "title": (
        Candidate(RSS, "title"),
        Candidate(RSS10, "title"),
        Candidate(RSS090, "title"),
        Candidate(DC, "title"),
        Candidate(ATOM10, "title", _TC),
        Candidate(ATOM03, "title", _TC),
    ),
    "description": (
        Candidate(RSS, "description", ContentKind.HTML),
        Candidate(RSS10, "description", ContentKind.HTML),
        Candidate(RSS090, "description", ContentKind.HTML),
        Candidate(DC, "description", ContentKind.HTML),
        Candidate(ATOM10, "subtitle", _TC),
        Candidate(ATOM03, "tagline", _TC),
    ),
    "link": (
        Candidate(RSS, "link", ContentKind.URI),
        Candidate(RSS10, "link", ContentKind.URI),
        Candidate(RSS090, "link", ContentKind.URI),
        Candidate(ATOM10, "link", ContentKind.URI, Source.LINK),
        Candidate(ATOM03, "link", ContentKind.URI, Source.LINK),
    ),
    "copyright": (
        Candidate(RSS, "copyright"),
        Candidate(DC, "rights"),
        Candidate(ATOM10, "rights", _TC),
        Candidate(ATOM03, "copyright", _TC),
    ),
    "language": (
        Candidate(RSS, "language"),
        Candidate(DC, "language"),
        Candidate(XML, "lang", source=Source.INHERITED_LANG),
    ),
    "id": (
        Candidate(ATOM, "id"),
        Candidate(RDF, "about", source=Source.SCOPE_ATTRIBUTE),
    ),
    "updated": (
        Candidate(ATOM10, "updated"),
        Candidate(ATOM03, "modified"),
        Candidate(RSS, "lastBuildDate"),
        Candidate(DC, "date"),
        Candidate(DCTERMS, "modified"),
    ),
}

IMAGE_FIELDS: dict[str, tuple[Candidate, ...]] = {
    "url": (
        Candidate(RSS, "url", ContentKind.URI, scope="image"),
        Candidate(RSS10, "url", ContentKind.URI, scope="image"),
        Candidate(RSS090, "url", ContentKind.URI, scope="image"),
        Candidate(ATOM10, "icon", ContentKind.URI),
        Candidate(ATOM10, "logo", ContentKind.URI),
        Candidate(ATOM03, "logo", ContentKind.URI),
    ),
    "title": (
        Candidate(RSS, "title", scope="image"),
        Candidate(RSS10, "title", scope="image"),
        Candidate(RSS090, "title", scope="image"),
        Candidate(DC, "title", scope="image"),
    ),
    "link": (
        Candidate(RSS, "link", ContentKind.URI, scope="image"),
        Candidate(RSS10, "link", ContentKind.URI, scope="image"),
        Candidate(RSS090, "link", ContentKind.URI, scope="image"),
    ),
    "width": (
        Candidate(RSS, "width", scope="image"),
        Candidate(RSS10, "width", scope="image"),
        Candidate(RSS090, "width", scope="image"),
    ),
    "height": (
        Candidate(RSS, "height", scope="image"),
        Candidate(RSS10, "height", scope="image"),
        Candidate(RSS090, "height", scope="image"),
    ),
}

# Image dimensions assumed by vocabularies that predate explicit sizes. They
# apply only when the image declares a URL in the native vocabulary.
IMAGE_DIMENSION_DEFAULTS: dict[str, dict[str, int]] = {
    "rss": {"width": 88, "height": 31},
}

ITEM_FIELDS: dict[str, tuple[Candidate, ...]] = {
    "title": (
        Candidate(RSS, "title"),
        Candidate(RSS10, "title"),
        Candidate(RSS090, "title"),
        Candidate(DC, "title"),
        Candidate(ATOM10, "title", _TC),
        Candidate(ATOM03, "title", _TC),
    ),
    "description": (
        Candidate(RSS, "description", ContentKind.HTML),
        Candidate(RSS10, "description", ContentKind.HTML),
        Candidate(RSS090, "description", ContentKind.HTML),
        Candidate(DC, "description", ContentKind.HTML),
        Candidate(ATOM10, "summary", _TC),
        Candidate(ATOM03, "summary", _TC),
    ),
    "content": (
        Candidate(CONTENT, "encoded", ContentKind.HTML),
        Candidate(ATOM10, "content", _TC),
        Candidate(ATOM03, "content", _TC),
    ),
    "link": (
        Candidate(RSS, "link", ContentKind.URI),
        Candidate(RSS10, "link", ContentKind.URI),
        Candidate(RSS090, "link", ContentKind.URI),
        Candidate(ATOM10, "link", ContentKind.URI, Source.LINK),
        Candidate(ATOM03, "link", ContentKind.URI, Source.LINK),
        Candidate(RSS, "guid", ContentKind.URI, Source.PERMALINK),
    ),
    "id": (
        Candidate(ATOM10, "id"),
        Candidate(ATOM03, "id"),
        Candidate(RSS, "guid"),
        Candidate(DC, "identifier"),
        Candidate(RDF, "about", source=Source.SCOPE_ATTRIBUTE),
    ),
    "published": (
        Candidate(RSS, "pubDate"),
        Candidate(DC, "date"),
        Candidate(ATOM10, "published"),
        Candidate(ATOM03, "issued"),
        Candidate(DCTERMS, "issued"),
        Candidate(DCTERMS, "created"),
    ),
    "updated": (
        Candidate(ATOM10, "updated"),
        Candidate(ATOM03, "modified"),
        Candidate(DCTERMS, "modified"),
    ),
    "comments": (Candidate(RSS, "comments", ContentKind.URI),),
}

# An item field that resolves to nothing borrows the named sibling field.
ITEM_FIELD_FALLBACKS: dict[str, str] = {
    "content": "description",
    "description": "content",
}

FEED_AUTHORS: tuple[Candidate, ...] = (
    Candidate(ATOM, "author", source=Source.PERSON),
    Candidate(RSS, "managingEditor", source=Source.ADDRESS),
    Candidate(DC, "creator"),
    Candidate(DC, "publisher"),
)

ITEM_AUTHORS: tuple[Candidate, ...] = (
    Candidate(ATOM, "author", source=Source.PERSON),
    Candidate(RSS, "author", source=Source.ADDRESS),
    Candidate(DC, "creator"),
)

CATEGORIES: tuple[Candidate, ...] = (
    Candidate(RSS, "category", attributes=("domain",)),
    Candidate(ATOM, "category", source=Source.TERM_ATTRIBUTES),
    Candidate(DC, "subject"),
)

ENCLOSURES: tuple[Candidate, ...] = (
    Candidate(
        RSS,
        "enclosure",
        ContentKind.URI,
        Source.ENCLOSURE,
        attributes=("url", "type", "length"),
    ),
    Candidate(
        ATOM,
        "link",
        ContentKind.URI,
        Source.ENCLOSURE_LINK,
        attributes=("href", "type", "length"),
    ),
    Candidate(
        MEDIA,
        "content",
        ContentKind.URI,
        Source.ENCLOSURE,
        scope="media",
        attributes=("url", "type", "fileSize"),
    ),
)

# Root detection data.
ATOM_VERSIONS: dict[str, tuple[int, int]] = {
    ATOM10_NS: (1, 0),
    "https://www.w3.org/2005/Atom": (1, 0),
    ATOM03_NS: (0, 3),
}
RDF_VERSIONS: dict[str, tuple[int, int]] = {
    RSS10_NS: (1, 0),
    RSS090_NS: (0, 90),
}
DEFAULT_RSS_VERSION = (2, 0)
DEFAULT_RDF_VERSION = (1, 0)

_NATIVE_NAMESPACES: dict[tuple[str, int, int], frozenset] = {
    ("atom", 1, 0): ATOM10,
    ("atom", 0, 3): ATOM03,
    ("rdf", 1, 0): RSS10,
    ("rdf", 0, 90): RSS090,
}


def native_namespaces(vocabulary: RootVocabulary) -> frozenset:
    """Namespace class whose elements are native to ``vocabulary``."""
    if vocabulary.family == "rss":
        return RSS
    return _NATIVE_NAMESPACES.get(tuple(vocabulary), frozenset())


@lru_cache(maxsize=256)
def ordered_candidates(
    candidates: tuple[Candidate, ...], vocabulary: RootVocabulary
) -> tuple[Candidate, ...]:
    """Promote native candidates ahead of foreign ones, keeping table order otherwise."""
    native = native_namespaces(vocabulary)
    promoted = tuple(c for c in candidates if c.namespaces & native)
    return promoted + tuple(c for c in candidates if not c.namespaces & native)


def image_dimension_default(vocabulary: RootVocabulary, field: str) -> Optional[int]:
    return IMAGE_DIMENSION_DEFAULTS.get(vocabulary.family, {}).get(field)


def parse_rss_version(value: Optional[str]) -> tuple[int, int]:
    """Turn a ``version`` attribute such as "0.91" or "2.0" into (major, minor)."""
    if not value:
        return DEFAULT_RSS_VERSION
    parts = value.strip().split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return DEFAULT_RSS_VERSION
    return major, minor
