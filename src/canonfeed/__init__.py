from .cache import FeedCache, MemoryCache, cached_parse
from .dates import parse_date
from .document import ElementNode, ParsedDocument, parse_document
from .errors import (
    FeedParseError,
    MalformedMarkupError,
    UnexpectedEofError,
    UnsupportedRootError,
)
from .main import FeedEngine, parse
from .model import (
    Author,
    Category,
    Enclosure,
    Image,
    Item,
    ResolvedFeed,
    dumps,
    loads,
)
from .registry import RootVocabulary
from .sanitizer import (
    DEFAULT_CONFIG,
    STRICT_CONFIG,
    ContentKind,
    Sanitizer,
    SanitizerConfig,
)

__all__ = [
    "Author",
    "Category",
    "ContentKind",
    "DEFAULT_CONFIG",
    "ElementNode",
    "Enclosure",
    "FeedCache",
    "FeedEngine",
    "FeedParseError",
    "Image",
    "Item",
    "MalformedMarkupError",
    "MemoryCache",
    "ParsedDocument",
    "ResolvedFeed",
    "RootVocabulary",
    "STRICT_CONFIG",
    "Sanitizer",
    "SanitizerConfig",
    "UnexpectedEofError",
    "UnsupportedRootError",
    "cached_parse",
    "dumps",
    "loads",
    "parse",
    "parse_date",
    "parse_document",
]
