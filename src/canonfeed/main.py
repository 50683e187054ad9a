from __future__ import annotations

import logging
from typing import Optional, Protocol

from .dates import parse_date as default_parse_date
from .document import ParsedDocument, parse_document
from .model import ResolvedFeed
from .resolver import ResolutionContext, resolve_feed
from .sanitizer import STRICT_CONFIG, ContentKind, Sanitizer

logger = logging.getLogger(__name__)


class DocumentParser(Protocol):
    def __call__(self, text: str, base_uri: Optional[str] = None) -> ParsedDocument: ...


class ContentSanitizer(Protocol):
    def sanitize(
        self,
        raw: Optional[str],
        base_uri: Optional[str] = None,
        kind: ContentKind = ContentKind.PLAIN,
    ) -> str: ...


class DateParser(Protocol):
    def __call__(self, text: str) -> Optional[str]: ...


class FeedEngine:
    """Wires a document parser, a sanitizer pair and a date parser together.

    Any collaborator can be swapped through the constructor; the engine keeps
    no per-parse state, so one instance can serve many threads.
    """

    def __init__(
        self,
        document_parser: Optional[DocumentParser] = None,
        sanitizer: Optional[ContentSanitizer] = None,
        title_sanitizer: Optional[ContentSanitizer] = None,
        parse_date: Optional[DateParser] = None,
    ) -> None:
        self.document_parser = document_parser or parse_document
        self.sanitizer = sanitizer or Sanitizer()
        self.title_sanitizer = title_sanitizer or Sanitizer(STRICT_CONFIG)
        self.parse_date = parse_date or default_parse_date

    def parse(
        self,
        text: str,
        *,
        base_uri: Optional[str] = None,
        include_content: bool = True,
        include_categories: bool = True,
        include_enclosures: bool = True,
    ) -> ResolvedFeed:
        """Parse decoded feed text into a :class:`ResolvedFeed`.

        Args:
            text: Decoded XML document
            base_uri: URL the document was retrieved from, the outermost base URI
            include_content: Resolve per-item content bodies
            include_categories: Resolve feed and item categories
            include_enclosures: Resolve item enclosures and media content

        Returns:
            ResolvedFeed with every field sanitized

        Raises:
            TypeError: If ``text`` is not a ``str``
            MalformedMarkupError: If the markup cannot be repaired
            UnexpectedEofError: If the document is empty or truncated
            UnsupportedRootError: If the document is not RSS, RDF or Atom
        """
        document = self.document_parser(text, base_uri)
        ctx = ResolutionContext(
            vocabulary=document.vocabulary,
            sanitizer=self.sanitizer,
            title_sanitizer=self.title_sanitizer,
            parse_date=self.parse_date,
        )
        feed = resolve_feed(
            document,
            ctx,
            include_content=include_content,
            include_categories=include_categories,
            include_enclosures=include_enclosures,
        )
        logger.debug("Resolved %s feed %r", feed.vocabulary, feed.title)
        return feed


_default_engine: Optional[FeedEngine] = None


def default_engine() -> FeedEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = FeedEngine()
    return _default_engine


def parse(
    text: str,
    *,
    base_uri: Optional[str] = None,
    include_content: bool = True,
    include_categories: bool = True,
    include_enclosures: bool = True,
) -> ResolvedFeed:
    """Parse a feed with the default engine. See :meth:`FeedEngine.parse`."""
    return default_engine().parse(
        text,
        base_uri=base_uri,
        include_content=include_content,
        include_categories=include_categories,
        include_enclosures=include_enclosures,
    )
