from __future__ import annotations


class FeedParseError(ValueError):
    """Base class for the terminal failures of a single parse call."""


class MalformedMarkupError(FeedParseError):
    """The document could not be parsed even after the repair pass."""


class UnexpectedEofError(FeedParseError):
    """The document is empty or ends before its root element is complete."""


class UnsupportedRootError(FeedParseError):
    """The root element is not a registered syndication vocabulary."""
