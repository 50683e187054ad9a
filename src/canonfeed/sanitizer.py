"""Allow-list sanitizer for untrusted feed text."""

from __future__ import annotations

import enum
import html as _html_mod
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from lxml import etree
from lxml import html as lxml_html

logger = logging.getLogger(__name__)


class ContentKind(enum.Enum):
    PLAIN = "text/plain"
    HTML = "text/html"
    URI = "uri"
    # Atom text construct: the element's type/mode attribute picks PLAIN or HTML.
    TEXT_CONSTRUCT = "atom-text-construct"


# fmt: off
_DEFAULT_ALLOWED_TAGS = frozenset(
    {
        "a", "abbr", "acronym", "address", "area", "article", "aside", "audio",
        "b", "bdi", "bdo", "big", "blockquote", "br", "caption", "center",
        "cite", "code", "col", "colgroup", "dd", "del", "details", "dfn", "dir",
        "div", "dl", "dt", "em", "figcaption", "figure", "font", "footer",
        "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "i", "img", "ins",
        "kbd", "li", "main", "map", "mark", "nav", "ol", "p", "picture", "pre",
        "q", "rp", "rt", "ruby", "s", "samp", "section", "small", "source",
        "span", "strike", "strong", "sub", "summary", "sup", "table", "tbody",
        "td", "tfoot", "th", "thead", "time", "tr", "track", "tt", "u", "ul",
        "var", "video", "wbr",
    }
)

_DEFAULT_ALLOWED_ATTRIBUTES = frozenset(
    {
        "abbr", "align", "alt", "axis", "bgcolor", "border", "cellpadding",
        "cellspacing", "char", "charoff", "cite", "class", "clear", "color",
        "cols", "colspan", "compact", "controls", "coords", "datetime", "dir",
        "face", "headers", "height", "href", "hreflang", "hspace", "id",
        "kind", "label", "lang", "loop", "longdesc", "name", "noshade",
        "nowrap", "poster", "preload", "rel", "rev", "rows", "rowspan",
        "rules", "scope", "shape", "size", "span", "src", "srclang", "start",
        "summary", "title", "type", "usemap", "valign", "value", "vspace",
        "width",
    }
)

# Elements deleted together with everything inside them.
_DEFAULT_REMOVED_TAGS = frozenset(
    {
        "applet", "base", "embed", "frame", "frameset", "head", "iframe",
        "link", "math", "meta", "noembed", "noframes", "noscript", "object",
        "param", "script", "style", "svg", "template", "title", "xml",
    }
)

_DEFAULT_URI_ATTRIBUTES = frozenset(
    {"action", "background", "cite", "codebase", "data", "href", "longdesc",
     "poster", "src", "usemap"}
)

_STRICT_ALLOWED_TAGS = frozenset(
    {
        "a", "abbr", "acronym", "b", "bdi", "bdo", "big", "br", "cite", "code",
        "del", "dfn", "em", "i", "ins", "kbd", "mark", "q", "s", "samp",
        "small", "span", "strike", "strong", "sub", "sup", "time", "tt", "u",
        "var", "wbr",
    }
)

# fmt: on

_STRICT_ALLOWED_ATTRIBUTES = frozenset(
    {"cite", "datetime", "dir", "href", "lang", "title"}
)

# Browsers ignore these inside a URI, so "java\tscript:" must still be caught.
_RE_URI_IGNORED = re.compile(r"[\x00-\x20\x7f]+")
_RE_URI_SCHEME = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")

_HTML_PARSER = lxml_html.HTMLParser(
    remove_comments=True,
    remove_pis=True,
    no_network=True,
    collect_ids=False,
)


@dataclass(frozen=True)
class SanitizerConfig:
    """Immutable allow-lists; several configurations can coexist."""

    allowed_tags: frozenset = _DEFAULT_ALLOWED_TAGS
    allowed_attributes: frozenset = _DEFAULT_ALLOWED_ATTRIBUTES
    removed_tags: frozenset = _DEFAULT_REMOVED_TAGS
    uri_attributes: frozenset = _DEFAULT_URI_ATTRIBUTES
    allowed_schemes: frozenset = frozenset({"http", "https", "mailto"})


DEFAULT_CONFIG = SanitizerConfig()
STRICT_CONFIG = SanitizerConfig(
    allowed_tags=_STRICT_ALLOWED_TAGS,
    allowed_attributes=_STRICT_ALLOWED_ATTRIBUTES,
)


def escape_text(text: str) -> str:
    """Canonical HTML-safe form: only &, < and > are escaped."""
    return _html_mod.escape(text, quote=False)


class Sanitizer:
    """Neutralizes unsafe markup; never raises on bad input."""

    def __init__(self, config: SanitizerConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def sanitize(
        self,
        raw: Optional[str],
        base_uri: Optional[str] = None,
        kind: ContentKind = ContentKind.PLAIN,
    ) -> str:
        if not raw:
            return ""
        if kind is ContentKind.HTML:
            return self._sanitize_html(raw, base_uri)
        if kind is ContentKind.URI:
            return escape_text(self.safe_uri(raw, base_uri) or "")
        return escape_text(raw.strip())

    def safe_uri(self, value: str, base_uri: Optional[str] = None) -> Optional[str]:
        """Resolve ``value`` against ``base_uri``; None when the scheme is not allowed."""
        value = value.strip()
        if not value:
            return None
        if self._scheme_rejected(value):
            return None
        if not base_uri or _RE_URI_SCHEME.match(_RE_URI_IGNORED.sub("", value)):
            return value
        try:
            resolved = urljoin(base_uri, value)
        except ValueError:
            return value
        if self._scheme_rejected(resolved):
            return None
        return resolved

    def _scheme_rejected(self, uri: str) -> bool:
        match = _RE_URI_SCHEME.match(_RE_URI_IGNORED.sub("", uri))
        return (
            match is not None
            and match.group(1).lower() not in self.config.allowed_schemes
        )

    def _sanitize_html(self, raw: str, base_uri: Optional[str]) -> str:
        # No closing tags: raw-text elements like <plaintext> or an unclosed
        # <textarea> would swallow them as literal text. libxml2 closes at EOF.
        try:
            document = lxml_html.document_fromstring(
                f"<html><body>{raw}", parser=_HTML_PARSER
            )
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
            logger.debug("Markup could not be parsed, escaping it instead: %s", e)
            return escape_text(raw.strip())

        body = document.find("body")
        if body is None:
            return ""
        self._clean_children(body, base_uri)
        return _serialize_children(body).strip()

    def _clean_children(self, element: lxml_html.HtmlElement, base_uri) -> None:
        config = self.config
        for child in list(element):
            tag = child.tag
            if not isinstance(tag, str):
                child.drop_tree()
                continue
            tag = tag.lower()
            if tag in config.removed_tags:
                child.drop_tree()
                continue

            self._clean_children(child, base_uri)
            if tag not in config.allowed_tags:
                child.drop_tag()
                continue

            for name in list(child.attrib):
                key = name.lower()
                if key not in config.allowed_attributes:
                    del child.attrib[name]
                elif key in config.uri_attributes:
                    uri = self.safe_uri(child.attrib[name], base_uri)
                    if uri is None:
                        del child.attrib[name]
                    else:
                        child.attrib[name] = uri


def _serialize_children(element: lxml_html.HtmlElement) -> str:
    parts = [escape_text(element.text or "")]
    for child in element:
        parts.append(
            lxml_html.tostring(child, encoding="unicode", method="html", with_tail=True)
        )
    return "".join(parts)
