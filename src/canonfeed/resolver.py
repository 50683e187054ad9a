"""Field resolution: element tree + vocabulary tables -> canonical values.

Each canonical field is looked up by walking its candidate table (native
candidates first) and taking the first candidate whose sanitized value is
non-empty. Nothing here mutates the tree, so resolution is a pure function
of the parsed document.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Callable,
    Iterable,
    Iterator,
    NamedTuple,
    Optional,
)

from .document import ElementNode, ParsedDocument
from .model import Author, Category, Enclosure, Image, Item, ResolvedFeed
from .registry import (
    ALTERNATE_RELS,
    CATEGORIES,
    ENCLOSURE_RELS,
    ENCLOSURES,
    FEED_AUTHORS,
    FEED_FIELDS,
    IMAGE_FIELDS,
    ITEM_AUTHORS,
    ITEM_FIELD_FALLBACKS,
    ITEM_FIELDS,
    MEDIA,
    XHTML_NS,
    Candidate,
    RootVocabulary,
    Source,
    image_dimension_default,
    native_namespaces,
    ordered_candidates,
)
from .sanitizer import ContentKind

if TYPE_CHECKING:
    from .main import ContentSanitizer

Scopes = dict[str, tuple[ElementNode, ...]]

_RE_ADDRESS_PARENS = re.compile(r"^([^\s()<>]+@[^\s()<>]+)\s*\((.*)\)$", re.DOTALL)
_RE_ADDRESS_ANGLE = re.compile(r"^(.*?)\s*<([^<>\s]+@[^<>\s]+)>$", re.DOTALL)

_HTML_TYPES = frozenset({"html", "text/html"})
_XHTML_TYPES = frozenset({"xhtml", "application/xhtml+xml"})


class ResolutionContext(NamedTuple):
    vocabulary: RootVocabulary
    sanitizer: ContentSanitizer
    title_sanitizer: ContentSanitizer
    parse_date: Callable[[str], Optional[str]]


class RawValue(NamedTuple):
    text: str
    base: Optional[str]
    kind: ContentKind


def _text_of(node: ElementNode, kind: ContentKind) -> str:
    if not node.children:
        return node.text
    if kind is ContentKind.HTML:
        # Unescaped (X)HTML embedded straight into the feed.
        return node.inner_markup()
    return "".join(node.itertext())


def _xhtml_markup(node: ElementNode) -> str:
    """Inner markup of an xhtml text construct, minus its wrapping div."""
    for child in node.children:
        if child.local == "div" and child.namespace in (XHTML_NS, ""):
            return child.inner_markup()
    return node.inner_markup()


def _text_construct(node: ElementNode) -> RawValue:
    content_type = (node.get("type") or "").strip().lower()
    mode = (node.get("mode") or "").strip().lower()

    if content_type in _XHTML_TYPES:
        return RawValue(_xhtml_markup(node), node.base, ContentKind.HTML)

    # Atom 0.3 content modes.
    if mode == "base64":
        try:
            decoded = base64.b64decode(node.text.strip()).decode("utf-8", "replace")
        except (binascii.Error, ValueError):
            decoded = ""
        kind = ContentKind.HTML if "html" in content_type else ContentKind.PLAIN
        return RawValue(decoded, node.base, kind)
    if mode == "xml":
        return RawValue(node.inner_markup(), node.base, ContentKind.HTML)

    if content_type in _HTML_TYPES or mode == "escaped":
        return RawValue(_text_of(node, ContentKind.HTML), node.base, ContentKind.HTML)
    return RawValue(_text_of(node, ContentKind.PLAIN), node.base, ContentKind.PLAIN)


def _rel(node: ElementNode) -> Optional[str]:
    rel = node.get("rel")
    return rel.strip() if rel is not None else None


def _is_permalink(node: ElementNode) -> bool:
    return (node.get("isPermaLink") or "").strip().lower() != "false"


def _scope_attribute(scope: ElementNode, candidate: Candidate) -> Optional[str]:
    for namespace in candidate.namespaces:
        value = scope.get(candidate.local, namespace)
        if value is not None:
            return value
    return None


def iter_raw_values(candidate: Candidate, scopes: Scopes) -> Iterator[RawValue]:
    """Raw (unsanitized) values ``candidate`` yields across its scope nodes."""
    for scope in scopes.get(candidate.scope, ()):
        source = candidate.source
        if source is Source.SCOPE_ATTRIBUTE:
            value = _scope_attribute(scope, candidate)
            if value is not None:
                yield RawValue(value, scope.base, candidate.kind)
            continue
        if source is Source.INHERITED_LANG:
            if scope.lang:
                yield RawValue(scope.lang, scope.base, candidate.kind)
            continue

        for node in scope.iter_children(candidate.namespaces, candidate.local):
            if source is Source.LINK:
                href = node.get("href")
                if href is not None and _rel(node) in ALTERNATE_RELS:
                    yield RawValue(href, node.base, candidate.kind)
            elif source is Source.PERMALINK:
                if _is_permalink(node):
                    yield RawValue(node.text, node.base, candidate.kind)
            elif candidate.kind is ContentKind.TEXT_CONSTRUCT:
                yield _text_construct(node)
            else:
                yield RawValue(
                    _text_of(node, candidate.kind), node.base, candidate.kind
                )


def resolve_text(
    candidates: tuple[Candidate, ...],
    scopes: Scopes,
    ctx: ResolutionContext,
    sanitizer: Optional[ContentSanitizer] = None,
) -> Optional[str]:
    """First non-empty sanitized value; empty candidates fall through."""
    sanitizer = sanitizer or ctx.sanitizer
    for candidate in ordered_candidates(candidates, ctx.vocabulary):
        for raw in iter_raw_values(candidate, scopes):
            value = sanitizer.sanitize(raw.text, raw.base, raw.kind)
            if value:
                return value
    return None


def resolve_date(
    candidates: tuple[Candidate, ...], scopes: Scopes, ctx: ResolutionContext
) -> Optional[str]:
    for candidate in ordered_candidates(candidates, ctx.vocabulary):
        for raw in iter_raw_values(candidate, scopes):
            text = raw.text.strip()
            if not text:
                continue
            value = ctx.parse_date(text)
            # The model stores ISO strings so that dumps/loads round-trip.
            if isinstance(value, datetime):
                return value.isoformat()
            if value is not None:
                return str(value)
    return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def resolve_int(
    candidates: tuple[Candidate, ...], scopes: Scopes, ctx: ResolutionContext
) -> Optional[int]:
    """First value that parses as an integer."""
    for candidate in ordered_candidates(candidates, ctx.vocabulary):
        for raw in iter_raw_values(candidate, scopes):
            value = _to_int(raw.text)
            if value is not None:
                return value
    return None


def _dedupe(values: Iterable, key: Callable = lambda value: value) -> tuple:
    seen = set()
    result = []
    for value in values:
        marker = key(value)
        if marker in seen:
            continue
        seen.add(marker)
        result.append(value)
    return tuple(result)


def _plain(ctx: ResolutionContext, value: Optional[str]) -> Optional[str]:
    return ctx.sanitizer.sanitize(value, None, ContentKind.PLAIN) or None


def _uri(
    ctx: ResolutionContext, value: Optional[str], base: Optional[str]
) -> Optional[str]:
    return ctx.sanitizer.sanitize(value, base, ContentKind.URI) or None


def _child_text(node: ElementNode, local: str) -> Optional[str]:
    child = node.find(frozenset({node.namespace}), local)
    return child.text if child is not None else None


def _person(node: ElementNode, ctx: ResolutionContext) -> Author:
    own = frozenset({node.namespace})
    # Atom 0.3 calls the person URI "url".
    uri_node = node.find(own, "uri") or node.find(own, "url")
    uri = _uri(ctx, uri_node.text, uri_node.base) if uri_node is not None else None
    return Author(
        name=_plain(ctx, _child_text(node, "name")),
        email=_plain(ctx, _child_text(node, "email")),
        uri=uri,
    )


def parse_address(value: str) -> tuple[Optional[str], Optional[str]]:
    """Split an RSS mailbox such as "joe@example.com (Joe)" into (name, email)."""
    value = value.strip()
    match = _RE_ADDRESS_PARENS.match(value)
    if match:
        return match.group(2).strip() or None, match.group(1)
    match = _RE_ADDRESS_ANGLE.match(value)
    if match:
        return match.group(1).strip().strip('"') or None, match.group(2)
    if "@" in value and " " not in value:
        return None, value
    return value or None, None


def resolve_authors(
    candidates: tuple[Candidate, ...], scope: ElementNode, ctx: ResolutionContext
) -> tuple[Author, ...]:
    authors = []
    for candidate in ordered_candidates(candidates, ctx.vocabulary):
        for node in scope.iter_children(candidate.namespaces, candidate.local):
            if candidate.source is Source.PERSON:
                author = _person(node, ctx)
            elif candidate.source is Source.ADDRESS:
                name, email = parse_address(node.text)
                author = Author(name=_plain(ctx, name), email=_plain(ctx, email))
            else:
                author = Author(name=_plain(ctx, node.text))
            if author.name or author.email or author.uri:
                authors.append(author)
    return _dedupe(authors)


def resolve_categories(
    scope: ElementNode, ctx: ResolutionContext
) -> tuple[Category, ...]:
    categories = []
    for candidate in ordered_candidates(CATEGORIES, ctx.vocabulary):
        for node in scope.iter_children(candidate.namespaces, candidate.local):
            if candidate.source is Source.TERM_ATTRIBUTES:
                term = node.get("term")
                scheme = node.get("scheme")
                label = node.get("label")
            else:
                term = node.text
                scheme = (
                    node.get(candidate.attributes[0]) if candidate.attributes else None
                )
                label = None
            term = _plain(ctx, term)
            if not term:
                continue
            categories.append(
                Category(
                    term=term, scheme=_plain(ctx, scheme), label=_plain(ctx, label)
                )
            )
    return _dedupe(categories, key=lambda c: (c.term, c.scheme))


def resolve_enclosures(scopes: Scopes, ctx: ResolutionContext) -> tuple[Enclosure, ...]:
    enclosures = []
    for candidate in ordered_candidates(ENCLOSURES, ctx.vocabulary):
        url_attr, type_attr, length_attr = candidate.attributes
        for scope in scopes.get(candidate.scope, ()):
            for node in scope.iter_children(candidate.namespaces, candidate.local):
                if (
                    candidate.source is Source.ENCLOSURE_LINK
                    and _rel(node) not in ENCLOSURE_RELS
                ):
                    continue
                url = _uri(ctx, node.get(url_attr), node.base)
                if not url:
                    continue
                enclosures.append(
                    Enclosure(
                        url=url,
                        type=_plain(ctx, node.get(type_attr)),
                        length=_to_int(node.get(length_attr)),
                    )
                )
    return _dedupe(enclosures, key=lambda e: e.url)


def _has_native_image_url(
    images: tuple[ElementNode, ...], vocabulary: RootVocabulary
) -> bool:
    native = native_namespaces(vocabulary)
    for image in images:
        url = image.find(native, "url")
        if url is not None and url.text.strip():
            return True
    return False


def resolve_image(scopes: Scopes, ctx: ResolutionContext) -> Image:
    dimensions = {}
    for field in ("width", "height"):
        value = resolve_int(IMAGE_FIELDS[field], scopes, ctx)
        if value is None and _has_native_image_url(scopes["image"], ctx.vocabulary):
            value = image_dimension_default(ctx.vocabulary, field)
        dimensions[field] = value
    return Image(
        url=resolve_text(IMAGE_FIELDS["url"], scopes, ctx),
        title=resolve_text(IMAGE_FIELDS["title"], scopes, ctx, ctx.title_sanitizer),
        link=resolve_text(IMAGE_FIELDS["link"], scopes, ctx),
        **dimensions,
    )


def _item_text(field: str, scopes: Scopes, ctx: ResolutionContext) -> Optional[str]:
    value = resolve_text(ITEM_FIELDS[field], scopes, ctx)
    if value is None and field in ITEM_FIELD_FALLBACKS:
        value = resolve_text(ITEM_FIELDS[ITEM_FIELD_FALLBACKS[field]], scopes, ctx)
    return value


def _stable_id(*parts: Optional[str]) -> str:
    digest = hashlib.sha1()
    for part in parts:
        digest.update((part or "").encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


def resolve_item(
    node: ElementNode,
    ctx: ResolutionContext,
    include_content: bool = True,
    include_categories: bool = True,
    include_enclosures: bool = True,
) -> Item:
    scopes = {
        "self": (node,),
        "media": (node, *node.iter_children(MEDIA, "group")),
    }
    title = resolve_text(ITEM_FIELDS["title"], scopes, ctx, ctx.title_sanitizer)
    link = resolve_text(ITEM_FIELDS["link"], scopes, ctx)
    description = _item_text("description", scopes, ctx)
    content = _item_text("content", scopes, ctx) if include_content else None
    updated = resolve_date(ITEM_FIELDS["updated"], scopes, ctx)
    published = resolve_date(ITEM_FIELDS["published"], scopes, ctx) or updated
    item_id = (
        resolve_text(ITEM_FIELDS["id"], scopes, ctx)
        or link
        or _stable_id(title, content or description)
    )

    return Item(
        title=title,
        link=link,
        content=content,
        description=description,
        published=published,
        updated=updated,
        authors=resolve_authors(ITEM_AUTHORS, node, ctx),
        categories=resolve_categories(node, ctx) if include_categories else (),
        enclosures=resolve_enclosures(scopes, ctx) if include_enclosures else (),
        id=item_id,
        comments=resolve_text(ITEM_FIELDS["comments"], scopes, ctx),
    )


def resolve_feed(
    document: ParsedDocument,
    ctx: ResolutionContext,
    include_content: bool = True,
    include_categories: bool = True,
    include_enclosures: bool = True,
) -> ResolvedFeed:
    """Resolve every canonical field of ``document`` eagerly."""
    scopes = {"self": (document.channel,), "image": document.images}
    items = tuple(
        resolve_item(
            item,
            ctx,
            include_content=include_content,
            include_categories=include_categories,
            include_enclosures=include_enclosures,
        )
        for item in document.items
    )
    return ResolvedFeed(
        vocabulary=document.vocabulary,
        title=resolve_text(FEED_FIELDS["title"], scopes, ctx, ctx.title_sanitizer),
        link=resolve_text(FEED_FIELDS["link"], scopes, ctx),
        description=resolve_text(FEED_FIELDS["description"], scopes, ctx),
        language=resolve_text(FEED_FIELDS["language"], scopes, ctx),
        copyright=resolve_text(FEED_FIELDS["copyright"], scopes, ctx),
        image=resolve_image(scopes, ctx),
        items=items,
        id=resolve_text(FEED_FIELDS["id"], scopes, ctx),
        updated=resolve_date(FEED_FIELDS["updated"], scopes, ctx),
        authors=resolve_authors(FEED_AUTHORS, document.channel, ctx),
        categories=(
            resolve_categories(document.channel, ctx) if include_categories else ()
        ),
    )
