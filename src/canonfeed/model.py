"""Immutable feed model returned by the engine.

Every string field has already been sanitized; readers never trigger
resolution or mutate anything.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Optional

try:
    import orjson

    _json_loads = orjson.loads
    _json_dumps = orjson.dumps
except ImportError:
    _json_loads = json.loads

    def _json_dumps(obj: Any) -> bytes:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )


from .registry import RootVocabulary


@dataclass(frozen=True)
class Author:
    name: Optional[str] = None
    email: Optional[str] = None
    uri: Optional[str] = None


@dataclass(frozen=True)
class Category:
    term: str
    scheme: Optional[str] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class Enclosure:
    url: str
    type: Optional[str] = None
    length: Optional[int] = None


@dataclass(frozen=True)
class Image:
    url: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Item:
    title: Optional[str] = None
    link: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    published: Optional[str] = None
    updated: Optional[str] = None
    authors: tuple[Author, ...] = ()
    categories: tuple[Category, ...] = ()
    enclosures: tuple[Enclosure, ...] = ()
    id: Optional[str] = None
    comments: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        values = dict(data)
        values["authors"] = tuple(Author(**a) for a in data.get("authors") or ())
        values["categories"] = tuple(
            Category(**c) for c in data.get("categories") or ()
        )
        values["enclosures"] = tuple(
            Enclosure(**e) for e in data.get("enclosures") or ()
        )
        return cls(**values)


@dataclass(frozen=True)
class ResolvedFeed:
    vocabulary: RootVocabulary
    title: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    copyright: Optional[str] = None
    image: Image = Image()
    items: tuple[Item, ...] = ()
    id: Optional[str] = None
    updated: Optional[str] = None
    authors: tuple[Author, ...] = ()
    categories: tuple[Category, ...] = ()

    @property
    def image_url(self) -> Optional[str]:
        return self.image.url

    @property
    def image_title(self) -> Optional[str]:
        return self.image.title

    @property
    def image_link(self) -> Optional[str]:
        return self.image.link

    @property
    def image_width(self) -> Optional[int]:
        return self.image.width

    @property
    def image_height(self) -> Optional[int]:
        return self.image.height

    def to_dict(self) -> dict[str, Any]:
        return {
            "vocabulary": self.vocabulary._asdict(),
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "language": self.language,
            "copyright": self.copyright,
            "image": asdict(self.image),
            "items": [item.to_dict() for item in self.items],
            "id": self.id,
            "updated": self.updated,
            "authors": [asdict(author) for author in self.authors],
            "categories": [asdict(category) for category in self.categories],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolvedFeed:
        values = dict(data)
        values["vocabulary"] = RootVocabulary(**data["vocabulary"])
        values["image"] = Image(**(data.get("image") or {}))
        values["items"] = tuple(Item.from_dict(i) for i in data.get("items") or ())
        values["authors"] = tuple(Author(**a) for a in data.get("authors") or ())
        values["categories"] = tuple(
            Category(**c) for c in data.get("categories") or ()
        )
        return cls(**values)


def dumps(feed: ResolvedFeed) -> bytes:
    """Serialize ``feed`` to JSON bytes."""
    return _json_dumps(feed.to_dict())


def loads(data: bytes | str) -> ResolvedFeed:
    """Rebuild a feed produced by :func:`dumps` without parsing the document again."""
    return ResolvedFeed.from_dict(_json_loads(data))
