"""Shared data models for miniflux_client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

STATUS_READ = "read"
STATUS_UNREAD = "unread"
STATUS_REMOVED = "removed"

ENTRY_STATUSES = (STATUS_READ, STATUS_UNREAD, STATUS_REMOVED)


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


@dataclass
class Category:
    """User-defined grouping of feeds."""

    id: int
    title: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(id=int(data["id"]), title=data.get("title") or "", raw=dict(data))


@dataclass
class Feed:
    """Subscribed source as embedded in entry records."""

    id: int
    title: str
    site_url: Optional[str] = None
    feed_url: Optional[str] = None
    category: Optional[Category] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feed":
        category = data.get("category")
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            site_url=data.get("site_url"),
            feed_url=data.get("feed_url"),
            category=Category.from_dict(category) if category else None,
            raw=dict(data),
        )


@dataclass
class Entry:
    """Single feed item; fields not listed here stay in ``raw``."""

    id: int
    status: str
    feed_id: Optional[int] = None
    title: str = ""
    url: Optional[str] = None
    starred: bool = False
    published_at: Optional[str] = None
    feed: Optional[Feed] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        feed = data.get("feed")
        return cls(
            id=int(data["id"]),
            status=data.get("status") or STATUS_UNREAD,
            feed_id=_optional_int(data.get("feed_id")),
            title=data.get("title") or "",
            url=data.get("url"),
            starred=bool(data.get("starred", False)),
            published_at=data.get("published_at"),
            feed=Feed.from_dict(feed) if feed else None,
            raw=dict(data),
        )


@dataclass
class EntryList:
    """Entries returned by ``/v1/entries`` along with the server-side total."""

    total: int
    entries: List[Entry]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EntryList":
        data = data or {}
        entries = [Entry.from_dict(item) for item in data.get("entries") or []]
        return cls(total=int(data.get("total", len(entries))), entries=entries)


@dataclass
class OriginArticle:
    """Content the server re-fetched from the entry's source site."""

    content: str

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OriginArticle":
        return cls(content=(data or {}).get("content") or "")


@dataclass
class FeedIcon:
    id: int
    data: str
    mime_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedIcon":
        return cls(
            id=int(data["id"]),
            data=data.get("data") or "",
            mime_type=data.get("mime_type"),
        )


@dataclass
class DiscoveredFeed:
    """Subscribable feed found by probing a URL."""

    url: str
    title: str = ""
    type: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscoveredFeed":
        return cls(
            url=data["url"],
            title=data.get("title") or "",
            type=data.get("type"),
            raw=dict(data),
        )


@dataclass
class FeedCreationResult:
    feed_id: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedCreationResult":
        return cls(feed_id=int(data["feed_id"]))


def _without_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class DiscoveryRequest:
    """Parameters for ``POST /v1/discover``."""

    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    user_agent: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _without_none(
            {
                "url": self.url,
                "username": self.username,
                "password": self.password,
                "user_agent": self.user_agent,
            }
        )


@dataclass
class FeedCreationRequest:
    """Parameters for ``POST /v1/feeds``."""

    feed_url: str
    category_id: int
    username: Optional[str] = None
    password: Optional[str] = None
    crawler: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        return _without_none(
            {
                "feed_url": self.feed_url,
                "category_id": self.category_id,
                "username": self.username,
                "password": self.password,
                "crawler": self.crawler,
            }
        )


@dataclass
class ApiErrorRecord:
    """Error body returned by the server on a non-success status."""

    error_message: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiErrorRecord":
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected error payload: {data!r}")
        return cls(error_message=str(data.get("error_message", "")), raw=dict(data))
