"""Rendering helpers for command-line output."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Callable, Iterable, List

from .models import Category, DiscoveredFeed, Entry, EntryList, OriginArticle
from .templating import get_environment


def _render(template_name: str, **context: Any) -> str:
    template = get_environment().get_template(template_name)
    return template.render(**context).rstrip("\n")


def _strip_raw(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _strip_raw(item) for key, item in value.items() if key != "raw"}
    if isinstance(value, list):
        return [_strip_raw(item) for item in value]
    return value


def _record(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if getattr(value, "raw", None):
            return value.raw
        if isinstance(value, EntryList):
            return {
                "total": value.total,
                "entries": [_record(entry) for entry in value.entries],
            }
        return _strip_raw(dataclasses.asdict(value))
    return value


def to_json(value: Any) -> str:
    """Serialise a model (or list of models) the way the server sent it."""
    if isinstance(value, list):
        data: Any = [_record(item) for item in value]
    else:
        data = _record(value)
    return json.dumps(data, indent=2, ensure_ascii=False)


def render_entries(entries: EntryList, link_for: Callable[[Entry], str]) -> str:
    items = [{"entry": entry, "link": link_for(entry)} for entry in entries.entries]
    return _render("entries.txt.j2", entries=items, total=entries.total)


def render_categories(categories: Iterable[Category]) -> str:
    return _render("categories.txt.j2", categories=list(categories))


def render_discovered_feeds(feeds: List[DiscoveredFeed]) -> str:
    return _render("feeds.txt.j2", feeds=feeds)


def render_article(article: OriginArticle, plain: bool = False) -> str:
    return _render("article.txt.j2", content=article.content, plain=plain)
