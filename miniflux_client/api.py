"""Typed client for the Miniflux REST API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlencode

import requests
from requests.exceptions import InvalidJSONError

from .config import ConnectionConfig
from .errors import ApiError
from .models import (
    ENTRY_STATUSES,
    STATUS_READ,
    ApiErrorRecord,
    Category,
    DiscoveredFeed,
    DiscoveryRequest,
    Entry,
    EntryList,
    FeedCreationRequest,
    FeedCreationResult,
    FeedIcon,
    OriginArticle,
)

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-Auth-Token"
NO_CONTENT = 204
SUPPORTED_METHODS = ("GET", "POST", "PUT")


@dataclass(frozen=True)
class Payload:
    """2xx response; ``body`` is the decoded JSON unless decoding was skipped."""

    status_code: int
    body: Any = None


@dataclass(frozen=True)
class NoContent:
    status_code: int = NO_CONTENT


@dataclass(frozen=True)
class Failure:
    """Non-2xx response carrying the server's error record."""

    status_code: int
    error: ApiErrorRecord


ApiResult = Union[Payload, NoContent, Failure]


def normalize_base_url(base_url: str) -> str:
    """Strip exactly one trailing separator."""
    if base_url.endswith("/"):
        return base_url[:-1]
    return base_url


def build_url(
    base_url: str, endpoint: str, params: Optional[Dict[str, Any]] = None
) -> str:
    url = normalize_base_url(base_url) + endpoint
    if params:
        url += "?" + urlencode(params)
    return url


def build_headers(api_key: str, has_body: bool = False) -> Dict[str, str]:
    headers = {AUTH_HEADER: api_key}
    if has_body:
        headers["Content-Type"] = "application/json"
    return headers


def classify_response(
    response: requests.Response, decode_body: bool = True
) -> ApiResult:
    """Sort a response into no-content, failure or payload, in that order.

    Error and payload bodies are decoded with ``response.json()``; a body
    that is not JSON raises ``requests.JSONDecodeError`` to the caller, and
    an error body that is not a JSON object raises ``InvalidJSONError``.
    """
    status = response.status_code
    if status == NO_CONTENT:
        return NoContent(status)
    if not 200 <= status < 300:
        body = response.json()
        if not isinstance(body, dict):
            raise InvalidJSONError(
                f"Unexpected error payload ({status}): {body!r}", response=response
            )
        return Failure(status, ApiErrorRecord.from_dict(body))
    if not decode_body:
        return Payload(status)
    return Payload(status, response.json())


def send_request(
    config: ConnectionConfig,
    method: str,
    endpoint: str,
    params: Optional[Dict[str, Any]] = None,
    payload: Optional[Dict[str, Any]] = None,
    decode_body: bool = True,
) -> ApiResult:
    """Issue a single authenticated request and classify the response."""
    method = method.upper()
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")

    url = build_url(config.base_url, endpoint, params)
    has_body = payload is not None
    headers = build_headers(config.api_key, has_body=has_body)
    data = json.dumps(payload) if has_body else None

    logger.debug("%s %s", method, url)
    response = requests.request(method, url, headers=headers, data=data)
    result = classify_response(response, decode_body=decode_body)
    logger.debug("%s %s -> %d", method, url, result.status_code)
    return result


def unwrap(result: ApiResult) -> Any:
    """Return the decoded body, ``None`` for no content, or raise ``ApiError``."""
    if isinstance(result, Failure):
        logger.warning(
            "Miniflux API error (%d): %s",
            result.status_code,
            result.error.error_message,
        )
        raise ApiError(result.error, result.status_code)
    if isinstance(result, NoContent):
        return None
    return result.body


def _checked_limit(limit: Optional[int]) -> bool:
    """Whether a limit parameter should be sent; 0 means no limit."""
    if limit is not None and limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    return bool(limit)


def entry_url(base_url: str, entry: Entry) -> str:
    """Deep link into the reader UI for ``entry``."""
    segment = "history" if entry.status == STATUS_READ else entry.status
    return f"{normalize_base_url(base_url)}/{segment}/entry/{entry.id}"


class MinifluxClient:
    """Operations against a Miniflux server.

    ``config_loader`` is called once per operation, so every request sees
    the configuration as it is at that moment.
    """

    def __init__(self, config_loader: Callable[[], ConnectionConfig]) -> None:
        self._config_loader = config_loader

    def _fetch(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        config: Optional[ConnectionConfig] = None,
    ) -> Any:
        config = config or self._config_loader()
        return unwrap(send_request(config, "GET", endpoint, params=params))

    def _update(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        result = send_request(
            self._config_loader(), method, endpoint, payload=payload, decode_body=False
        )
        unwrap(result)
        return isinstance(result, NoContent)

    def _entries(self, config: ConnectionConfig, params: Dict[str, Any]) -> EntryList:
        entries = EntryList.from_dict(self._fetch("/v1/entries", params, config))
        logger.info("Received %d of %d entries", len(entries.entries), entries.total)
        return entries

    def search(self, query: str, limit: Optional[int] = None) -> EntryList:
        config = self._config_loader()
        if limit is None:
            limit = config.search_limit
        params: Dict[str, Any] = {"search": query}
        if _checked_limit(limit):
            params["limit"] = limit
        return self._entries(config, params)

    def get_recent_entries(self, limit: Optional[int] = None) -> EntryList:
        config = self._config_loader()
        if limit is None:
            limit = config.feed_limit
        params: Dict[str, Any] = {"status": "unread", "direction": "desc"}
        if _checked_limit(limit):
            params["limit"] = limit
        return self._entries(config, params)

    def get_entry_url(self, entry: Entry) -> str:
        return entry_url(self._config_loader().base_url, entry)

    def entry_linker(self) -> Callable[[Entry], str]:
        """Return a link builder bound to the base URL as configured right now."""
        base_url = self._config_loader().base_url
        return lambda entry: entry_url(base_url, entry)

    def get_origin_article(self, entry: Entry) -> OriginArticle:
        return OriginArticle.from_dict(
            self._fetch(f"/v1/entries/{entry.id}/fetch-content")
        )

    def get_feed_icon(self, entry: Entry) -> FeedIcon:
        if entry.feed_id is None:
            raise ValueError(f"Entry {entry.id} has no feed_id")
        return self.get_icon_for_feed(entry.feed_id)

    def get_icon_for_feed(self, feed_id: int) -> FeedIcon:
        body = self._fetch(f"/v1/feeds/{feed_id}/icon")
        if body is None:
            raise RuntimeError(f"Miniflux returned no icon for feed {feed_id}")
        return FeedIcon.from_dict(body)

    def get_categories(self) -> List[Category]:
        body = self._fetch("/v1/categories") or []
        categories = [Category.from_dict(item) for item in body]
        logger.info("Received %d categories", len(categories))
        return categories

    def toggle_bookmark(self, entry: Entry) -> bool:
        """Return ``True`` only when the server answers 204.

        Any other 2xx status returns ``False``; it does not mean the call
        failed.
        """
        return self._update("PUT", f"/v1/entries/{entry.id}/bookmark")

    def update_entry_status(self, entry_id: int, status: str) -> bool:
        if status not in ENTRY_STATUSES:
            raise ValueError(
                f"Unsupported entry status {status!r}; expected one of "
                + ", ".join(ENTRY_STATUSES)
            )
        return self._update(
            "PUT", "/v1/entries", {"entry_ids": [entry_id], "status": status}
        )

    def discover_feeds(self, request: DiscoveryRequest) -> List[DiscoveredFeed]:
        result = send_request(
            self._config_loader(), "POST", "/v1/discover", payload=request.to_payload()
        )
        feeds = [DiscoveredFeed.from_dict(item) for item in unwrap(result) or []]
        logger.info("Discovered %d feeds at %s", len(feeds), request.url)
        return feeds

    def create_feed(self, request: FeedCreationRequest) -> FeedCreationResult:
        result = send_request(
            self._config_loader(), "POST", "/v1/feeds", payload=request.to_payload()
        )
        body = unwrap(result)
        if body is None:
            raise RuntimeError(
                f"Miniflux returned no content when creating {request.feed_url}"
            )
        created = FeedCreationResult.from_dict(body)
        logger.info("Created feed %d for %s", created.feed_id, request.feed_url)
        return created
