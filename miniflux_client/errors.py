"""Exceptions raised by the Miniflux API client."""

from __future__ import annotations

from typing import Any, Dict

from .models import ApiErrorRecord


class ApiError(Exception):
    """The server answered with a non-success status and an error body.

    Attributes:
        record: The decoded error body, exactly as the server sent it.
        status_code: HTTP status code of the response.
    """

    def __init__(self, record: ApiErrorRecord, status_code: int) -> None:
        super().__init__(record.error_message)
        self.record = record
        self.status_code = status_code

    @property
    def message(self) -> str:
        return self.record.error_message

    @property
    def payload(self) -> Dict[str, Any]:
        return self.record.raw
