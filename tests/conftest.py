import json

import pytest
import requests

from miniflux_client import api
from miniflux_client.config import ConnectionConfig


class FakeResponse:
    """Stand-in for requests.Response with just what the client reads."""

    def __init__(self, status_code, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    def json(self):
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as exc:
            raise requests.JSONDecodeError(exc.msg, exc.doc, exc.pos)


class FakeHttp:
    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, status_code, body=None, text=None):
        self.responses.append(FakeResponse(status_code, body=body, text=text))

    def request(self, method, url, headers=None, data=None):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "data": data}
        )
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last(self):
        return self.calls[-1]

    def last_json(self):
        return json.loads(self.last["data"])


@pytest.fixture
def fake_http(monkeypatch):
    http = FakeHttp()
    monkeypatch.setattr(api.requests, "request", http.request)
    return http


@pytest.fixture
def connection():
    return ConnectionConfig(
        base_url="https://reader.example.com/",
        api_key="secret-key",
        search_limit=10,
        feed_limit=25,
    )


@pytest.fixture
def client(connection):
    return api.MinifluxClient(lambda: connection)
