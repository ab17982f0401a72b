import json
import logging

import pytest
import requests

from miniflux_client import cli
from miniflux_client.config import AppConfig, ConnectionConfig, LoggingConfig
from miniflux_client.errors import ApiError
from miniflux_client.models import (
    ApiErrorRecord,
    Category,
    EntryList,
    FeedCreationResult,
    FeedIcon,
    OriginArticle,
)


@pytest.fixture
def restore_root_logger():
    original_handlers = list(logging.getLogger().handlers)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    yield
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


def test_configure_logging_defaults_to_console_only(restore_root_logger):
    cli.configure_logging("INFO")

    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
    assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_with_log_file_creates_file_handler(
    restore_root_logger, tmp_path
):
    log_path = tmp_path / "nested" / "custom.log"
    cli.configure_logging("DEBUG", str(log_path))

    assert log_path.exists()
    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_rejects_unknown_level(restore_root_logger):
    with pytest.raises(ValueError):
        cli.configure_logging("LOUD")


class FakeClient:
    def __init__(self, loader=None):
        self.calls = []
        self.error = None

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error

    def search(self, query, limit=None):
        self._record("search", query, limit=limit)
        return EntryList.from_dict(
            {"total": 1, "entries": [{"id": 1, "status": "unread", "title": "Rust"}]}
        )

    def get_recent_entries(self, limit=None):
        self._record("recent", limit=limit)
        return EntryList(total=0, entries=[])

    def get_entry_url(self, entry):
        return f"https://reader.example.com/{entry.status}/entry/{entry.id}"

    def entry_linker(self):
        self._record("linker")
        return self.get_entry_url

    def get_origin_article(self, entry):
        self._record("origin", entry.id)
        return OriginArticle(content="<p>Hello <em>reader</em></p>")

    def get_icon_for_feed(self, feed_id):
        self._record("icon", feed_id)
        return FeedIcon(id=3, data="image/png;base64,AAAA", mime_type="image/png")

    def get_categories(self):
        self._record("categories")
        return [Category(id=1, title="All")]

    def toggle_bookmark(self, entry):
        self._record("bookmark", entry.id)
        return True

    def update_entry_status(self, entry_id, status):
        self._record("status", entry_id, status)
        return False

    def discover_feeds(self, request):
        self._record("discover", request)
        return []

    def create_feed(self, request):
        self._record("create", request)
        return FeedCreationResult(feed_id=99)


@pytest.fixture
def fake_client(monkeypatch, restore_root_logger):
    client = FakeClient()
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(
        cli,
        "parse_app_config",
        lambda path: AppConfig(base_url="https://reader.example.com"),
    )
    monkeypatch.setattr(cli, "connection_loader", lambda path: None)
    monkeypatch.setattr(cli, "MinifluxClient", lambda loader: client)
    return client


def test_main_search_prints_json(fake_client, capsys):
    exit_code = cli.main(["search", "rust", "--limit", "3"])

    assert exit_code == 0
    assert fake_client.calls == [("search", ("rust",), {"limit": 3})]
    output = json.loads(capsys.readouterr().out)
    assert output["entries"][0]["title"] == "Rust"


def test_main_search_text_format(fake_client, capsys):
    exit_code = cli.main(["--format", "text", "search", "rust"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "[unread] Rust (#1)" in out
    assert "Reader: https://reader.example.com/unread/entry/1" in out
    assert [call[0] for call in fake_client.calls] == ["search", "linker"]


def test_main_recent_uses_configured_limit(fake_client):
    cli.main(["recent"])

    assert fake_client.calls == [("recent", (), {"limit": None})]


def test_main_entry_url(fake_client, capsys):
    cli.main(["entry-url", "42", "read"])

    assert capsys.readouterr().out.strip() == (
        "https://reader.example.com/read/entry/42"
    )


def test_main_bookmark_and_status(fake_client, capsys):
    assert cli.main(["bookmark", "42"]) == 0
    assert cli.main(["status", "42", "read"]) == 0

    out = capsys.readouterr().out
    assert "Bookmark toggled: yes" in out
    assert "Status updated to read: no" in out
    assert fake_client.calls == [("bookmark", (42,), {}), ("status", (42, "read"), {})]


def test_main_create_feed_passes_request(fake_client, capsys):
    exit_code = cli.main(
        [
            "create-feed",
            "https://blog.example.com/feed.xml",
            "2",
            "--username",
            "user",
            "--crawler",
        ]
    )

    assert exit_code == 0
    request = fake_client.calls[0][1][0]
    assert request.feed_url == "https://blog.example.com/feed.xml"
    assert request.category_id == 2
    assert request.username == "user"
    assert request.crawler is True
    assert json.loads(capsys.readouterr().out) == {"feed_id": 99}


def test_main_discover_defaults_optional_fields(fake_client):
    cli.main(["discover", "https://blog.example.com"])

    request = fake_client.calls[0][1][0]
    assert request.to_payload() == {"url": "https://blog.example.com"}


def test_main_reports_api_errors(fake_client, caplog, capsys):
    fake_client.error = ApiError(
        ApiErrorRecord.from_dict({"error_message": "Invalid credentials"}), 401
    )

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["categories"])

    assert exit_code == 1
    assert "Invalid credentials" in caplog.text
    assert capsys.readouterr().out == ""


def test_main_reports_transport_errors(fake_client, caplog):
    fake_client.error = requests.ConnectionError("connection refused")

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["categories"])

    assert exit_code == 1
    assert "connection refused" in caplog.text


def test_main_decode_errors_are_not_usage_errors(fake_client):
    fake_client.error = requests.JSONDecodeError("Expecting value", "<html>", 0)

    assert cli.main(["categories"]) == 1


def test_main_config_value_errors_exit_with_usage(monkeypatch, restore_root_logger):
    def bad_config(path):
        raise ValueError("Config missing <base-url>")

    monkeypatch.setattr(cli, "parse_app_config", bad_config)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["categories"])

    assert excinfo.value.code == 2


def test_main_missing_config_file(tmp_path, restore_root_logger):
    assert cli.main(["--config", str(tmp_path / "nope.xml"), "categories"]) == 1


def test_main_cli_overrides_logging(monkeypatch, fake_client):
    captured = {}

    def fake_configure(level, log_file=None):
        captured["level"] = level
        captured["file"] = log_file

    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    monkeypatch.setattr(
        cli,
        "parse_app_config",
        lambda path: AppConfig(
            base_url="https://r",
            logging=LoggingConfig(level="INFO", file="config.log"),
        ),
    )

    cli.main(["--log-level", "DEBUG", "--log-file", "cli.log", "categories"])

    assert captured == {"level": "DEBUG", "file": "cli.log"}


def test_main_origin_prints_json(fake_client, capsys):
    assert cli.main(["origin", "42"]) == 0

    assert fake_client.calls == [("origin", (42,), {})]
    assert json.loads(capsys.readouterr().out) == {
        "content": "<p>Hello <em>reader</em></p>"
    }


def test_main_origin_plain_strips_html(fake_client, capsys):
    assert cli.main(["origin", "42", "--plain"]) == 0

    assert capsys.readouterr().out.strip() == "Hello reader"


def test_main_icon_prints_json(fake_client, capsys):
    assert cli.main(["icon", "9"]) == 0

    assert fake_client.calls == [("icon", (9,), {})]
    assert json.loads(capsys.readouterr().out) == {
        "id": 3,
        "data": "image/png;base64,AAAA",
        "mime_type": "image/png",
    }


def test_main_unexpected_client_errors_exit_with_failure(fake_client, caplog):
    fake_client.error = KeyError("id")

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["categories"])

    assert exit_code == 1
    assert "Unexpected error during execution." in caplog.text


def test_main_malformed_config_exits_with_failure(tmp_path, restore_root_logger):
    config = tmp_path / "config.xml"
    config.write_text("<config><base-url>x</base-url>", encoding="utf-8")

    assert cli.main(["--config", str(config), "categories"]) == 1


@pytest.fixture
def real_client(monkeypatch, restore_root_logger, fake_http):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(
        cli,
        "parse_app_config",
        lambda path: AppConfig(base_url="https://reader.example.com"),
    )
    config = ConnectionConfig(base_url="https://reader.example.com/", api_key="k")
    monkeypatch.setattr(cli, "connection_loader", lambda path: lambda: config)
    return fake_http


def test_main_non_object_error_body_is_a_request_failure(real_client, caplog):
    real_client.queue(500, ["oops"])

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["categories"])

    assert exit_code == 1
    assert "Request to Miniflux failed" in caplog.text


@pytest.mark.parametrize(
    "argv", [["search", "rust", "--limit", "-1"], ["recent", "--limit", "-3"]]
)
def test_main_negative_limit_is_a_usage_error(real_client, argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2
    assert real_client.calls == []
