"""Configuration loading for the Miniflux connection."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional
from xml.etree import ElementTree as ET

logger = logging.getLogger(__name__)

API_KEY_VARIABLE = "MINIFLUX_API_KEY"
DEFAULT_FEED_LIMIT = 20


@dataclass
class ConnectionConfig:
    """Everything needed to reach the Miniflux API."""

    base_url: str
    api_key: str
    search_limit: int = 0
    feed_limit: int = DEFAULT_FEED_LIMIT


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    base_url: str
    api_key: Optional[str] = None
    env_file: Optional[str] = None
    search_limit: int = 0
    feed_limit: int = DEFAULT_FEED_LIMIT
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _parse_limit(root: ET.Element, tag: str, default: int) -> int:
    raw = root.findtext(tag)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"<{tag}> must be an integer, got {raw.strip()!r}")
    if value < 0:
        raise ValueError(f"<{tag}> must not be negative.")
    return value


def parse_env_config(path: Optional[str]) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars: Dict[str, str] = {}
    if not path:
        return env_vars

    logger.debug("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    for var in tree.getroot().findall("variable"):
        name = var.attrib.get("name")
        value = var.text
        if name and value:
            env_vars[name] = value.strip()
    return env_vars


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.debug("Loading application configuration from %s", config_path)
    root = ET.parse(config_path).getroot()

    base_url = (root.findtext("base-url") or "").strip()
    if not base_url:
        raise ValueError("Config missing <base-url>")

    api_key = (root.findtext("api-key") or "").strip() or None

    env_node = root.find("env")
    env_file = (
        _resolve_path(config_path, env_node.text.strip())
        if env_node is not None and env_node.text
        else None
    )

    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    return AppConfig(
        base_url=base_url,
        api_key=api_key,
        env_file=env_file,
        search_limit=_parse_limit(root, "search-limit", 0),
        feed_limit=_parse_limit(root, "feed-limit", DEFAULT_FEED_LIMIT),
        logging=logging_config,
    )


def resolve_api_key(app_config: AppConfig) -> str:
    """Pick the API key from the config file, the env file or the environment.

    Sources may repeat the same key, but two different keys are rejected.
    """
    sources = {
        "config": app_config.api_key,
        "env file": parse_env_config(app_config.env_file).get(API_KEY_VARIABLE),
        "environment": os.environ.get(API_KEY_VARIABLE),
    }
    found = {name: value for name, value in sources.items() if value}
    if not found:
        raise ValueError(
            f"Missing required secret {API_KEY_VARIABLE} "
            "(set <api-key>, the env file or the environment)."
        )
    if len(set(found.values())) > 1:
        raise ValueError(
            f"Secret conflict for '{API_KEY_VARIABLE}' between: "
            + ", ".join(sorted(found))
        )
    return next(iter(found.values()))


def load_connection_config(path: str) -> ConnectionConfig:
    """Read the configuration from disk and return the current connection settings."""
    app_config = parse_app_config(path)
    return ConnectionConfig(
        base_url=app_config.base_url,
        api_key=resolve_api_key(app_config),
        search_limit=app_config.search_limit,
        feed_limit=app_config.feed_limit,
    )


def connection_loader(path: str) -> Callable[[], ConnectionConfig]:
    """Return a loader that re-reads ``path`` every time it is called."""

    def load() -> ConnectionConfig:
        return load_connection_config(path)

    return load
