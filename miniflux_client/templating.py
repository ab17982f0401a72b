"""Jinja2 environment for miniflux_client templates."""

from __future__ import annotations

import re
from importlib import resources

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader

_ENV: Environment | None = None


def strip_html(value: str | None) -> str:
    """Return text content extracted from HTML fragments."""
    if not value:
        return ""
    soup = BeautifulSoup(value, "html.parser")
    text = soup.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = resources.files(__package__) / "templates"
        _ENV = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        _ENV.filters["plain"] = strip_html
    return _ENV
