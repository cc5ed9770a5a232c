"""Jinja2 rendering for the XML documents embedded in a package."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATES_DIR = Path(__file__).with_name("templates")

XML_ESCAPES: Mapping[str, str] = MappingProxyType(
    {
        "'": "&apos;",
        '"': "&quot;",
        "<": "&lt;",
        ">": "&gt;",
        "&": "&amp;",
    }
)
_ESCAPE_PATTERN = re.compile("[" + re.escape("".join(XML_ESCAPES)) + "]")


def escape_xml(value: Any) -> str:
    """Render ``value`` as text with the five reserved XML characters escaped."""
    if value is None:
        return ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return _ESCAPE_PATTERN.sub(lambda match: XML_ESCAPES[match.group(0)], str(value))


@lru_cache(maxsize=1)
def _environment() -> Environment:
    # finalize runs on every {{ }} expression, so nothing reaches the output unescaped
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        finalize=escape_xml,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_template(name: str, **context: Any) -> str:
    return _environment().get_template(name).render(**context)


__all__ = ["TEMPLATES_DIR", "XML_ESCAPES", "escape_xml", "render_template"]
