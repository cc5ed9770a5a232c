"""Build the ``[Content_Types].xml`` declaration for a package."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from ..models import PackageFile
from .templates import render_template

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTENT_TYPE_BY_EXTENSION: Dict[str, str] = {
    ".vsixmanifest": "text/xml",
    ".xml": "text/xml",
    ".json": "application/json",
    ".jsonc": "application/json",
    ".js": "application/javascript",
    ".cjs": "application/javascript",
    ".mjs": "application/javascript",
    ".map": "application/json",
    ".ts": "video/mp2t",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".txt": "text/plain",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".csv": "text/csv",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".wasm": "application/wasm",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".pdf": "application/pdf",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".sh": "application/x-sh",
    ".py": "text/x-python",
    ".node": DEFAULT_CONTENT_TYPE,
}

# The package manifest document is appended after collection; always declare it.
_ALWAYS_DECLARED = (".vsixmanifest",)


@dataclass(frozen=True)
class ContentTypes:
    """Extension to media type mapping plus its rendered XML."""

    types: Tuple[Tuple[str, str], ...]
    xml: str

    def as_dict(self) -> Dict[str, str]:
        return dict(self.types)


def content_type_for(extension: str) -> str:
    return _CONTENT_TYPE_BY_EXTENSION.get(extension.lower(), DEFAULT_CONTENT_TYPE)


def _extensions(files: Iterable[PackageFile]) -> List[str]:
    found = set(_ALWAYS_DECLARED)
    for file in files:
        extension = posixpath.splitext(file.path)[1].lower()
        if extension:
            found.add(extension)
    return sorted(found)


def content_types_for_files(files: Iterable[PackageFile]) -> ContentTypes:
    """Map every extension present in ``files`` to a media type and render it."""
    types = tuple((extension, content_type_for(extension)) for extension in _extensions(files))
    return ContentTypes(types=types, xml=render_template("content_types.xml.j2", types=types))


__all__ = ["ContentTypes", "DEFAULT_CONTENT_TYPE", "content_type_for", "content_types_for_files"]
