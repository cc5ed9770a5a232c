"""Core data models shared across vsixgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

EXTENSION_PREFIX = "extension/"
VSIX_MANIFEST_PATH = "extension.vsixmanifest"
CONTENT_TYPES_PATH = "[Content_Types].xml"


@dataclass(frozen=True)
class LocalFile:
    """A package entry backed by a file on disk."""

    path: str
    local_path: str


@dataclass(frozen=True)
class InMemoryFile:
    """A package entry whose contents are held in memory."""

    path: str
    contents: bytes


PackageFile = Union[LocalFile, InMemoryFile]


@dataclass
class ProjectManifest:
    """The parsed ``package.json`` together with the file it came from."""

    file_name: str
    manifest: Dict[str, Any]


@dataclass(frozen=True)
class Asset:
    """An addressable asset declared in the package manifest document."""

    type: str
    path: str


@dataclass
class ProcessedFiles:
    """Assets discovered in the collected file set."""

    assets: List[Asset] = field(default_factory=list)
    icon: Optional[str] = None
    license: Optional[str] = None
