"""Reading the extension's ``package.json``."""

from __future__ import annotations

import json
import os
from pathlib import Path

from .models import ProjectManifest

MANIFEST_FILE_NAME = "package.json"


class ManifestReadError(RuntimeError):
    """Raised when ``package.json`` is missing, unreadable, or not a JSON object."""


def read_project_manifest(project_dir: str | os.PathLike[str]) -> ProjectManifest:
    """Read and parse ``package.json`` from ``project_dir``.

    There is no partial result: any I/O or parse problem raises
    :class:`ManifestReadError`.
    """
    manifest_path = Path(project_dir).expanduser() / MANIFEST_FILE_NAME
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestReadError(f"Unable to read {manifest_path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestReadError(f"Invalid JSON in {manifest_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestReadError(f"{manifest_path} must contain a JSON object")

    return ProjectManifest(file_name=str(manifest_path), manifest=data)


__all__ = ["MANIFEST_FILE_NAME", "ManifestReadError", "read_project_manifest"]
