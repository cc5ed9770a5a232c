"""Diagnostic types produced by manifest validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticKind(str, Enum):
    """Every kind of problem the manifest validator can report."""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_ENGINE_RANGE = "INVALID_VSCODE_ENGINE_COMPATIBILITY"
    INVALID_NAME = "INVALID_NAME"
    INVALID_VERSION = "INVALID_VERSION"
    INVALID_PUBLISHER_NAME = "INVALID_PUBLISHER_NAME"
    INVALID_PRICING = "INVALID_PRICING"
    INVALID_ICON = "INVALID_ICON"
    INVALID_SPONSOR_URL = "INVALID_SPONSOR_URL"
    INVALID_EXTENSION_KIND = "INVALID_EXTENSION_KIND"
    DEPENDS_ON_VSCODE_IN_DEPENDENCIES = "DEPENDS_ON_VSCODE_IN_DEPENDENCIES"
    INVALID_BADGE_URL = "INVALID_BADGE_URL"
    UNTRUSTED_HOST = "UNTRUSTED_HOST"


@dataclass(frozen=True)
class ManifestDiagnostic:
    """A single validation finding for one manifest field."""

    kind: DiagnosticKind
    field: str
    message: str

    @property
    def type(self) -> str:
        return self.kind.value

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


__all__ = ["DiagnosticKind", "ManifestDiagnostic"]
