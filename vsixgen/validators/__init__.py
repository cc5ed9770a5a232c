"""Validation of extension manifests prior to packaging."""

from .base import DiagnosticKind, ManifestDiagnostic
from .manifest import ManifestValidator, validate_manifest

__all__ = [
    "DiagnosticKind",
    "ManifestDiagnostic",
    "ManifestValidator",
    "validate_manifest",
]
