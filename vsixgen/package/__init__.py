"""Package-level documents, assets and archive output."""

from .assets import TARGET_PLATFORMS, get_manifest_tags, is_valid_target, process_files
from .content_types import ContentTypes, content_types_for_files
from .vsix_manifest import VsixManifestContext, create_vsix_manifest
from .writer import write_vsix

__all__ = [
    "ContentTypes",
    "TARGET_PLATFORMS",
    "VsixManifestContext",
    "content_types_for_files",
    "create_vsix_manifest",
    "get_manifest_tags",
    "is_valid_target",
    "process_files",
    "write_vsix",
]
