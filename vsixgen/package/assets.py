"""Discover package assets and derive marketplace tags from the manifest."""

from __future__ import annotations

import posixpath
import re
from typing import Any, Dict, Iterable, List, Mapping, MutableSequence, Optional

from ..logging import get_logger
from ..models import EXTENSION_PREFIX, Asset, InMemoryFile, LocalFile, PackageFile, ProcessedFiles

logger = get_logger("assets")

DETAILS_ASSET = "Microsoft.VisualStudio.Services.Content.Details"
CHANGELOG_ASSET = "Microsoft.VisualStudio.Services.Content.Changelog"
LICENSE_ASSET = "Microsoft.VisualStudio.Services.Content.License"
ICON_ASSET = "Microsoft.VisualStudio.Services.Icons.Default"
TRANSLATION_ASSET_PREFIX = "Microsoft.VisualStudio.Code.Translation."

TARGET_PLATFORMS = (
    "win32-x64",
    "win32-arm64",
    "linux-x64",
    "linux-arm64",
    "linux-armhf",
    "alpine-x64",
    "alpine-arm64",
    "darwin-x64",
    "darwin-arm64",
    "web",
)

_LICENSE_PATTERN = re.compile(r"^extension/licen[cs]e(\.(md|txt))?$", re.IGNORECASE)
_SEE_LICENSE_PATTERN = re.compile(r"^SEE LICENSE IN (.+)$", re.IGNORECASE)
_CHANGELOG_PATTERN = re.compile(r"^extension/changelog\.md$", re.IGNORECASE)


def to_package_path(relative: str) -> str:
    """Map a manifest-relative path (``./images/icon.png``) into the package."""
    normalised = posixpath.normpath(relative.replace("\\", "/"))
    normalised = normalised.lstrip("/")
    return f"{EXTENSION_PREFIX}{normalised}"


def is_valid_target(target: str) -> bool:
    return target in TARGET_PLATFORMS


def _find(files: Iterable[PackageFile], path: str) -> Optional[PackageFile]:
    lowered = path.lower()
    for file in files:
        if file.path.lower() == lowered:
            return file
    return None


def _license_asset(files: MutableSequence[PackageFile], manifest: Mapping[str, Any]) -> Optional[str]:
    license_field = manifest.get("license")
    match = _SEE_LICENSE_PATTERN.match(license_field) if isinstance(license_field, str) else None
    if match:
        candidate = _find(files, to_package_path(match.group(1).strip()))
    else:
        candidate = next((file for file in files if _LICENSE_PATTERN.match(file.path)), None)
    if candidate is None:
        return None

    if posixpath.splitext(candidate.path)[1]:
        return candidate.path

    # the marketplace needs an extension to serve the license
    renamed = f"{candidate.path}.txt"
    index = files.index(candidate)
    if isinstance(candidate, LocalFile):
        files[index] = LocalFile(path=renamed, local_path=candidate.local_path)
    else:
        files[index] = InMemoryFile(path=renamed, contents=candidate.contents)
    logger.debug("Renamed license %s to %s", candidate.path, renamed)
    return renamed


def process_files(
    files: MutableSequence[PackageFile],
    manifest: Mapping[str, Any],
    *,
    readme: str = "README.md",
) -> ProcessedFiles:
    """Collect the assets, icon and license referenced by the package.

    An extensionless license file is renamed in place to ``<name>.txt``.
    """
    result = ProcessedFiles()

    readme_file = _find(files, to_package_path(readme))
    if readme_file is not None:
        result.assets.append(Asset(type=DETAILS_ASSET, path=readme_file.path))
    else:
        logger.warning("No README found at %s", readme)

    changelog = next((file for file in files if _CHANGELOG_PATTERN.match(file.path)), None)
    if changelog is not None:
        result.assets.append(Asset(type=CHANGELOG_ASSET, path=changelog.path))

    license_path = _license_asset(files, manifest)
    if license_path is not None:
        result.license = license_path
        result.assets.append(Asset(type=LICENSE_ASSET, path=license_path))

    icon = manifest.get("icon")
    if isinstance(icon, str) and icon:
        icon_file = _find(files, to_package_path(icon))
        if icon_file is None:
            logger.warning("Icon %s is not part of the package", icon)
        else:
            result.icon = icon_file.path
            result.assets.append(Asset(type=ICON_ASSET, path=icon_file.path))

    for localization in _localizations(manifest):
        language_id = str(localization.get("languageId", "")).upper()
        for translation in _mappings(localization.get("translations")):
            path = translation.get("path")
            if not language_id or not isinstance(path, str):
                continue
            result.assets.append(
                Asset(type=f"{TRANSLATION_ASSET_PREFIX}{language_id}", path=to_package_path(path))
            )

    return result


def _contributes(manifest: Mapping[str, Any]) -> Mapping[str, Any]:
    value = manifest.get("contributes")
    return value if isinstance(value, Mapping) else {}


def _mappings(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _localizations(manifest: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return _mappings(_contributes(manifest).get("localizations"))


def get_manifest_tags(manifest: Mapping[str, Any]) -> List[str]:
    """Return marketplace tags: keywords plus tags implied by contributions."""
    contributes = _contributes(manifest)
    tags: List[str] = []

    keywords = manifest.get("keywords")
    if isinstance(keywords, list):
        tags.extend(str(keyword) for keyword in keywords)

    if contributes.get("themes"):
        tags.extend(["theme", "color-theme"])
    if contributes.get("iconThemes"):
        tags.extend(["theme", "icon-theme"])
    if contributes.get("productIconThemes"):
        tags.extend(["theme", "product-icon-theme"])
    if contributes.get("snippets"):
        tags.append("snippet")
    if contributes.get("keybindings"):
        tags.append("keybindings")
    if contributes.get("debuggers"):
        tags.append("debuggers")
    if contributes.get("jsonValidation"):
        tags.append("json")

    for localization in _localizations(manifest):
        language_id = localization.get("languageId")
        if not language_id:
            continue
        tags.append(f"lp-{language_id}")
        for translation in _mappings(localization.get("translations")):
            if translation.get("id"):
                tags.append(f"__lp_{translation['id']}")
                tags.append(f"__lp-{language_id}_{translation['id']}")

    for language in _mappings(contributes.get("languages")):
        if language.get("id"):
            tags.append(str(language["id"]))
        for alias in language.get("aliases") or []:
            tags.append(str(alias))
        for extension in language.get("extensions") or []:
            tags.append(f"__ext_{str(extension).lstrip('.')}")

    for grammar in _mappings(contributes.get("grammars")):
        if grammar.get("language"):
            tags.append(str(grammar["language"]))

    if manifest.get("browser"):
        tags.append("__web_extension")
    sponsor = manifest.get("sponsor")
    if isinstance(sponsor, Mapping) and sponsor.get("url"):
        tags.append("__sponsor_extension")

    seen: Dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen[cleaned] = None
    return list(seen)


__all__ = [
    "TARGET_PLATFORMS",
    "get_manifest_tags",
    "is_valid_target",
    "process_files",
    "to_package_path",
]
