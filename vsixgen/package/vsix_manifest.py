"""Synthesize the ``extension.vsixmanifest`` document."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models import Asset
from .templates import render_template

MANIFEST_ASSET = Asset(type="Microsoft.VisualStudio.Code.Manifest", path="extension/package.json")

_CODE = "Microsoft.VisualStudio.Code"
_SERVICES = "Microsoft.VisualStudio.Services"

_GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/|^git@github\.com:", re.IGNORECASE)
_SHORTHAND_PATTERN = re.compile(r"^(?:github:)?([\w.-]+)/([\w.-]+)$")


@dataclass
class VsixManifestContext:
    """Package facts that do not come from ``package.json`` itself."""

    assets: Sequence[Asset] = field(default_factory=list)
    tags: Sequence[str] = field(default_factory=list)
    pre_release: bool = False
    icon: Optional[str] = None
    license: Optional[str] = None
    flags: Sequence[str] = field(default_factory=lambda: ["Public"])
    target: Optional[str] = None


def _url_field(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        url = value.get("url")
        return url if isinstance(url, str) and url else None
    return None


def _normalise_repository(url: str) -> str:
    shorthand = _SHORTHAND_PATTERN.match(url)
    if shorthand:
        return f"https://github.com/{shorthand.group(1)}/{shorthand.group(2)}"
    if url.startswith("git+"):
        url = url[len("git+") :]
    return url


def _join(values: Any, separator: str = ",") -> str:
    if values is None:
        return ""
    if isinstance(values, str):
        return values
    return separator.join(str(value) for value in values)


def extension_kinds(manifest: Mapping[str, Any]) -> List[str]:
    """Return the declared extension kinds, or the ones implied by entry points."""
    declared = manifest.get("extensionKind")
    if isinstance(declared, str):
        return [declared]
    if isinstance(declared, list):
        return [str(kind) for kind in declared]

    if manifest.get("main"):
        return ["workspace", "web"] if manifest.get("browser") else ["workspace"]
    if manifest.get("browser"):
        return ["web"]
    return ["ui", "workspace", "web"]


def _localized_languages(contributes: Mapping[str, Any]) -> str:
    localizations = contributes.get("localizations")
    if not isinstance(localizations, list):
        return ""
    names = []
    for item in localizations:
        if not isinstance(item, Mapping):
            continue
        name = item.get("localizedLanguageName") or item.get("languageName") or item.get("languageId")
        if name:
            names.append(str(name))
    return ",".join(names)


def _links(manifest: Mapping[str, Any]) -> List[Tuple[str, str]]:
    properties: List[Tuple[str, str]] = []
    repository = _url_field(manifest.get("repository"))
    if repository:
        repository = _normalise_repository(repository)
        properties.append((f"{_SERVICES}.Links.Source", repository))
        properties.append((f"{_SERVICES}.Links.Getstarted", repository))
        if _GITHUB_URL_PATTERN.match(repository):
            properties.append((f"{_SERVICES}.Links.GitHub", repository))
        else:
            properties.append((f"{_SERVICES}.Links.Repository", repository))

    bugs = _url_field(manifest.get("bugs"))
    if bugs:
        properties.append((f"{_SERVICES}.Links.Support", bugs))

    homepage = manifest.get("homepage")
    if isinstance(homepage, str) and homepage:
        properties.append((f"{_SERVICES}.Links.Learn", homepage))
    return properties


def _qna_properties(manifest: Mapping[str, Any]) -> List[Tuple[str, str]]:
    if "qna" not in manifest:
        return []
    qna = manifest["qna"]
    if qna == "marketplace":
        return [(f"{_SERVICES}.EnableMarketplaceQnA", "true")]
    if qna is False:
        return [(f"{_SERVICES}.EnableMarketplaceQnA", "false")]
    if isinstance(qna, str) and qna:
        return [
            (f"{_SERVICES}.EnableMarketplaceQnA", "false"),
            (f"{_SERVICES}.CustomerQnALink", qna),
        ]
    return []


def manifest_properties(manifest: Mapping[str, Any], context: VsixManifestContext) -> List[Tuple[str, str]]:
    """Return the ordered ``<Property>`` entries; optional ones only when set."""
    contributes = manifest.get("contributes")
    contributes = contributes if isinstance(contributes, Mapping) else {}
    engines = manifest.get("engines")
    engines = engines if isinstance(engines, Mapping) else {}

    properties: List[Tuple[str, str]] = [
        (f"{_CODE}.Engine", str(engines.get("vscode", ""))),
        (f"{_CODE}.ExtensionDependencies", _join(manifest.get("extensionDependencies"))),
        (f"{_CODE}.ExtensionPack", _join(manifest.get("extensionPack"))),
        (f"{_CODE}.ExtensionKind", _join(extension_kinds(manifest))),
        (f"{_CODE}.LocalizedLanguages", _localized_languages(contributes)),
        (f"{_CODE}.EnabledApiProposals", _join(manifest.get("enabledApiProposals"))),
    ]
    if context.pre_release:
        properties.append((f"{_CODE}.PreRelease", "true"))
    if manifest.get("main") or manifest.get("browser"):
        properties.append((f"{_CODE}.ExecutesCode", "true"))

    sponsor_link = _url_field(manifest.get("sponsor"))
    if sponsor_link:
        properties.append((f"{_CODE}.SponsorLink", sponsor_link))

    properties.extend(_links(manifest))

    banner = manifest.get("galleryBanner")
    if isinstance(banner, Mapping):
        if banner.get("color"):
            properties.append((f"{_SERVICES}.Branding.Color", str(banner["color"])))
        if banner.get("theme"):
            properties.append((f"{_SERVICES}.Branding.Theme", str(banner["theme"])))

    github_markdown = manifest.get("markdown") != "standard"
    properties.append((f"{_SERVICES}.GitHubFlavoredMarkdown", "true" if github_markdown else "false"))
    properties.append((f"{_SERVICES}.Content.Pricing", str(manifest.get("pricing") or "Free")))
    properties.extend(_qna_properties(manifest))
    return properties


def _badges(manifest: Mapping[str, Any]) -> List[Dict[str, str]]:
    badges = manifest.get("badges")
    if not isinstance(badges, list):
        return []
    return [
        {
            "url": str(badge.get("url", "")),
            "href": str(badge.get("href", "")),
            "description": str(badge.get("description", "")),
        }
        for badge in badges
        if isinstance(badge, Mapping)
    ]


def create_vsix_manifest(manifest: Mapping[str, Any], context: VsixManifestContext) -> str:
    """Render the package manifest document for a validated ``package.json``.

    Every interpolated value is XML-escaped by the template environment.
    """
    categories = manifest.get("categories")
    return render_template(
        "extension.vsixmanifest.j2",
        identity={
            "id": manifest.get("name", ""),
            "version": manifest.get("version", ""),
            "publisher": manifest.get("publisher", ""),
            "target": context.target,
        },
        display_name=manifest.get("displayName") or manifest.get("name", ""),
        description=manifest.get("description") or "",
        tags=_join(context.tags),
        categories=_join(categories if isinstance(categories, list) else []),
        flags=_join(context.flags, " "),
        badges=_badges(manifest),
        properties=manifest_properties(manifest, context),
        license=context.license,
        icon=context.icon,
        assets=[MANIFEST_ASSET, *context.assets],
    )


__all__ = [
    "MANIFEST_ASSET",
    "VsixManifestContext",
    "create_vsix_manifest",
    "extension_kinds",
    "manifest_properties",
]
