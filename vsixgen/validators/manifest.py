"""Rule set applied to ``package.json`` before a package is built."""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, List, Mapping, Optional
from urllib.parse import SplitResult, unquote, urlsplit

from ..semver import engine_satisfies_minimum, is_valid_engine_range, is_valid_version
from .base import DiagnosticKind, ManifestDiagnostic

HOST_PLATFORM = "vscode"
ENGINE_FIELD = f"engines.{HOST_PLATFORM}"

PUBLISHING_DOCS = (
    "https://code.visualstudio.com/api/working-with-extensions/publishing-extension#publishing-extensions"
)
ENGINE_DOCS = (
    "https://code.visualstudio.com/api/working-with-extensions/publishing-extension"
    "#visual-studio-code-compatibility"
)

_IDENTIFIER_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$", re.IGNORECASE)
_URL_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_HOST_REQUIRED_SCHEMES = {"http", "https", "ftp", "ws", "wss", "file"}
_GITHUB_BADGE_PATTERN = re.compile(
    r"^https://github\.com/[^/]+/[^/]+/(actions/)?workflows/.*badge\.svg", re.IGNORECASE
)

ALLOWED_PRICING = ("Free", "Trial")
ALLOWED_EXTENSION_KINDS = ("ui", "workspace")
ALLOWED_SPONSOR_PROTOCOLS = ("http", "https")

# Engine versions from which contributions imply activation events.
IMPLICIT_ACTIVATION_MIN_ENGINE = (1, 74, 0)
_IMPLICIT_ACTIVATION_CONTRIBUTIONS = ("commands", "authentication", "customEditors", "views")

TRUSTED_BADGE_HOSTS = frozenset(
    {
        "api.bintray.com",
        "api.travis-ci.com",
        "api.travis-ci.org",
        "app.fossa.io",
        "badge.buildkite.com",
        "badge.fury.io",
        "badge.waffle.io",
        "badgen.net",
        "badges.frapsoft.com",
        "badges.gitter.im",
        "badges.greenkeeper.io",
        "cdn.travis-ci.com",
        "cdn.travis-ci.org",
        "ci.appveyor.com",
        "circleci.com",
        "cla.opensource.microsoft.com",
        "codacy.com",
        "codeclimate.com",
        "codecov.io",
        "coveralls.io",
        "david-dm.org",
        "deepscan.io",
        "dev.azure.com",
        "docs.rs",
        "flat.badgen.net",
        "gemnasium.com",
        "githost.io",
        "gitlab.com",
        "godoc.org",
        "goreportcard.com",
        "img.shields.io",
        "isitmaintained.com",
        "marketplace.visualstudio.com",
        "nodesecurity.io",
        "opencollective.com",
        "snyk.io",
        "travis-ci.com",
        "travis-ci.org",
        "visualstudio.com",
        "vsmarketplacebadge.apphb.com",
        "www.bithound.io",
        "www.versioneye.com",
    }
)


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def parse_absolute_url(value: str) -> Optional[SplitResult]:
    """Parse ``value`` as an absolute URL, returning None when it is not one."""
    try:
        parts = urlsplit(value.strip())
        # accessing the port validates it
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not _URL_SCHEME_PATTERN.match(parts.scheme):
        return None
    if parts.scheme.lower() in _HOST_REQUIRED_SCHEMES and not parts.hostname:
        return None
    if not (parts.netloc or parts.path):
        return None
    return parts


def _url_host(parts: SplitResult) -> str:
    return parts.netloc.rsplit("@", 1)[-1].lower()


class ManifestValidator:
    """Checks a parsed project manifest against the publishing rules.

    Every check runs on every call; the result lists findings in check order
    and is empty when the manifest is valid.
    """

    name = "manifest"

    def validate(self, manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        diagnostics: List[ManifestDiagnostic] = []
        checks: Iterable[Callable[[Mapping[str, Any]], List[ManifestDiagnostic]]] = (
            self._check_required_fields,
            self._check_engine_range,
            self._check_name,
            self._check_version,
            self._check_publisher,
            self._check_pricing,
            self._check_activation,
            self._check_icon,
            self._check_badges,
            self._check_dependencies,
            self._check_extension_kind,
            self._check_sponsor,
        )
        for check in checks:
            diagnostics.extend(check(manifest))
        return diagnostics

    # ------------------------------------------------------------------
    # Individual checks

    @staticmethod
    def _check_required_fields(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        found: List[ManifestDiagnostic] = []
        if _is_missing(manifest.get("name")):
            found.append(_missing("name", "The `name` field is required."))
        if _is_missing(manifest.get("version")):
            found.append(_missing("version", "The `version` field is required."))
        if _is_missing(manifest.get("publisher")):
            found.append(
                _missing(
                    "publisher",
                    f"The `publisher` field is required. Learn more: {PUBLISHING_DOCS}",
                )
            )
        engines = manifest.get("engines")
        if engines is None:
            found.append(_missing("engines", "The `engines` field is required."))
        if _is_missing(_as_mapping(engines).get(HOST_PLATFORM)):
            found.append(_missing(ENGINE_FIELD, f"The `{ENGINE_FIELD}` field is required."))
        return found

    @staticmethod
    def _check_engine_range(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        engine = _as_text(_as_mapping(manifest.get("engines")).get(HOST_PLATFORM))
        if is_valid_engine_range(engine):
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_ENGINE_RANGE,
                field=ENGINE_FIELD,
                message=(
                    f"The `{ENGINE_FIELD}` field must be a valid semver version range, "
                    f"or '*' for any version. Learn more: {ENGINE_DOCS}"
                ),
            )
        ]

    @staticmethod
    def _check_name(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        name = _as_text(manifest.get("name"))
        if _IDENTIFIER_PATTERN.match(name):
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_NAME,
                field="name",
                message=(
                    f"Invalid extension name '{name}'. Use only letters, digits and dashes, "
                    "starting with a letter or digit; spaces are not allowed."
                ),
            )
        ]

    @staticmethod
    def _check_version(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        if is_valid_version(_as_text(manifest.get("version"))):
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_VERSION,
                field="version",
                message="The `version` field must be a valid semver version.",
            )
        ]

    @staticmethod
    def _check_publisher(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        publisher = _as_text(manifest.get("publisher"))
        if _IDENTIFIER_PATTERN.match(publisher):
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_PUBLISHER_NAME,
                field="publisher",
                message=(
                    f"Invalid publisher name '{publisher}'. Expected the identifier of a "
                    f"publisher, not its human-friendly name. Learn more: {PUBLISHING_DOCS}"
                ),
            )
        ]

    @staticmethod
    def _check_pricing(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        if "pricing" not in manifest or manifest["pricing"] is None:
            return []
        if manifest["pricing"] in ALLOWED_PRICING:
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_PRICING,
                field="pricing",
                message="The `pricing` field must be either 'Free' or 'Trial'.",
            )
        ]

    @staticmethod
    def _check_activation(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        contributes = _as_mapping(manifest.get("contributes"))
        engine = _as_text(_as_mapping(manifest.get("engines")).get(HOST_PLATFORM))

        has_activation_events = bool(manifest.get("activationEvents"))
        has_language_activation = contributes.get("languages") is not None
        has_other_activation = any(
            contributes.get(key) is not None for key in _IMPLICIT_ACTIVATION_CONTRIBUTIONS
        )
        has_implicit_activation = has_language_activation or has_other_activation
        has_main = not _is_missing(manifest.get("main"))
        has_browser = not _is_missing(manifest.get("browser"))
        engine_supports_implicit = engine == "*" or engine_satisfies_minimum(
            engine, IMPLICIT_ACTIVATION_MIN_ENGINE
        )

        if has_activation_events or (engine_supports_implicit and has_implicit_activation):
            # language-only contributions are declarative and need no entry point
            needs_entry_point = has_activation_events or has_other_activation
            if needs_entry_point and not has_main and not has_browser:
                return [
                    _missing(
                        "main or browser",
                        "Manifest needs either a 'main' or 'browser' property, given it has "
                        "an 'activationEvents' property or contributions that activate it.",
                    )
                ]
        elif has_main:
            return [
                _missing(
                    "activationEvents",
                    "Manifest needs the 'activationEvents' property, given it has a 'main' property.",
                )
            ]
        elif has_browser:
            return [
                _missing(
                    "activationEvents",
                    "Manifest needs the 'activationEvents' property, given it has a 'browser' property.",
                )
            ]
        return []

    @staticmethod
    def _check_icon(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        icon = manifest.get("icon")
        if not isinstance(icon, str) or not icon.lower().endswith(".svg"):
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_ICON,
                field="icon",
                message=f"SVGs can't be used as an icon: {icon}. Use a PNG icon instead.",
            )
        ]

    @staticmethod
    def _check_badges(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        badges = manifest.get("badges")
        if not isinstance(badges, list):
            return []

        found: List[ManifestDiagnostic] = []
        for badge in badges:
            decoded_url = unquote(_as_text(_as_mapping(badge).get("url")))
            parsed = parse_absolute_url(decoded_url)
            if parsed is None:
                found.append(
                    _badge_problem(f"The badge URL '{decoded_url}' must be a valid URL.")
                )
            if not decoded_url.startswith("https://"):
                found.append(_badge_problem("Badge URL must use the 'https' protocol"))
            if decoded_url.lower().endswith(".svg"):
                found.append(_badge_problem("SVG badges are not supported. Use PNG badges instead"))
            if parsed is not None and not (
                _url_host(parsed) in TRUSTED_BADGE_HOSTS
                or _GITHUB_BADGE_PATTERN.match(decoded_url)
            ):
                found.append(
                    ManifestDiagnostic(
                        kind=DiagnosticKind.UNTRUSTED_HOST,
                        field="badges",
                        message=f"Badge URL must come from a trusted host, got '{_url_host(parsed)}'",
                    )
                )
        return found

    @staticmethod
    def _check_dependencies(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        dependencies = _as_mapping(manifest.get("dependencies"))
        if HOST_PLATFORM not in dependencies:
            return []
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.DEPENDS_ON_VSCODE_IN_DEPENDENCIES,
                field=f"dependencies.{HOST_PLATFORM}",
                message=(
                    f"You should not depend on '{HOST_PLATFORM}' in your 'dependencies'. "
                    "Did you mean to add it to 'devDependencies'?"
                ),
            )
        ]

    @staticmethod
    def _check_extension_kind(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        if "extensionKind" not in manifest or manifest["extensionKind"] is None:
            return []
        kinds = manifest["extensionKind"]
        if not isinstance(kinds, list):
            kinds = [kinds]
        expected = ", ".join(ALLOWED_EXTENSION_KINDS)
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_EXTENSION_KIND,
                field="extensionKind",
                message=f"Invalid extension kind '{kind}'. Expected one of: {expected}",
            )
            for kind in kinds
            if kind not in ALLOWED_EXTENSION_KINDS
        ]

    @staticmethod
    def _check_sponsor(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
        sponsor_url = _as_mapping(manifest.get("sponsor")).get("url")
        if sponsor_url is None:
            return []
        parsed = parse_absolute_url(_as_text(sponsor_url))
        if parsed is None:
            return [
                ManifestDiagnostic(
                    kind=DiagnosticKind.INVALID_SPONSOR_URL,
                    field="sponsor.url",
                    message="The `sponsor.url` field must be a valid URL.",
                )
            ]
        protocol = parsed.scheme.lower()
        if protocol in ALLOWED_SPONSOR_PROTOCOLS:
            return []
        allowed = ", ".join(ALLOWED_SPONSOR_PROTOCOLS)
        return [
            ManifestDiagnostic(
                kind=DiagnosticKind.INVALID_SPONSOR_URL,
                field="sponsor.url",
                message=f"The protocol '{protocol}' is not allowed. Use one of: {allowed}",
            )
        ]


def _missing(field: str, message: str) -> ManifestDiagnostic:
    return ManifestDiagnostic(kind=DiagnosticKind.MISSING_FIELD, field=field, message=message)


def _badge_problem(message: str) -> ManifestDiagnostic:
    return ManifestDiagnostic(kind=DiagnosticKind.INVALID_BADGE_URL, field="badges", message=message)


def validate_manifest(manifest: Mapping[str, Any]) -> List[ManifestDiagnostic]:
    """Validate ``manifest`` and return its diagnostics (empty means valid)."""
    return ManifestValidator().validate(manifest)


__all__ = [
    "ALLOWED_EXTENSION_KINDS",
    "ALLOWED_PRICING",
    "ManifestValidator",
    "TRUSTED_BADGE_HOSTS",
    "parse_absolute_url",
    "validate_manifest",
]
