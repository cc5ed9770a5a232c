"""Pipeline orchestration: validate, collect, synthesize, write."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, MutableSequence, Optional, Union

from .collector import DEFAULT_IGNORE_FILE, DEFAULT_README, MANIFEST_FILE, CollectOptions, collect
from .config import ConfigError, VsixGenConfig, load_config, merge_option
from .logging import get_logger
from .manifest import read_project_manifest
from .models import (
    CONTENT_TYPES_PATH,
    EXTENSION_PREFIX,
    VSIX_MANIFEST_PATH,
    InMemoryFile,
    PackageFile,
)
from .package import (
    TARGET_PLATFORMS,
    VsixManifestContext,
    content_types_for_files,
    create_vsix_manifest,
    get_manifest_tags,
    is_valid_target,
    process_files,
    write_vsix,
)
from .pm import (
    PrepublishError,
    Runner,
    detect_package_manager,
    get_extension_dependencies,
    has_prepublish_script,
    is_available,
    prepublish,
)
from .validators import ManifestDiagnostic, ManifestValidator

WRITE_ERROR = "WRITE_ERROR"
MISSING_PACKAGE_MANAGER = "MISSING_PACKAGE_MANAGER"
PREPUBLISH_FAILED = "PREPUBLISH_FAILED"
INVALID_TARGET = "INVALID_TARGET"
MANIFEST_EXCLUDED = "MANIFEST_EXCLUDED"


class PackageCollisionError(RuntimeError):
    """Raised when a synthesized document would replace a collected file."""


@dataclass(frozen=True)
class PackagingIssue:
    """A packaging failure that is not about the manifest contents."""

    type: str
    message: str

    def __str__(self) -> str:
        return self.message


PackagingError = Union[ManifestDiagnostic, PackagingIssue]


@dataclass
class PackageOptions:
    """Inputs for one packaging run; None means "use config or default"."""

    cwd: str = "."
    package_path: Optional[str] = None
    ignore_file: Optional[str] = None
    readme: Optional[str] = None
    target: Optional[str] = None
    pre_release: Optional[bool] = None
    skip_scripts: Optional[bool] = None
    package_manager: Optional[str] = None
    dependencies: Optional[List[str]] = None
    write: bool = True
    force_write: bool = False


@dataclass
class CreateVsixResult:
    """Outcome of a packaging run."""

    files: List[PackageFile] = field(default_factory=list)
    manifest: Optional[Mapping[str, Any]] = None
    vsix_path: Optional[Path] = None
    written: bool = False
    dependencies: List[str] = field(default_factory=list)
    errors: List[PackagingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def default_package_name(manifest: Mapping[str, Any], target: Optional[str] = None) -> str:
    name = manifest.get("name", "extension")
    version = manifest.get("version", "0.0.0")
    if target:
        return f"{name}-{target}-{version}.vsix"
    return f"{name}-{version}.vsix"


def append_document(files: MutableSequence[PackageFile], path: str, text: str) -> None:
    """Append an in-memory document, refusing to shadow an existing entry."""
    if any(file.path == path for file in files):
        raise PackageCollisionError(f"Package already contains an entry named '{path}'")
    files.append(InMemoryFile(path=path, contents=text.encode("utf-8")))


class Orchestrator:
    """Coordinates one packaging run from project directory to archive."""

    def __init__(
        self,
        validator: ManifestValidator | None = None,
        prepublish_runner: Runner | None = None,
    ) -> None:
        self.validator = validator or ManifestValidator()
        self._prepublish_runner = prepublish_runner
        self.logger = get_logger("orchestrator")

    def validate(self, path: str) -> List[ManifestDiagnostic]:
        """Read ``package.json`` under ``path`` and return its diagnostics."""
        project = read_project_manifest(Path(path).expanduser().resolve())
        return self.validator.validate(project.manifest)

    def list_files(self, options: PackageOptions) -> List[PackageFile]:
        """Return the files a package would contain, without scripts or output."""
        root = Path(options.cwd).expanduser().resolve()
        config = self._load_config(root)
        return collect(root, self._collect_options(options, config))

    def create_vsix(self, options: PackageOptions) -> CreateVsixResult:
        """Build the package for ``options.cwd``.

        Raises ManifestReadError when ``package.json`` cannot be read; every
        other problem is reported through ``CreateVsixResult.errors``.
        """
        root = Path(options.cwd).expanduser().resolve()
        self.logger.info("Packaging extension at %s", root)
        project = read_project_manifest(root)
        config = self._load_config(root)
        manifest = project.manifest

        target = merge_option(options.target, config.target, None)
        pre_release = bool(merge_option(options.pre_release, config.pre_release, False))
        skip_scripts = bool(merge_option(options.skip_scripts, config.skip_scripts, False))

        result = CreateVsixResult(manifest=manifest)
        if target and not is_valid_target(target):
            result.errors.append(
                PackagingIssue(
                    type=INVALID_TARGET,
                    message=f"Unknown target '{target}'. Expected one of: {', '.join(TARGET_PLATFORMS)}",
                )
            )
            return result

        diagnostics = self.validator.validate(manifest)
        if diagnostics:
            self.logger.debug("Manifest validation reported %d problems", len(diagnostics))
            result.errors.extend(diagnostics)
            return result

        package_name = merge_option(
            options.package_path, config.package_path, default_package_name(manifest, target)
        )
        result.vsix_path = root / package_name
        result.dependencies = sorted(
            set(get_extension_dependencies(manifest))
            | set(merge_option(options.dependencies, config.dependencies, []))
        )

        if not skip_scripts and has_prepublish_script(manifest):
            preferred = merge_option(options.package_manager, config.package_manager, "auto")
            try:
                package_manager = detect_package_manager(root, manifest, preferred)
            except ValueError as exc:
                result.errors.append(PackagingIssue(type=MISSING_PACKAGE_MANAGER, message=str(exc)))
                return result
            if not is_available(package_manager):
                result.errors.append(
                    PackagingIssue(
                        type=MISSING_PACKAGE_MANAGER,
                        message=f"The package manager '{package_manager}' could not be found.",
                    )
                )
                return result
            try:
                prepublish(
                    root,
                    package_manager,
                    manifest,
                    pre_release=pre_release,
                    runner=self._prepublish_runner,
                )
            except PrepublishError as exc:
                result.errors.append(PackagingIssue(type=PREPUBLISH_FAILED, message=str(exc)))
                return result

        readme = merge_option(options.readme, config.readme, DEFAULT_README)
        files = collect(root, self._collect_options(options, config))
        self.logger.debug("Collected %d files", len(files))
        manifest_entry = f"{EXTENSION_PREFIX}{MANIFEST_FILE}"
        if not any(file.path == manifest_entry for file in files):
            result.errors.append(
                PackagingIssue(
                    type=MANIFEST_EXCLUDED,
                    message=f"{MANIFEST_FILE} is excluded by the ignore rules but must be packaged.",
                )
            )
            return result

        processed = process_files(files, manifest, readme=readme)
        vsix_manifest = create_vsix_manifest(
            manifest,
            VsixManifestContext(
                assets=processed.assets,
                tags=get_manifest_tags(manifest),
                pre_release=pre_release,
                icon=processed.icon,
                license=processed.license,
                flags=["Public", "Preview"] if manifest.get("preview") else ["Public"],
                target=target,
            ),
        )
        content_types = content_types_for_files(files)

        append_document(files, VSIX_MANIFEST_PATH, vsix_manifest)
        append_document(files, CONTENT_TYPES_PATH, content_types.xml)
        result.files = files

        if options.write:
            result.written = self._write(result, result.vsix_path, force=options.force_write)
        return result

    # ------------------------------------------------------------------
    # Helpers

    def _write(self, result: CreateVsixResult, vsix_path: Path, *, force: bool) -> bool:
        if vsix_path.exists() and not force:
            result.errors.append(
                PackagingIssue(
                    type=WRITE_ERROR,
                    message=(
                        f"The file already exists at {vsix_path}, "
                        "use the force option to overwrite it."
                    ),
                )
            )
            return False
        try:
            write_vsix(result.files, vsix_path, force=force)
        except (OSError, ValueError) as exc:
            self.logger.error("Failed to write %s: %s", vsix_path, exc)
            result.errors.append(PackagingIssue(type=WRITE_ERROR, message=str(exc)))
            return False
        self.logger.info("Wrote %s (%d files)", vsix_path, len(result.files))
        return True

    def _collect_options(self, options: PackageOptions, config: VsixGenConfig) -> CollectOptions:
        return CollectOptions(
            ignore_file=merge_option(options.ignore_file, config.ignore_file, DEFAULT_IGNORE_FILE),
            readme=merge_option(options.readme, config.readme, DEFAULT_README),
        )

    def _load_config(self, root: Path) -> VsixGenConfig:
        if not root.is_dir():
            return VsixGenConfig(root=root)
        try:
            return load_config(root)
        except ConfigError as exc:
            self.logger.warning("Ignoring invalid configuration: %s", exc)
            return VsixGenConfig(root=root)


__all__ = [
    "CreateVsixResult",
    "Orchestrator",
    "PackageCollisionError",
    "PackageOptions",
    "PackagingIssue",
    "append_document",
    "default_package_name",
]
