"""Collect the files that make up an extension package."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence, Set

from .ignore import IgnoreRuleSet
from .logging import get_logger
from .models import EXTENSION_PREFIX, LocalFile, PackageFile

logger = get_logger("collector")

DEFAULT_IGNORE_FILE = ".vscodeignore"
DEFAULT_README = "README.md"
MANIFEST_FILE = "package.json"
GITIGNORE_FILE = ".gitignore"

# Mirrors the exclusions applied by the official packaging tool.
DEFAULT_IGNORE: tuple[str, ...] = (
    "/.vscodeignore",
    "/.vsixgen.yml",
    "/package-lock.json",
    "/npm-debug.log",
    "/yarn.lock",
    "/yarn-error.log",
    "/npm-shrinkwrap.json",
    "/pnpm-lock.yaml",
    "/bun.lockb",
    "/.editorconfig",
    "/.npmrc",
    "/.yarnrc",
    "/.gitattributes",
    "/*.todo",
    "/tslint.yaml",
    "/.eslintrc*",
    "/.babelrc*",
    "/.prettierrc*",
    "/.cz-config.js",
    "/.commitlintrc*",
    "/webpack.config.js",
    "/ISSUE_TEMPLATE.md",
    "/CONTRIBUTING.md",
    "/PULL_REQUEST_TEMPLATE.md",
    "/CODE_OF_CONDUCT.md",
    "/.github",
    "/.travis.yml",
    "/appveyor.yml",
    "**/.git",
    "**/*.vsix",
    "**/.DS_Store",
    "**/*.vsixmanifest",
    "**/.vscode-test/",
    "**/.vscode-test-web/",
)

# Directories never descended into; nothing below them can be re-included.
# Only the top-level dependency install directory is pruned.
_PRUNED_DIRS = {".git"}
_ROOT_PRUNED_DIRS = {".git", "node_modules"}


@dataclass
class CollectOptions:
    """Options controlling which files end up in the package."""

    ignore_file: str = DEFAULT_IGNORE_FILE
    readme: str = DEFAULT_README


def _root_relative(name: str) -> str:
    normalised = name.replace("\\", "/")
    if normalised.startswith("./"):
        normalised = normalised[2:]
    return normalised.lstrip("/")


def default_ignore_source(options: CollectOptions) -> str:
    """Return the built-in exclusions as a single ignore source.

    The manifest and README are re-included after the defaults, and the
    top-level dependency install directory is excluded last so no negation
    can bring it back.
    """
    lines = list(DEFAULT_IGNORE)
    if options.ignore_file and options.ignore_file != DEFAULT_IGNORE_FILE:
        lines.append(f"/{_root_relative(options.ignore_file)}")
    lines.append(_protected_source(options))
    lines.append("/node_modules/")
    return "\n".join(lines)


def _protected_source(options: CollectOptions) -> str:
    lines = [f"!/{MANIFEST_FILE}"]
    if options.readme:
        lines.append(f"!/{_root_relative(options.readme)}")
    return "\n".join(lines)


def _read_ignore_source(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Treating unreadable ignore file %s as absent: %s", path, exc)
        return None


def load_ignore_sources(root: Path, options: CollectOptions) -> List[str]:
    """Read the SCM ignore file and the package ignore file, in that order."""
    sources: List[str] = []
    for name in (GITIGNORE_FILE, options.ignore_file):
        if not name:
            continue
        text = _read_ignore_source(root / name)
        if text is None:
            continue
        logger.debug("Loaded ignore source %s", name)
        sources.append(text)
    return sources


def _is_symlink_cycle(dirpath: str, root: Path) -> bool:
    """True when ``dirpath`` resolves to one of its own ancestors."""
    real = os.path.realpath(dirpath)
    ancestor = os.path.dirname(dirpath)
    while len(ancestor) >= len(str(root)):
        if os.path.realpath(ancestor) == real:
            return True
        parent = os.path.dirname(ancestor)
        if parent == ancestor:
            break
        ancestor = parent
    return False


def _iter_relative_files(root: Path) -> Iterator[str]:
    def _on_error(error: OSError) -> None:
        logger.debug("Skipping unreadable directory %s: %s", error.filename, error)

    for dirpath, dirnames, filenames in os.walk(root, followlinks=True, onerror=_on_error):
        if dirpath != str(root) and _is_symlink_cycle(dirpath, root):
            logger.debug("Not following symlink cycle at %s", dirpath)
            dirnames[:] = []
            continue

        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""
        pruned = _ROOT_PRUNED_DIRS if current_dir == root else _PRUNED_DIRS
        dirnames[:] = sorted(name for name in dirnames if name not in pruned)

        for filename in filenames:
            full_path = current_dir / filename
            if not full_path.is_file():
                logger.debug("Skipping %s: not a regular file or no longer present", full_path)
                continue
            yield f"{rel_dir}/{filename}" if rel_dir else filename


def collect(project_root: str | os.PathLike[str], options: CollectOptions | None = None) -> List[PackageFile]:
    """Return the package entries for ``project_root`` sorted by path.

    Missing roots and empty trees produce an empty list.
    """
    options = options or CollectOptions()
    root = Path(project_root).expanduser().resolve()
    if not root.is_dir():
        logger.debug("Project root %s does not exist; nothing to collect", root)
        return []

    defaults = IgnoreRuleSet([default_ignore_source(options)])
    user_rules = IgnoreRuleSet(load_ignore_sources(root, options))

    kept: Set[str] = set()
    for rel_path in _iter_relative_files(root):
        if defaults.ignores(rel_path):
            continue
        if user_rules.ignores(rel_path):
            continue
        kept.add(rel_path)

    files: List[PackageFile] = [
        LocalFile(path=f"{EXTENSION_PREFIX}{rel_path}", local_path=str(root / rel_path))
        for rel_path in sorted(kept)
    ]
    logger.debug("Collected %d files from %s", len(files), root)
    return files


def package_paths(files: Sequence[PackageFile]) -> List[str]:
    return [file.path for file in files]


__all__ = [
    "CollectOptions",
    "DEFAULT_IGNORE",
    "collect",
    "default_ignore_source",
    "load_ignore_sources",
    "package_paths",
]
