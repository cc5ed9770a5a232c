"""Package manager detection and the ``vscode:prepublish`` hook."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .logging import get_logger

logger = get_logger("pm")

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm", "bun")
PREPUBLISH_SCRIPT = "vscode:prepublish"

_LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("package-lock.json", "npm"),
    ("npm-shrinkwrap.json", "npm"),
)


class PrepublishError(RuntimeError):
    """Raised when the prepublish script exits with a failure."""


def detect_package_manager(
    project_root: Path,
    manifest: Mapping[str, Any],
    preferred: str = "auto",
) -> str:
    """Pick the package manager used to run scripts for ``project_root``.

    Order: explicit choice, the ``packageManager`` field, a lockfile, npm.
    """
    if preferred and preferred != "auto":
        if preferred not in PACKAGE_MANAGERS:
            raise ValueError(
                f"Unknown package manager '{preferred}'. Expected one of: {', '.join(PACKAGE_MANAGERS)}"
            )
        return preferred

    declared = manifest.get("packageManager")
    if isinstance(declared, str) and declared:
        name = declared.split("@", 1)[0]
        if name in PACKAGE_MANAGERS:
            return name

    for lockfile, name in _LOCKFILES:
        if (project_root / lockfile).exists():
            return name
    return "npm"


def get_extension_dependencies(manifest: Mapping[str, Any]) -> List[str]:
    """Return the runtime dependency names declared by the manifest."""
    dependencies = manifest.get("dependencies")
    if not isinstance(dependencies, Mapping):
        return []
    return sorted(str(name) for name in dependencies)


def has_prepublish_script(manifest: Mapping[str, Any]) -> bool:
    scripts = manifest.get("scripts")
    return isinstance(scripts, Mapping) and bool(scripts.get(PREPUBLISH_SCRIPT))


def is_available(package_manager: str) -> bool:
    return shutil.which(package_manager) is not None


Runner = Callable[..., None]


def _default_runner(args: Iterable[str], *, cwd: Path, env: Optional[dict[str, str]] = None) -> None:
    subprocess.run(list(args), cwd=str(cwd), env=env, check=True)


def prepublish(
    project_root: Path,
    package_manager: str,
    manifest: Mapping[str, Any],
    *,
    pre_release: bool = False,
    runner: Runner | None = None,
) -> bool:
    """Run ``vscode:prepublish`` when the manifest declares it.

    Returns True when the script ran.
    """
    if not has_prepublish_script(manifest):
        return False

    env = os.environ.copy()
    if pre_release:
        env["VSCE_PRE_RELEASE"] = "true"

    logger.info("Running %s %s", package_manager, PREPUBLISH_SCRIPT)
    run = runner or _default_runner
    try:
        run([package_manager, "run", PREPUBLISH_SCRIPT], cwd=project_root, env=env)
    except subprocess.CalledProcessError as exc:
        raise PrepublishError(
            f"'{package_manager} run {PREPUBLISH_SCRIPT}' failed with exit code {exc.returncode}"
        ) from exc
    return True


__all__ = [
    "PACKAGE_MANAGERS",
    "PREPUBLISH_SCRIPT",
    "PrepublishError",
    "detect_package_manager",
    "get_extension_dependencies",
    "has_prepublish_script",
    "is_available",
    "prepublish",
]
