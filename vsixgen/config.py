"""Configuration loading for vsixgen (.vsixgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml

CONFIG_FILE_NAME = ".vsixgen.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class VsixGenConfig:
    """Packaging defaults for one project, as read from .vsixgen.yml."""

    root: Path
    ignore_file: Optional[str] = None
    readme: Optional[str] = None
    package_path: Optional[str] = None
    pre_release: bool = False
    target: Optional[str] = None
    skip_scripts: bool = False
    package_manager: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)


def load_config(config_path: Path) -> VsixGenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return VsixGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    return VsixGenConfig(
        root=root,
        ignore_file=_as_str(data.get("ignore_file")),
        readme=_as_str(data.get("readme")),
        package_path=_as_str(data.get("package_path")),
        pre_release=_as_bool(data.get("pre_release")) or False,
        target=_as_str(data.get("target")),
        skip_scripts=_as_bool(data.get("skip_scripts")) or False,
        package_manager=_as_str(data.get("package_manager")),
        dependencies=_as_str_list(data.get("dependencies")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    if config_path.name != CONFIG_FILE_NAME:
        return (config_path.parent / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


def merge_option(cli_value: Any, config_value: Any, default: Any) -> Any:
    """CLI values win over config values, which win over built-in defaults."""
    if cli_value is not None:
        return cli_value
    if config_value is not None:
        return config_value
    return default


__all__ = ["CONFIG_FILE_NAME", "ConfigError", "VsixGenConfig", "load_config", "merge_option"]
