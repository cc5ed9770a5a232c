"""Minimal semantic version parsing for manifest checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

_IDENT = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_SEMVER_PATTERN = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

# engines.vscode accepts a deliberately small subset of range syntax
ENGINE_RANGE_PATTERN = re.compile(r"^\*$|^(\^|>=)?((\d+)|x)\.((\d+)|x)\.((\d+)|x)(-.*)?$")


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)


def parse_version(value: object) -> Optional[Version]:
    """Parse a strict semver string, returning None when it is not one."""
    if not isinstance(value, str):
        return None
    match = _SEMVER_PATTERN.match(value.strip())
    if match is None:
        return None
    major, minor, patch, prerelease, build = match.groups()
    return Version(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
    )


def is_valid_version(value: object) -> bool:
    return parse_version(value) is not None


def is_valid_engine_range(value: str) -> bool:
    return ENGINE_RANGE_PATTERN.match(value) is not None


def engine_min_version(value: str) -> Optional[Tuple[int, int, int]]:
    """Return the lowest ``major.minor.patch`` an engine range admits.

    Wildcard components count as zero. Returns None for ``*`` and for
    strings outside the engine range grammar.
    """
    match = ENGINE_RANGE_PATTERN.match(value)
    if match is None or value == "*":
        return None
    parts = (match.group(2), match.group(4), match.group(6))
    return tuple(0 if part == "x" else int(part) for part in parts)  # type: ignore[return-value]


def engine_satisfies_minimum(value: str, minimum: Tuple[int, int, int]) -> bool:
    """True when the engine range only admits versions at or above ``minimum``.

    Prerelease tags on the engine range are accepted, so ``^1.74.0-insider``
    satisfies a ``1.74.0`` minimum.
    """
    lowest = engine_min_version(value)
    if lowest is None:
        return False
    return lowest >= minimum


__all__ = [
    "ENGINE_RANGE_PATTERN",
    "Version",
    "engine_min_version",
    "engine_satisfies_minimum",
    "is_valid_engine_range",
    "is_valid_version",
    "parse_version",
]
