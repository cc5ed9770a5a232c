"""Serialize package entries into a ``.vsix`` archive."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import Iterable

from ..logging import get_logger
from ..models import InMemoryFile, LocalFile, PackageFile

logger = get_logger("writer")


def write_vsix(
    files: Iterable[PackageFile],
    package_path: str | os.PathLike[str],
    *,
    force: bool = False,
) -> Path:
    """Write ``files`` into a zip archive at ``package_path``.

    The archive is built next to the target and moved into place only once
    complete, so a failed write leaves no file behind. Raises FileExistsError
    when the target exists and ``force`` is False.
    """
    target = Path(package_path)
    if target.exists() and not force:
        raise FileExistsError(f"The file already exists at {target}")
    target.parent.mkdir(parents=True, exist_ok=True)

    partial = target.with_name(f".{target.name}.partial")
    count = 0
    try:
        # files older than 1980 get the earliest zip timestamp instead of failing
        with zipfile.ZipFile(
            partial, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as archive:
            for file in files:
                if isinstance(file, LocalFile):
                    archive.write(file.local_path, arcname=file.path)
                elif isinstance(file, InMemoryFile):
                    archive.writestr(file.path, file.contents)
                else:  # pragma: no cover - PackageFile is a closed union
                    raise TypeError(f"Unsupported package entry: {file!r}")
                count += 1
        os.replace(partial, target)
    finally:
        if partial.exists():
            partial.unlink()

    logger.debug("Wrote %d entries to %s", count, target)
    return target


__all__ = ["write_vsix"]
