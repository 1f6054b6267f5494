"""
Zip archive primitives.

Only the subset of zip behaviour the repackaging pipeline needs: packing a
directory tree into a deflated archive with explicit directory entries, and
extracting an archive while refusing entries that would land outside the
destination directory.
"""

from __future__ import annotations

import os
import shutil
import zipfile
from pathlib import Path, PurePosixPath, PureWindowsPath

from ..core.config import get_settings
from ..core.logging import get_logger

logger = get_logger(__name__)

ENTRY_MODE = 0o755
# MS-DOS directory attribute bit
_DOS_DIRECTORY = 0x10


def entry_name(relative: Path, separator: str | None = None) -> str:
    """Join the normal components of ``relative`` into a zip entry name.

    Args:
        relative: Path relative to the archive root
        separator: Component separator; defaults to the configured policy

    Returns:
        Entry name without leading or trailing separators
    """
    sep = separator if separator is not None else get_settings().entry_separator
    parts = [p for p in relative.parts if p not in ("", ".", "..", relative.anchor)]
    return sep.join(parts)


def _zip_info(name: str, is_dir: bool) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name + "/" if is_dir else name)
    info.compress_type = zipfile.ZIP_STORED if is_dir else zipfile.ZIP_DEFLATED
    if is_dir:
        info.external_attr = ((0o040000 | ENTRY_MODE) << 16) | _DOS_DIRECTORY
    else:
        info.external_attr = (0o100000 | ENTRY_MODE) << 16
    return info


def _raise(error: OSError) -> None:
    raise error


def zip_dir(source_dir: str | Path, archive_path: str | Path, separator: str | None = None) -> Path:
    """Pack the tree under ``source_dir`` into a new archive at ``archive_path``.

    Files become deflated entries named relative to ``source_dir``; every
    non-root directory is written as an explicit directory entry. Each file is
    read whole before it is written, so memory peaks at the largest file.
    A partially written archive is left in place if an error occurs.

    Raises:
        OSError: If the source tree or any entry in it cannot be read, or the
            archive cannot be written
    """
    prefix = Path(source_dir)
    archive = Path(archive_path)
    logger.debug("Zipping directory", source=str(prefix), archive=str(archive))

    entries = 0
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for dirpath, dirnames, filenames in os.walk(prefix, onerror=_raise):
            dirnames.sort()
            current = Path(dirpath)
            relative = current.relative_to(prefix)
            if relative.parts:
                zf.writestr(_zip_info(entry_name(relative, separator), is_dir=True), b"")
                entries += 1
            for filename in sorted(filenames):
                file_path = current / filename
                if not file_path.is_file():
                    continue
                with open(file_path, "rb") as f:
                    data = f.read()
                zf.writestr(_zip_info(entry_name(relative / filename, separator), is_dir=False), data)
                entries += 1

    logger.debug("Zipped directory", archive=str(archive), entries=entries)
    return archive


def enclosed_name(name: str) -> PurePosixPath | None:
    """Return a safe relative path for an entry name, or None if it escapes.

    Rejects NUL bytes, absolute names, drive-qualified names and any ``..``
    that climbs above the archive root.
    """
    if "\0" in name:
        return None
    normalized = name.replace("\\", "/")
    if normalized.startswith("/") or PureWindowsPath(name).drive:
        return None

    parts: list[str] = []
    for part in PurePosixPath(normalized).parts:
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(part)
    if not parts:
        return None
    return PurePosixPath(*parts)


def unzip(archive_path: str | Path, dest_dir: str | Path) -> list[Path]:
    """Extract ``archive_path`` into ``dest_dir``.

    Entries whose names cannot be confined under ``dest_dir`` are skipped with
    a warning; extraction continues with the next entry.

    Returns:
        Paths of the files written

    Raises:
        OSError: If the archive cannot be read or a file cannot be written
        zipfile.BadZipFile: If ``archive_path`` is not a zip archive
    """
    dest = Path(dest_dir)
    logger.debug("Unzipping archive", archive=str(archive_path), dest=str(dest))

    written: list[Path] = []
    with zipfile.ZipFile(archive_path, "r") as zf:
        for info in zf.infolist():
            relative = enclosed_name(info.filename)
            if relative is None:
                logger.warning("Skipping unsafe zip entry", entry=info.filename)
                continue

            out_path = dest.joinpath(*relative.parts)
            if info.is_dir():
                out_path.mkdir(parents=True, exist_ok=True)
                continue

            out_path.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info, "r") as src, open(out_path, "wb") as dst:
                shutil.copyfileobj(src, dst)
            written.append(out_path)

    logger.debug("Unzipped archive", archive=str(archive_path), files=len(written))
    return written
