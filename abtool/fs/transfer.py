"""
Filesystem transfer primitives.

Recursive directory copy that merges into existing directories, and a verified
move that only deletes the source once the copy's digest matches.
"""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path

from ..core.exceptions import IntegrityError, PreconditionError
from ..core.logging import get_logger

logger = get_logger(__name__)

_CHUNK_SIZE = 8192


def md5_file(path: str | Path) -> str:
    """Compute the MD5 hex digest of a file's contents."""
    md5 = hashlib.md5()
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            md5.update(chunk)
    return md5.hexdigest()


def copy_dir(src: str | Path, dst: str | Path) -> None:
    """Copy ``src`` to ``dst`` recursively.

    A plain-file ``src`` is copied as a single file. A directory ``src`` is
    copied into ``dst``, which is created when missing and merged into when it
    already is a directory; files already in ``dst`` are kept unless
    overwritten by a file of the same name.

    Raises:
        PreconditionError: If ``src`` is missing or ``dst`` exists but is not a directory
    """
    src_path = Path(src)
    dst_path = Path(dst)
    logger.debug("Copying directory", src=str(src_path), dst=str(dst_path))

    if not src_path.exists():
        raise PreconditionError(message="Copy source does not exist", path=str(src_path))

    if not src_path.is_dir():
        shutil.copyfile(src_path, dst_path)
        return

    if dst_path.exists():
        if not dst_path.is_dir():
            raise PreconditionError(
                message="Copy destination exists and is not a directory", path=str(dst_path)
            )
    else:
        dst_path.mkdir()

    _copy_dir_content(src_path, dst_path)


def _copy_dir_content(src: Path, dst: Path) -> None:
    for entry in sorted(os.scandir(src), key=lambda e: e.name):
        target = dst / entry.name
        if entry.is_dir():
            copy_dir(entry.path, target)
        else:
            shutil.copyfile(entry.path, target)


def cut_file(src: str | Path, dst: str | Path) -> Path:
    """Move ``src`` to ``dst`` by copy, digest check, then delete.

    The source is removed only after the MD5 digest of the freshly written
    destination equals the source's. On mismatch the source is left intact.

    Returns:
        The destination path

    Raises:
        PreconditionError: If ``src`` does not exist
        IntegrityError: If the digests differ
    """
    src_path = Path(src)
    dst_path = Path(dst)
    logger.debug("Cutting file", src=str(src_path), dst=str(dst_path))

    if not src_path.is_file():
        raise PreconditionError(message="Move source does not exist", path=str(src_path))

    shutil.copyfile(src_path, dst_path)

    src_digest = md5_file(src_path)
    dst_digest = md5_file(dst_path)
    if src_digest != dst_digest:
        raise IntegrityError(
            message="md5 mismatch",
            source=str(src_path),
            destination=str(dst_path),
            source_digest=src_digest,
            destination_digest=dst_digest,
        )

    src_path.unlink()
    logger.debug("Cut file", src=str(src_path), dst=str(dst_path), md5=dst_digest)
    return dst_path
