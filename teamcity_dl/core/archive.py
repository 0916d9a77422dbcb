"""Zip extraction that refuses to write outside the destination directory."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import zipfile
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional, Union

from ..common.constants import EXTRACT_CHUNK_SIZE
from ..common.errors import ArchiveFormatError, UnsafeArchivePathError

logger = logging.getLogger(__name__)


def is_unsafe_entry_name(name: str) -> bool:
    """Reject absolute names and names starting with a parent reference.

    Joining an absolute name onto the destination would silently replace the
    destination, so these are refused before any path arithmetic happens.
    """
    if name.startswith(("/", "\\")):
        return True
    if PurePosixPath(name).is_absolute():
        return True
    windows = PureWindowsPath(name)
    if windows.drive or windows.root:
        return True
    parts = name.replace("\\", "/").split("/")
    return bool(parts) and parts[0] == ".."


def resolve_entry_path(dest_root: Path, name: str, is_dir: bool = False) -> Path:
    """Return the absolute target for ``name`` under the already resolved ``dest_root``.

    Only a directory entry may resolve to ``dest_root`` itself; a file there
    would replace the extraction directory.
    """
    if is_unsafe_entry_name(name):
        raise UnsafeArchivePathError(name)
    target = (dest_root / name).resolve()
    if target == dest_root:
        if not is_dir:
            raise UnsafeArchivePathError(name)
    elif dest_root not in target.parents:
        raise UnsafeArchivePathError(name)
    return target


def _copy_member(zip_ref: zipfile.ZipFile, member: zipfile.ZipInfo, target: Path) -> None:
    try:
        with zip_ref.open(member, "r") as source, target.open("wb") as dest:
            shutil.copyfileobj(source, dest, EXTRACT_CHUNK_SIZE)
    except zipfile.BadZipFile as exc:
        raise ArchiveFormatError(f"corrupt entry {member.filename!r}: {exc}") from exc


def _apply_mode(member: zipfile.ZipInfo, target: Path) -> None:
    perm = stat.S_IMODE(member.external_attr >> 16)
    if not perm:
        return
    # Keep owner read/write so a re-run can overwrite the file.
    perm |= stat.S_IRUSR | stat.S_IWUSR
    try:
        os.chmod(target, perm)
    except OSError as exc:
        logger.debug("Could not apply mode %o to %s: %s", perm, target, exc)


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    *,
    log: Optional[logging.Logger] = None,
) -> int:
    """Extract every entry of the zip at ``archive_path`` below ``destination``.

    Entries are processed in archive order. The first entry whose target
    would escape ``destination`` aborts the extraction with
    :class:`UnsafeArchivePathError`; entries already written stay on disk.
    Returns the number of file (non-directory) entries written.
    """
    log = log or logger
    try:
        zip_ref = zipfile.ZipFile(archive_path, "r")
    except zipfile.BadZipFile as exc:
        raise ArchiveFormatError(f"{archive_path} is not a valid zip archive: {exc}") from exc

    files_written = 0
    with zip_ref:
        dest_root = Path(destination).resolve()
        for member in zip_ref.infolist():
            # ZipInfo.is_dir() indexes the last character of the name
            is_dir = bool(member.filename) and member.is_dir()
            target = resolve_entry_path(dest_root, member.filename, is_dir)
            if is_dir:
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            _copy_member(zip_ref, member, target)
            _apply_mode(member, target)
            files_written += 1
            log.debug("Extracted %s", member.filename)
    return files_written


def count_files(directory: Union[str, Path]) -> int:
    """Count regular files below ``directory``; a missing directory counts as empty."""
    root = Path(directory)
    if not root.is_dir():
        return 0
    return sum(1 for path in root.rglob("*") if path.is_file())
