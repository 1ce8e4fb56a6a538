"""
Filesystem helpers for qtsviz.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used when
  walking a data root and persisting manifests: directory listing, directory creation,
  write handles, fsync, and atomic renames.
- Establish the atomic write path for manifests: tmp write -> fsync -> atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem.
- All helpers are synchronous; the async file source offloads reads to a thread instead.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO


def makedirs(path: str, exist_ok: bool = True) -> None:
    """Create directories recursively (thin wrapper around os.makedirs)."""
    os.makedirs(path, exist_ok=exist_ok)


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """
    Open a file for binary write as a context manager.

    Notes:
        Caller is responsible for fsync and the atomic os.replace of the temporary
        file to its final path.
    """
    fh = open(path, "wb")
    try:
        yield fh
    finally:
        fh.close()


def fsync_file(fh: BinaryIO) -> None:
    """Flush and fsync an open file handle."""
    fh.flush()
    os.fsync(fh.fileno())


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Notes:
        Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
    """
    os.replace(src, dst)


def list_dirs(path: str) -> list[str]:
    """
    List immediate sub-directory names of a directory, sorted.

    Returns:
        list[str]: Directory names (not full paths); [] if path does not exist.
    """
    try:
        entries = list(os.scandir(path))
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(e.name for e in entries if e.is_dir())
