"""Filesystem utilities."""

import os
import shutil
from pathlib import Path


def write_file(target_path: Path, content: bytes, mode: int) -> None:
    """Write content to target_path and force its permission bits to mode.

    The file is created with mode, which open(2) intersects with the
    process umask, so an explicit chmod follows to grant exactly the
    requested bits. If writing fails the partial file is removed and the
    exception propagates.

    Args:
        target_path: File to create or truncate; the parent must exist
        content: Bytes to write
        mode: Permission bits for the final file
    """
    fd = os.open(target_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
    except Exception:
        try:
            os.unlink(target_path)
        except OSError:
            pass
        raise

    os.chmod(target_path, mode)


def read_link(link_path: Path) -> str | None:
    """Return the target of a symlink, or None if the link does not exist.

    Raises:
        OSError: For any failure other than the link being absent
    """
    try:
        return os.readlink(link_path)
    except FileNotFoundError:
        return None


def remove_tree(path: Path) -> None:
    """Recursively delete a directory; an absent directory is not an error."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


def remove_entry(path: Path) -> None:
    """Delete a file or symlink; an absent entry is not an error."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
