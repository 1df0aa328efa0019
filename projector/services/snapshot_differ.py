"""Comparison of a proposed payload against the active snapshot directory.

Both functions are read-only. Relative paths they report always use '/'
as separator so they can be compared with clean payload keys.
"""

import logging
import os
import stat
from pathlib import Path

from projector.exceptions import IOFailureException
from projector.schemas.projection import FileProjection
from projector.utils.paths import SEPARATOR, ancestor_paths

logger = logging.getLogger(__name__)


def should_write_payload(payload: dict[str, FileProjection], snapshot_dir: Path) -> bool:
    """Return whether any payload entry differs from what is on disk.

    Args:
        payload: Clean payload keyed by normalized paths
        snapshot_dir: Currently active snapshot directory

    Returns:
        True as soon as one entry is missing or differs in content or mode

    Raises:
        IOFailureException: If an existing file cannot be inspected
    """
    for user_visible_path, projection in payload.items():
        if should_write_file(snapshot_dir.joinpath(*user_visible_path.split(SEPARATOR)), projection):
            logger.debug("Payload entry %s differs from %s", user_visible_path, snapshot_dir)
            return True

    return False


def should_write_file(path: Path, projection: FileProjection) -> bool:
    """Return whether a new version of a single file must be written."""
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        raise IOFailureException(f"inspect {path}", str(e)) from e

    if not stat.S_ISREG(st.st_mode):
        return True

    if stat.S_IMODE(st.st_mode) != projection.mode:
        return True

    try:
        content_on_fs = path.read_bytes()
    except OSError as e:
        raise IOFailureException(f"read {path}", str(e)) from e

    return content_on_fs != projection.data


def paths_to_remove(payload: dict[str, FileProjection], snapshot_dir: Path) -> set[str]:
    """Determine which paths of the active snapshot the payload no longer needs.

    Every file and directory below snapshot_dir is collected; the payload
    keys together with all of their ancestor directories are subtracted, so
    directories that still hold referenced files are never reported.

    Args:
        payload: Clean payload keyed by normalized paths
        snapshot_dir: Currently active snapshot directory

    Returns:
        Relative paths to remove; empty if snapshot_dir does not exist

    Raises:
        IOFailureException: If the snapshot directory cannot be walked
    """
    walk_errors: list[OSError] = []
    on_disk: set[str] = set()

    for dirpath, dirnames, filenames in os.walk(snapshot_dir, onerror=walk_errors.append):
        relative_dir = os.path.relpath(dirpath, snapshot_dir)
        for name in dirnames + filenames:
            relative = name if relative_dir == "." else os.path.join(relative_dir, name)
            on_disk.add(relative.replace(os.sep, SEPARATOR))

    for error in walk_errors:
        # The walk root vanishing just means there is nothing to remove
        if isinstance(error, FileNotFoundError) and Path(error.filename or "") == snapshot_dir:
            return set()
        raise IOFailureException(f"walk snapshot directory {snapshot_dir}", str(error)) from error

    referenced: set[str] = set()
    for user_visible_path in payload:
        referenced.update(ancestor_paths(user_visible_path))

    result = on_disk - referenced
    if result:
        logger.info("Paths to remove from %s: %s", snapshot_dir, sorted(result))

    return result
