"""Creation and removal of timestamped snapshot directories."""

import logging
import os
import re
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from projector.consts import SNAPSHOT_DIR_MODE, SNAPSHOT_DIR_TIMESTAMP_FORMAT
from projector.exceptions import IOFailureException
from projector.utils.fs import remove_tree

logger = logging.getLogger(__name__)

# ..2016_02_01_15_04_05.<mkdtemp suffix>
SNAPSHOT_DIR_PATTERN = re.compile(r"^\.\.\d{4}_\d{2}_\d{2}_\d{2}_\d{2}_\d{2}\.[A-Za-z0-9_]+$")


class SnapshotDirectoryManager:
    """Allocates and discards snapshot directories inside a target directory."""

    def __init__(self, target_dir: Path) -> None:
        self.target_dir = target_dir

    def create(self) -> Path:
        """Create a new, uniquely named snapshot directory.

        The directory is chmod'ed to 0755 after creation so that group and
        other can traverse it regardless of the process umask.

        Returns:
            Path of the new directory

        Raises:
            IOFailureException: If the directory cannot be created or chmod'ed
        """
        prefix = datetime.now(UTC).strftime(SNAPSHOT_DIR_TIMESTAMP_FORMAT)
        try:
            ts_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=self.target_dir))
        except OSError as e:
            logger.error("Unable to create new snapshot directory in %s: %s", self.target_dir, e)
            raise IOFailureException("create snapshot directory", str(e)) from e

        try:
            os.chmod(ts_dir, SNAPSHOT_DIR_MODE)
        except OSError as e:
            logger.error("Unable to set mode on snapshot directory %s: %s", ts_dir, e)
            self.discard(ts_dir)
            raise IOFailureException("set mode on snapshot directory", str(e)) from e

        logger.debug("Created snapshot directory %s", ts_dir)
        return ts_dir

    def remove(self, ts_dir: Path) -> None:
        """Recursively delete a snapshot directory; absence is not an error.

        Raises:
            IOFailureException: If the directory exists but cannot be deleted
        """
        try:
            remove_tree(ts_dir)
        except OSError as e:
            raise IOFailureException(f"remove snapshot directory {ts_dir.name}", str(e)) from e

    def discard(self, ts_dir: Path) -> None:
        """Best-effort removal used while unwinding a failed write."""
        try:
            remove_tree(ts_dir)
        except OSError as e:
            logger.warning("Failed to discard snapshot directory %s: %s", ts_dir, e)

    def list_snapshot_dirs(self) -> list[str]:
        """Return the names of all snapshot directories in the target directory."""
        try:
            entries = list(os.scandir(self.target_dir))
        except OSError as e:
            raise IOFailureException("list target directory", str(e)) from e

        return sorted(
            entry.name
            for entry in entries
            if SNAPSHOT_DIR_PATTERN.match(entry.name) and entry.is_dir(follow_symlinks=False)
        )

    def prune_orphans(self, keep: str) -> list[str]:
        """Remove every snapshot directory except the one named keep.

        Snapshot directories are orphaned when a process dies between
        creating a directory and swapping the data symlink, or when a
        superseded directory could not be deleted.

        Returns:
            Names of the removed directories

        Raises:
            IOFailureException: If listing or any removal fails
        """
        removed: list[str] = []
        for name in self.list_snapshot_dirs():
            if name == keep:
                continue
            self.remove(self.target_dir / name)
            removed.append(name)

        if removed:
            logger.info("Pruned orphaned snapshot directories in %s: %s", self.target_dir, removed)
        return removed
