"""Atomic projection of a payload into a target directory.

The visible files in the target directory are symlinks into the data
directory. The actual files live in a hidden timestamped snapshot
directory, which the ``..data`` symlink points at:

    <target>/podName   -> ..data/podName
    <target>/user      -> ..data/user
    <target>/..data    -> ..2016_02_01_15_04_05.k8d2l1x_/
    <target>/..2016_02_01_15_04_05.k8d2l1x_/podName
    <target>/..2016_02_01_15_04_05.k8d2l1x_/user/labels

Replacing ``..data`` with a single rename switches every visible file to
the new version at once. Consumers can watch ``..data`` with inotify to be
notified of updates.
"""

import logging
import os
import stat
import threading
import time
from pathlib import Path

from prometheus_client import Counter, Histogram

from projector.consts import DATA_DIR_NAME, NEW_DATA_DIR_NAME
from projector.exceptions import (
    CleanupIncompleteException,
    IOFailureException,
    ProjectionException,
    TargetNotFoundException,
)
from projector.schemas.projection import FileProjection, Payload, WriteResult
from projector.services.payload_materializer import PayloadMaterializer
from projector.services.snapshot_differ import paths_to_remove, should_write_payload
from projector.services.snapshot_directory_manager import SnapshotDirectoryManager
from projector.services.swap_strategy import SwapStrategy, select_swap_strategy
from projector.services.visible_link_manager import VisibleLinkManager
from projector.utils.fs import read_link, remove_entry
from projector.utils.paths import validate_payload

logger = logging.getLogger(__name__)

PROJECTOR_WRITES_TOTAL = Counter(
    "projector_writes_total",
    "Total projection writes by outcome",
    ["status"],
)
PROJECTOR_WRITE_DURATION_SECONDS = Histogram(
    "projector_write_duration_seconds",
    "Duration of projection writes in seconds",
)
PROJECTOR_REMOVED_PATHS_TOTAL = Counter(
    "projector_removed_paths_total",
    "Total paths dropped from projections",
)


def record_write(status: str, duration: float | None = None) -> None:
    """Record the outcome of a write."""
    try:
        PROJECTOR_WRITES_TOTAL.labels(status=status).inc()
        if duration is not None:
            PROJECTOR_WRITE_DURATION_SECONDS.observe(duration)
    except Exception as e:
        logger.error("Error recording write metric: %s", e)


class AtomicWriter:
    """Atomically projects payloads into a target directory.

    The writer reserves every name in the target directory that starts
    with ``..``. It offers no concurrency guarantees: callers must ensure
    that at most one write() runs against a target directory at a time.
    ``lock`` is provided as a handle callers can hold around write(); the
    writer never acquires it itself.
    """

    def __init__(
        self,
        target_dir: Path | str,
        swap_strategy: SwapStrategy | None = None,
        materializer: PayloadMaterializer | None = None,
        prune_orphans: bool = True,
    ) -> None:
        """Initialize writer for an existing target directory.

        Args:
            target_dir: Directory to project into; must already exist.
            swap_strategy: How the data symlink is replaced. Detected from
                the platform when None.
            materializer: Writer for payload entries. Sequential when None.
            prune_orphans: Remove orphaned snapshot directories and
                dangling visible links after each successful swap.

        Raises:
            TargetNotFoundException: If target_dir does not exist or is not a directory
        """
        self.target_dir = Path(target_dir)
        if not self.target_dir.is_dir():
            raise TargetNotFoundException(str(self.target_dir))

        self.swap_strategy = swap_strategy or select_swap_strategy()
        self.materializer = materializer or PayloadMaterializer()
        self.prune_orphans = prune_orphans
        self.snapshot_manager = SnapshotDirectoryManager(self.target_dir)
        self.link_manager = VisibleLinkManager(self.target_dir)
        self.lock = threading.Lock()

        self.data_link = self.target_dir / DATA_DIR_NAME
        self.new_data_link = self.target_dir / NEW_DATA_DIR_NAME

    def write(self, payload: Payload) -> WriteResult:
        """Atomically project payload into the target directory.

        The algorithm is:

        1. The payload is validated; nothing is touched if it is invalid.
        2. The current snapshot directory is read from the data symlink.
        3. The current snapshot is walked to find paths the payload dropped,
           and compared with the payload to decide whether to write at all.
        4. A new snapshot directory is created.
        5. The payload is written to the new snapshot directory.
        6. Symlinks for new top-level entries are created.
        7. A temporary symlink to the new snapshot directory is created.
        8. The temporary symlink replaces the data symlink.
        9. Dropped top-level entries are removed.
        10. The previous snapshot directory is removed.
        11. Orphaned snapshot directories and dangling links are pruned.

        Args:
            payload: Mapping of relative paths to file projections

        Returns:
            WriteResult describing the active snapshot after the call

        Raises:
            InvalidPathException: If a payload path is invalid
            IOFailureException: If a filesystem operation failed before the
                swap; the previous version is still active
            CleanupIncompleteException: If the new version is active but
                pruning of stale state failed
        """
        start_time = time.perf_counter()
        try:
            result = self._write(payload)
        except CleanupIncompleteException:
            record_write("cleanup_incomplete", time.perf_counter() - start_time)
            raise
        except Exception:
            record_write("failed", time.perf_counter() - start_time)
            raise

        record_write("written" if result.changed else "unchanged", time.perf_counter() - start_time)
        return result

    def _write(self, payload: Payload) -> WriteResult:
        # (1)
        try:
            clean_payload = validate_payload(payload)
        except ProjectionException as e:
            logger.error("Invalid payload for %s: %s", self.target_dir, e)
            raise

        # (2)
        old_ts_dir = self.current_snapshot()

        removals: set[str] = set()
        if old_ts_dir is not None:
            old_ts_path = self.target_dir / old_ts_dir

            # (3)
            removals = paths_to_remove(clean_payload, old_ts_path)
            if not should_write_payload(clean_payload, old_ts_path) and not removals:
                logger.debug("No update required for target directory %s", self.target_dir)
                return WriteResult(
                    changed=False, snapshot_dir=old_ts_dir, previous_snapshot_dir=old_ts_dir
                )
            logger.info("Write required for target directory %s", self.target_dir)

        # (4)
        ts_dir = self.snapshot_manager.create()
        ts_dir_name = ts_dir.name

        # (5)
        try:
            self.materializer.materialize(clean_payload, ts_dir)
        except ProjectionException:
            logger.error("Unable to write payload to snapshot directory %s", ts_dir)
            self.snapshot_manager.discard(ts_dir)
            raise
        logger.debug("Wrote %d entries to snapshot directory %s", len(clean_payload), ts_dir)

        # (6)
        try:
            self.link_manager.create_visible_links(clean_payload)
        except ProjectionException:
            logger.error("Unable to create visible symlinks in %s", self.target_dir)
            self.snapshot_manager.discard(ts_dir)
            raise

        # (7)
        try:
            remove_entry(self.new_data_link)
            os.symlink(ts_dir_name, self.new_data_link, target_is_directory=True)
        except OSError as e:
            logger.error("Unable to create symbolic link for atomic update: %s", e)
            self.snapshot_manager.discard(ts_dir)
            raise IOFailureException("create temporary data symlink", str(e)) from e

        # (8)
        try:
            self.swap_strategy.swap(self.new_data_link, self.data_link, ts_dir_name)
        except OSError as e:
            logger.error("Unable to replace data symlink %s: %s", self.data_link, e)
            self._discard_link(self.new_data_link)
            self.snapshot_manager.discard(ts_dir)
            raise IOFailureException("replace data symlink", str(e)) from e

        logger.info(
            "Switched %s from %s to %s", self.target_dir, old_ts_dir or "<none>", ts_dir_name
        )
        result = WriteResult(
            changed=True,
            snapshot_dir=ts_dir_name,
            previous_snapshot_dir=old_ts_dir,
            removed_paths=removals,
        )

        errors = self._prune(clean_payload, removals, old_ts_dir, ts_dir_name)
        if errors:
            raise CleanupIncompleteException("; ".join(errors), result)

        return result

    def _prune(
        self,
        clean_payload: dict[str, FileProjection],
        removals: set[str],
        old_ts_dir: str | None,
        ts_dir_name: str,
    ) -> list[str]:
        """Run the post-swap cleanup steps and collect their failures.

        The new version is already active; every step is attempted even when
        an earlier one failed.
        """
        errors: list[str] = []

        # (9)
        try:
            self.link_manager.remove_visible_paths(removals)
            PROJECTOR_REMOVED_PATHS_TOTAL.inc(len(removals))
        except IOFailureException as e:
            logger.error("Unable to remove old visible symlinks: %s", e)
            errors.append(e.message)

        # (10)
        if old_ts_dir is not None:
            try:
                self.snapshot_manager.remove(self.target_dir / old_ts_dir)
            except IOFailureException as e:
                logger.error("Unable to remove old data directory %s: %s", old_ts_dir, e)
                errors.append(e.message)

        # (11)
        if self.prune_orphans:
            try:
                self.snapshot_manager.prune_orphans(keep=ts_dir_name)
                self.link_manager.prune_dangling_links(clean_payload)
            except IOFailureException as e:
                logger.warning("Unable to prune orphaned state in %s: %s", self.target_dir, e)
                errors.append(e.message)

        return errors

    def _discard_link(self, link: Path) -> None:
        """Best-effort removal of a symlink while unwinding a failed write."""
        try:
            remove_entry(link)
        except OSError as e:
            logger.warning("Failed to remove symlink %s: %s", link, e)

    def current_snapshot(self) -> str | None:
        """Return the name of the active snapshot directory, if any.

        Raises:
            IOFailureException: If the data symlink exists but cannot be read
        """
        try:
            return read_link(self.data_link)
        except OSError as e:
            logger.error("Unable to read link for data directory: %s", e)
            raise IOFailureException("read data directory symlink", str(e)) from e

    def read_payload(self) -> dict[str, FileProjection]:
        """Read the active version back as a payload.

        Returns:
            Projections keyed by '/'-separated relative path; empty if
            nothing has been projected yet

        Raises:
            IOFailureException: If the active snapshot cannot be read
        """
        ts_dir_name = self.current_snapshot()
        if ts_dir_name is None:
            return {}

        ts_dir = self.target_dir / ts_dir_name
        payload: dict[str, FileProjection] = {}
        try:
            for dirpath, _dirnames, filenames in os.walk(ts_dir):
                for name in filenames:
                    full_path = Path(dirpath) / name
                    relative = full_path.relative_to(ts_dir).as_posix()
                    payload[relative] = FileProjection(
                        data=full_path.read_bytes(),
                        mode=stat.S_IMODE(full_path.stat().st_mode),
                    )
        except OSError as e:
            raise IOFailureException(f"read snapshot directory {ts_dir_name}", str(e)) from e

        return dict(sorted(payload.items()))


__all__ = ["AtomicWriter", "record_write"]
