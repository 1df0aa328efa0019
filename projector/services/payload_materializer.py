"""Writes payload entries into a snapshot directory."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from projector.exceptions import IOFailureException
from projector.schemas.projection import FileProjection
from projector.utils.fs import write_file
from projector.utils.paths import SEPARATOR

logger = logging.getLogger(__name__)

# Intermediate directories; the file's own mode restricts access
INTERMEDIATE_DIR_MODE = 0o777


class PayloadMaterializer:
    """Materializes a clean payload as plain files below a directory.

    Entries are independent of each other, so with max_workers > 1 they are
    written concurrently. The first failure aborts the materialization; the
    caller is expected to discard the whole directory.
    """

    def __init__(self, max_workers: int = 1) -> None:
        """Initialize materializer.

        Args:
            max_workers: Number of threads used to write entries. 1 writes
                sequentially on the calling thread.
        """
        self.max_workers = max_workers

    def materialize(self, payload: dict[str, FileProjection], target_dir: Path) -> None:
        """Write every payload entry into target_dir.

        Args:
            payload: Clean payload keyed by normalized paths
            target_dir: Existing, not yet published snapshot directory

        Raises:
            IOFailureException: If any directory or file cannot be written
        """
        if self.max_workers <= 1 or len(payload) <= 1:
            for user_visible_path, projection in payload.items():
                self._write_entry(target_dir, user_visible_path, projection)
            return

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="projector-materialize"
        ) as executor:
            futures = [
                executor.submit(self._write_entry, target_dir, user_visible_path, projection)
                for user_visible_path, projection in payload.items()
            ]
            # Surface the first failure in submission order
            for future in futures:
                future.result()

    def _write_entry(
        self, target_dir: Path, user_visible_path: str, projection: FileProjection
    ) -> None:
        """Write a single entry, creating its parent directories."""
        full_path = target_dir.joinpath(*user_visible_path.split(SEPARATOR))

        try:
            os.makedirs(full_path.parent, mode=INTERMEDIATE_DIR_MODE, exist_ok=True)
        except OSError as e:
            logger.error("Unable to create directory %s: %s", full_path.parent, e)
            raise IOFailureException(f"create directory for {user_visible_path}", str(e)) from e

        try:
            write_file(full_path, projection.data, projection.mode)
        except OSError as e:
            logger.error(
                "Unable to write file %s with mode %#o: %s", full_path, projection.mode, e
            )
            raise IOFailureException(f"write {user_visible_path}", str(e)) from e

        logger.debug("Wrote %s (%d bytes, mode %#o)", full_path, len(projection.data), projection.mode)
