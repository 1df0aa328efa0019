"""Maintenance of the user-visible symlinks at the target directory root.

For payload paths "bar", "foo/bar", "baz/bar" and "foo/baz/blah" the
following links exist:

    bar -> ..data/bar
    foo -> ..data/foo
    baz -> ..data/baz

Links always point through the data symlink, never directly into a
snapshot directory, so they stay valid across swaps.
"""

import logging
import os
import posixpath
from collections.abc import Iterable
from pathlib import Path

from projector.consts import DATA_DIR_NAME
from projector.exceptions import IOFailureException
from projector.schemas.projection import FileProjection
from projector.utils.fs import remove_entry
from projector.utils.paths import SEPARATOR, top_level_segment

logger = logging.getLogger(__name__)


class VisibleLinkManager:
    """Creates and prunes the top-level symlinks consumers read through."""

    def __init__(self, target_dir: Path) -> None:
        self.target_dir = target_dir

    def create_visible_links(self, payload: dict[str, FileProjection]) -> list[str]:
        """Create a link for every top-level segment that has no entry yet.

        Existing entries, including dangling symlinks, are left untouched.

        Returns:
            Names of the links that were created

        Raises:
            IOFailureException: If an entry cannot be inspected or a link created
        """
        created: list[str] = []
        for link_name in sorted({top_level_segment(p) for p in payload}):
            visible_path = self.target_dir / link_name
            try:
                os.lstat(visible_path)
                continue
            except FileNotFoundError:
                pass
            except OSError as e:
                raise IOFailureException(f"inspect visible entry {link_name}", str(e)) from e

            try:
                os.symlink(posixpath.join(DATA_DIR_NAME, link_name), visible_path)
            except OSError as e:
                logger.error("Unable to create visible symlink %s: %s", visible_path, e)
                raise IOFailureException(f"create visible symlink {link_name}", str(e)) from e
            created.append(link_name)

        if created:
            logger.debug("Created visible symlinks in %s: %s", self.target_dir, created)
        return created

    def remove_visible_paths(self, paths: Iterable[str]) -> None:
        """Remove the top-level entries among paths.

        Nested paths are skipped: they only ever existed inside the
        superseded snapshot directory. Every path is attempted; the last
        failure is raised afterwards.

        Raises:
            IOFailureException: If at least one entry could not be removed
        """
        last_error: OSError | None = None
        for path in sorted(paths):
            if SEPARATOR in path:
                continue
            try:
                remove_entry(self.target_dir / path)
            except OSError as e:
                logger.error("Unable to prune old user-visible path %s: %s", path, e)
                last_error = e

        if last_error is not None:
            raise IOFailureException("prune old user-visible paths", str(last_error)) from last_error

    def prune_dangling_links(self, payload: dict[str, FileProjection]) -> list[str]:
        """Remove links into the data directory whose segment left the payload.

        Such links are left behind when a process dies after the swap but
        before stale links were removed. Only symlinks whose target is
        exactly ``..data/<name>`` are considered.

        Returns:
            Names of the removed links

        Raises:
            IOFailureException: If the directory cannot be listed or a link removed
        """
        wanted = {top_level_segment(p) for p in payload}
        removed: list[str] = []

        try:
            entries = list(os.scandir(self.target_dir))
        except OSError as e:
            raise IOFailureException("list target directory", str(e)) from e

        for entry in entries:
            if entry.name in wanted or entry.name.startswith(".."):
                continue
            if not entry.is_symlink():
                continue
            try:
                link_target = os.readlink(entry.path)
            except OSError as e:
                raise IOFailureException(f"read visible symlink {entry.name}", str(e)) from e
            if link_target != posixpath.join(DATA_DIR_NAME, entry.name):
                continue
            try:
                remove_entry(Path(entry.path))
            except OSError as e:
                raise IOFailureException(f"remove dangling symlink {entry.name}", str(e)) from e
            removed.append(entry.name)

        if removed:
            logger.info("Pruned dangling visible symlinks in %s: %s", self.target_dir, sorted(removed))
        return sorted(removed)
