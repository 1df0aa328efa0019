"""Strategies for replacing the data symlink with the temporary symlink."""

import logging
import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from projector.utils.fs import read_link, remove_entry

logger = logging.getLogger(__name__)


class SwapStrategy(ABC):
    """Publishes a new snapshot by replacing the data symlink."""

    name: str
    atomic: bool

    @abstractmethod
    def swap(self, new_link: Path, data_link: Path, ts_dir_name: str) -> None:
        """Make data_link point at ts_dir_name.

        Args:
            new_link: Temporary symlink already pointing at ts_dir_name
            data_link: The data symlink consumers resolve
            ts_dir_name: Name of the new snapshot directory

        Raises:
            OSError: If the data symlink could not be replaced
        """
        raise NotImplementedError


class RenameSwapStrategy(SwapStrategy):
    """Renames the temporary symlink over the data symlink in one step.

    rename(2) replaces the destination atomically, so every reader sees
    either the old or the new target.
    """

    name = "rename"
    atomic = True

    def swap(self, new_link: Path, data_link: Path, ts_dir_name: str) -> None:
        os.replace(new_link, data_link)


class RecreateSwapStrategy(SwapStrategy):
    """Removes the data symlink and creates it again.

    For platforms that cannot rename a symlink over an existing one. The
    data symlink is briefly absent between the two calls. If it cannot be
    recreated for the new snapshot, it is pointed back at the previous one
    before the error propagates.
    """

    name = "recreate"
    atomic = False

    def swap(self, new_link: Path, data_link: Path, ts_dir_name: str) -> None:
        old_target = read_link(data_link)
        remove_entry(data_link)
        try:
            os.symlink(ts_dir_name, data_link, target_is_directory=True)
        except OSError:
            if old_target is not None:
                logger.warning("Restoring %s to %s after failed swap", data_link, old_target)
                os.symlink(old_target, data_link, target_is_directory=True)
            raise

        # data_link already names the new snapshot
        try:
            remove_entry(new_link)
        except OSError as e:
            logger.warning("Unable to remove temporary symlink %s: %s", new_link, e)


_STRATEGIES: dict[str, type[SwapStrategy]] = {
    RenameSwapStrategy.name: RenameSwapStrategy,
    RecreateSwapStrategy.name: RecreateSwapStrategy,
}


def select_swap_strategy(name: str = "auto") -> SwapStrategy:
    """Return the swap strategy for name, detecting the platform for "auto".

    Raises:
        ValueError: If name is not a known strategy
    """
    if name == "auto":
        name = RecreateSwapStrategy.name if sys.platform == "win32" else RenameSwapStrategy.name

    try:
        strategy = _STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown swap strategy {name!r}") from None

    if not strategy.atomic:
        logger.warning(
            "Using non-atomic swap strategy %r; ..data is briefly absent during updates",
            strategy.name,
        )
    return strategy
