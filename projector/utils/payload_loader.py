"""Build payloads from files on disk."""

import os
import stat
from pathlib import Path

from projector.schemas.projection import FileProjection


def load_payload_from_directory(
    source_dir: Path, mode: int | None = None
) -> dict[str, FileProjection]:
    """Read every regular file below source_dir into a payload.

    Hidden bookkeeping entries (names starting with '..') and symlinks are
    skipped, so a projected target directory can not be fed back into itself.

    Args:
        source_dir: Directory to read
        mode: Permission bits for every entry; each file's own bits when None

    Returns:
        Payload keyed by '/'-separated paths relative to source_dir

    Raises:
        OSError: If a file cannot be read
    """
    payload: dict[str, FileProjection] = {}
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = [d for d in dirnames if not d.startswith("..")]
        for name in filenames:
            if name.startswith(".."):
                continue
            full_path = Path(dirpath) / name
            st = os.lstat(full_path)
            if not stat.S_ISREG(st.st_mode):
                continue
            relative = full_path.relative_to(source_dir).as_posix()
            payload[relative] = FileProjection(
                data=full_path.read_bytes(),
                mode=stat.S_IMODE(st.st_mode) if mode is None else mode,
            )

    return payload
