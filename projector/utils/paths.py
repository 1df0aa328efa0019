"""Validation and normalization of logical payload paths.

Logical paths always use ``/`` as separator, independent of the platform.
"""

import logging
import os
import posixpath
from collections.abc import Iterator

from projector.consts import MAX_FILE_NAME_LENGTH, MAX_PATH_LENGTH
from projector.exceptions import InvalidPathException
from projector.schemas.projection import FileProjection, Payload

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def validate_path(target_path: str) -> str:
    """Validate a single logical path and return its normalized form.

    A path may not:

    1. be empty
    2. be absolute
    3. be longer than MAX_PATH_LENGTH characters
    4. contain '..' as a segment
    5. contain segments longer than MAX_FILE_NAME_LENGTH characters
    6. start with '..' (that namespace is reserved for bookkeeping entries)
    7. normalize to the snapshot root itself

    Args:
        target_path: Caller-supplied relative path

    Returns:
        The path with redundant separators and '.' segments collapsed

    Raises:
        InvalidPathException: If any rule is violated
    """
    if target_path == "":
        raise InvalidPathException(target_path, "must not be empty")

    if posixpath.isabs(target_path) or os.path.isabs(target_path):
        raise InvalidPathException(target_path, "must be a relative path")

    if len(target_path) > MAX_PATH_LENGTH:
        raise InvalidPathException(
            target_path[:64] + "...",
            f"must be less than or equal to {MAX_PATH_LENGTH} characters",
        )

    segments = target_path.split(SEPARATOR)
    for segment in segments:
        if segment == "..":
            raise InvalidPathException(target_path, "must not contain '..'")
        if len(segment) > MAX_FILE_NAME_LENGTH:
            raise InvalidPathException(
                target_path,
                f"filenames must be less than or equal to {MAX_FILE_NAME_LENGTH} characters",
            )

    if segments[0].startswith("..") and len(segments[0]) > 2:
        raise InvalidPathException(target_path, "must not start with '..'")

    cleaned = posixpath.normpath(target_path)
    if cleaned == ".":
        raise InvalidPathException(target_path, "must name a file below the target directory")

    # Leading "./" segments hide a reserved name until normalization
    first = top_level_segment(cleaned)
    if first.startswith("..") and len(first) > 2:
        raise InvalidPathException(target_path, "must not start with '..'")

    return cleaned


def validate_payload(payload: Payload) -> dict[str, FileProjection]:
    """Validate every path of a payload and return a copy keyed by clean paths.

    Keys are processed in lexicographic order of the original key, so when
    two keys normalize to the same path the lexicographically last one wins.

    Raises:
        InvalidPathException: On the first invalid key
    """
    clean_payload: dict[str, FileProjection] = {}
    origins: dict[str, str] = {}

    for key in sorted(payload):
        cleaned = validate_path(key)
        if cleaned in clean_payload:
            logger.warning(
                "Payload keys %r and %r both normalize to %r; using %r",
                origins[cleaned], key, cleaned, key,
            )
        clean_payload[cleaned] = payload[key]
        origins[cleaned] = key

    return clean_payload


def top_level_segment(path: str) -> str:
    """Return the first segment of a clean logical path."""
    return path.split(SEPARATOR, 1)[0]


def ancestor_paths(path: str) -> Iterator[str]:
    """Yield the path itself followed by each of its parent directories.

    For "a/b/c" this yields "a/b/c", "a/b" and "a".
    """
    while path:
        yield path
        path = posixpath.dirname(path)
