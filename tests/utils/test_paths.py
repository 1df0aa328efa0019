"""Tests for logical path validation and normalization."""

import pytest

from projector.consts import MAX_FILE_NAME_LENGTH, MAX_PATH_LENGTH
from projector.exceptions import InvalidPathException
from projector.schemas.projection import FileProjection
from projector.utils.paths import (
    ancestor_paths,
    top_level_segment,
    validate_path,
    validate_payload,
)


class TestValidatePath:
    """Tests for validate_path()."""

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "/abs",
            "/",
            "x/../y",
            "..",
            "a/..",
            "..secret",
            "..data",
            "..data_tmp",
            "..2016_02_01_15_04_05.abc/file",
            ".",
            "./",
            "./..data",
            "./..data_tmp",
            "./..secret",
            ".//./..2020_01_01_00_00_00.abc/file",
            "a/../..x",
        ],
    )
    def test_rejects_invalid_paths(self, path: str) -> None:
        """Invalid paths raise InvalidPathException."""
        with pytest.raises(InvalidPathException) as exc_info:
            validate_path(path)

        assert exc_info.value.error_code == "INVALID_PATH"

    def test_rejects_long_segment(self) -> None:
        """A single segment of 256 characters is rejected."""
        with pytest.raises(InvalidPathException, match="filenames must be less than"):
            validate_path("a" * (MAX_FILE_NAME_LENGTH + 1))

    def test_accepts_segment_at_limit(self) -> None:
        """A segment of exactly 255 characters is accepted."""
        path = "a" * MAX_FILE_NAME_LENGTH
        assert validate_path(path) == path

    def test_rejects_long_path(self) -> None:
        """A path of 4097 characters is rejected."""
        path = "/".join(["abcdefg"] * 512) + "xy"
        assert len(path) == MAX_PATH_LENGTH + 1

        with pytest.raises(InvalidPathException, match="less than or equal to 4096"):
            validate_path(path)

    def test_accepts_path_at_limit(self) -> None:
        """A path of exactly 4096 characters is accepted."""
        path = "/".join(["abcdefg"] * 512) + "x"
        assert len(path) == MAX_PATH_LENGTH

        assert validate_path(path) == path

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a", "a"),
            ("a/b", "a/b"),
            ("a//b", "a/b"),
            ("a/./b", "a/b"),
            ("./a", "a"),
            ("a/b/", "a/b"),
            ("a..b", "a..b"),
            ("a/..b", "a/..b"),
            ("a/b..", "a/b.."),
            (".hidden", ".hidden"),
        ],
    )
    def test_normalizes_valid_paths(self, path: str, expected: str) -> None:
        """Valid paths are returned in normalized form."""
        assert validate_path(path) == expected

    def test_reserved_name_behind_dot_segment_rejected(self) -> None:
        """A reserved name is rejected even when it only appears after normalization."""
        with pytest.raises(InvalidPathException, match="must not start with '..'") as exc_info:
            validate_path("./..data")

        assert exc_info.value.path == "./..data"

    def test_error_message_names_path(self) -> None:
        """The error message includes the offending path."""
        with pytest.raises(InvalidPathException) as exc_info:
            validate_path("x/../y")

        assert "x/../y" in str(exc_info.value)
        assert exc_info.value.path == "x/../y"


class TestValidatePayload:
    """Tests for validate_payload()."""

    def test_returns_payload_keyed_by_clean_paths(self) -> None:
        """Keys are normalized, values preserved."""
        projection = FileProjection(data=b"x", mode=0o600)

        clean = validate_payload({"a//b": projection, "./c": projection})

        assert clean == {"a/b": projection, "c": projection}

    def test_first_invalid_key_fails_whole_payload(self) -> None:
        """A single invalid key rejects the whole payload."""
        projection = FileProjection(data=b"x", mode=0o644)

        with pytest.raises(InvalidPathException):
            validate_payload({"good": projection, "/bad": projection})

    def test_duplicate_normalization_last_key_wins(self) -> None:
        """When keys collide after cleaning, the lexicographically last original key wins."""
        first = FileProjection(data=b"first", mode=0o644)
        second = FileProjection(data=b"second", mode=0o644)

        # Sorted order is "a/./b", "a//b", "a/b"
        clean = validate_payload({"a/b": second, "a//b": first, "a/./b": first})

        assert clean == {"a/b": second}

    def test_duplicate_normalization_ignores_insertion_order(self) -> None:
        """The winner does not depend on mapping iteration order."""
        one = FileProjection(data=b"one", mode=0o644)
        two = FileProjection(data=b"two", mode=0o644)

        forward = validate_payload({"x//y": one, "x/y": two})
        backward = validate_payload({"x/y": two, "x//y": one})

        assert forward == backward == {"x/y": two}

    def test_empty_payload(self) -> None:
        """An empty payload is valid."""
        assert validate_payload({}) == {}


class TestPathHelpers:
    """Tests for top_level_segment() and ancestor_paths()."""

    def test_top_level_segment(self) -> None:
        """The first segment is returned."""
        assert top_level_segment("a") == "a"
        assert top_level_segment("a/b/c") == "a"

    def test_ancestor_paths(self) -> None:
        """The path and all parent directories are yielded, deepest first."""
        assert list(ancestor_paths("a/b/c")) == ["a/b/c", "a/b", "a"]

    def test_ancestor_paths_single_segment(self) -> None:
        """A top-level path yields only itself."""
        assert list(ancestor_paths("file")) == ["file"]
