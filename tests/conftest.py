"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from projector import create_container
from projector.config import Settings
from projector.consts import DATA_DIR_NAME
from projector.schemas.projection import FileProjection
from projector.services.atomic_writer import AtomicWriter
from projector.services.container import ServiceContainer


def _build_test_settings(tmp_path: Path) -> Settings:
    """Construct base Settings object for tests.

    Settings is a plain Pydantic BaseModel with lowercase fields, so tests
    construct it directly instead of using Settings.load().
    """
    return Settings(
        target_dir=tmp_path / "target",
        log_level="DEBUG",
        swap_strategy="rename",
        materialize_workers=1,
        prune_orphans=True,
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a per-test target directory."""
    return _build_test_settings(tmp_path)


@pytest.fixture
def target_dir(test_settings: Settings) -> Path:
    """Existing, empty target directory."""
    assert test_settings.target_dir is not None
    test_settings.target_dir.mkdir()
    return test_settings.target_dir


@pytest.fixture
def container(test_settings: Settings) -> ServiceContainer:
    """Service container configured with test settings."""
    return create_container(test_settings)


@pytest.fixture
def writer(container: ServiceContainer, target_dir: Path) -> AtomicWriter:
    """AtomicWriter for the test target directory."""
    return container.atomic_writer(target_dir=target_dir)


@pytest.fixture
def projection() -> Callable[..., FileProjection]:
    """Factory for FileProjection values with a default mode of 0644."""

    def _make(data: str | bytes, mode: int = 0o644) -> FileProjection:
        if isinstance(data, str):
            data = data.encode()
        return FileProjection(data=data, mode=mode)

    return _make


@pytest.fixture
def read_visible() -> Callable[[Path, str], bytes]:
    """Read a projected file the way a consumer does, through the visible links."""

    def _read(target: Path, path: str) -> bytes:
        return (target / path).read_bytes()

    return _read


@pytest.fixture
def current_snapshot_dir() -> Callable[[Path], Path]:
    """Resolve the snapshot directory the data symlink points at."""

    def _resolve(target: Path) -> Path:
        return target / os.readlink(target / DATA_DIR_NAME)

    return _resolve


@pytest.fixture
def umask() -> Generator[Callable[[int], None], None, None]:
    """Set a process umask for the duration of a test."""
    original = os.umask(0o022)
    os.umask(original)

    def _set(value: int) -> None:
        os.umask(value)

    yield _set
    os.umask(original)
