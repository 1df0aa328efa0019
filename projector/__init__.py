"""Atomic projection of in-memory file payloads into a target directory."""

import logging

from projector.config import Settings
from projector.exceptions import (
    CleanupIncompleteException,
    InvalidPathException,
    IOFailureException,
    ProjectionException,
    TargetNotFoundException,
)
from projector.schemas.projection import FileProjection, Payload, WriteResult
from projector.services.atomic_writer import AtomicWriter
from projector.services.container import ServiceContainer

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=logging.getLevelName(settings.log_level),
        format=LOG_FORMAT,
    )


def create_container(settings: Settings | None = None) -> ServiceContainer:
    """Create and configure the service container."""
    # Load configuration
    if settings is None:
        settings = Settings.load()

    settings.validate_config()

    container = ServiceContainer()
    container.config.override(settings)

    return container


__all__ = [
    "AtomicWriter",
    "CleanupIncompleteException",
    "FileProjection",
    "IOFailureException",
    "InvalidPathException",
    "Payload",
    "ProjectionException",
    "ServiceContainer",
    "Settings",
    "TargetNotFoundException",
    "WriteResult",
    "configure_logging",
    "create_container",
]
