"""Projection schemas: file content, payloads and write outcomes."""

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileProjection(BaseModel):
    """Desired final content and permission bits of one projected file."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Exact file content")
    mode: int = Field(0o644, description="Permission bits applied to the file")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: int) -> int:
        """Only permission bits (including setuid/setgid/sticky) are accepted."""
        if not 0 <= v <= 0o7777:
            raise ValueError(f"mode {v:#o} is outside the permission bit range 0..0o7777")
        return v


# Logical relative path -> projection
Payload = Mapping[str, FileProjection]


class WriteResult(BaseModel):
    """Outcome of a single AtomicWriter.write() call."""

    changed: bool = Field(..., description="Whether a new snapshot became active")
    snapshot_dir: str | None = Field(
        None, description="Name of the snapshot directory active after the call"
    )
    previous_snapshot_dir: str | None = Field(
        None, description="Name of the snapshot directory active before the call"
    )
    removed_paths: set[str] = Field(
        default_factory=set,
        description="Paths of the previous snapshot that the new payload no longer references",
    )
