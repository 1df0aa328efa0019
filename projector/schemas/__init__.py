"""Pydantic schemas for payload projection."""

from projector.schemas.projection import FileProjection, Payload, WriteResult

__all__ = ["FileProjection", "Payload", "WriteResult"]
