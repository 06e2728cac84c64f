"""Identifier generation for request IDs and trace series."""

from __future__ import annotations

from typing import Protocol
from uuid import uuid4


class IDGenerator(Protocol):
    """Source of process-unique identifiers."""

    def next_id(self) -> str:
        """Return a new identifier."""
        ...


class UUIDGenerator:
    """Random UUID4 identifiers rendered as 32 hex characters."""

    def next_id(self) -> str:
        return uuid4().hex
