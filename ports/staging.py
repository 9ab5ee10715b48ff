"""
Port interface for the local staging area that holds in-flight uploads.

Implementations: LocalStagingArea (adapters/)
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from domain.models import StagedArtifact


@runtime_checkable
class StagingAreaPort(Protocol):
    """Durable temporary storage for an upload between receipt and relay."""

    def create(self, owner_id: str) -> StagedArtifact:
        """Allocate a fresh, collision-free staged file.

        Raises:
            StorageError: If the file cannot be created.
        """
        ...

    def write(self, handle: StagedArtifact, reader: BinaryIO, max_bytes: int) -> int:
        """Stream *reader* into the staged file.

        Returns:
            Final size in bytes.

        Raises:
            PayloadTooLargeError: If more than *max_bytes* are read.
            StorageError: On disk failure or if *reader* fails mid-stream.
            In both cases the partial file has already been removed.
        """
        ...

    def path(self, handle: StagedArtifact) -> Path:
        """Return the local path of a fully written staged file."""
        ...

    def remove(self, handle: StagedArtifact) -> None:
        """Delete the staged file. Removing twice is not an error."""
        ...
