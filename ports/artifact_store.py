"""
Port interface for artifact (object) storage.

Implementations: S3ArtifactStoreAdapter, LocalArtifactStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import BinaryIO, Protocol, Union, runtime_checkable


@runtime_checkable
class ArtifactStorePort(Protocol):
    """Abstract interface for original and derived replay storage."""

    name: str

    def put(
        self,
        key: str,
        source: Union[bytes, BinaryIO],
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store an object under *key*, overwriting any previous object.

        Args:
            key: Storage key (e.g. ``replays/u1/r1/game.rep``).
            source: Raw bytes or a readable binary file object.
            content_type: MIME type recorded with the object.

        Returns:
            Canonical URI of the stored object (e.g. s3://bucket/key).

        Raises:
            RelayError: If the store rejects the write or times out.
        """
        ...
