"""
Local-disk staging area for in-flight uploads.

Layout::

    {root}/{owner_id}/upload-{uuid4hex}.pending

Each upload gets its own UUID4-named file, so concurrent uploads never
collide and no lock is needed. The ``.pending`` suffix marks files that
belong to an unfinished pipeline run; anything left behind by a crashed
process is removed by ``purge_orphans`` at startup.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import BinaryIO, Union

from domain.models import StagedArtifact
from ports.staging import StagingAreaPort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import PayloadTooLargeError, StorageError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.STAGING)


def generate_handle() -> str:
    """Collision-free staging identifier (uuid4 hex, 32 chars)."""
    return uuid.uuid4().hex


class LocalStagingArea:
    """Filesystem implementation of StagingAreaPort."""

    def __init__(
        self,
        root: Union[str, Path],
        chunk_size: int = Defaults.STAGING_CHUNK_SIZE,
    ) -> None:
        self.root = Path(root)
        self._chunk_size = chunk_size

    # ------------------------------------------------------------------
    # StagingAreaPort implementation
    # ------------------------------------------------------------------

    def create(self, owner_id: str) -> StagedArtifact:
        """Create an empty staged file for *owner_id*."""
        handle = generate_handle()
        path = self.root / owner_id / f"{Defaults.STAGING_PREFIX}{handle}{Defaults.STAGING_SUFFIX}"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" mode: fail rather than reuse an existing file
            with open(path, "xb"):
                pass
        except OSError as exc:
            logger.error("staging_create_failed", owner_id=owner_id, error=str(exc))
            raise StorageError(
                "Could not accept upload",
                context={"reason": type(exc).__name__},
            ) from exc

        logger.debug("staging_created", handle=handle, owner_id=owner_id)
        return StagedArtifact(handle=handle, owner_id=owner_id, local_path=path)

    def write(self, handle: StagedArtifact, reader: BinaryIO, max_bytes: int) -> int:
        """Stream *reader* into the staged file, enforcing *max_bytes*."""
        total = 0
        try:
            with open(handle.local_path, "wb") as fh:
                while True:
                    chunk = reader.read(self._chunk_size)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > max_bytes:
                        raise PayloadTooLargeError(max_bytes, context={"handle": handle.handle})
                    fh.write(chunk)
                fh.flush()
                os.fsync(fh.fileno())
        except PayloadTooLargeError:
            self._discard(handle)
            logger.warning(
                "staging_limit_exceeded",
                handle=handle.handle,
                limit_bytes=max_bytes,
            )
            raise
        except Exception as exc:
            # Disk errors and broken request bodies alike leave a partial file
            self._discard(handle)
            logger.error(
                "staging_write_failed",
                handle=handle.handle,
                bytes_written=total,
                error=str(exc),
            )
            raise StorageError(
                "Could not accept upload",
                context={"reason": type(exc).__name__},
            ) from exc

        handle.size_bytes = total
        handle.complete = True
        logger.info("upload_staged", handle=handle.handle, size_bytes=total)
        return total

    def path(self, handle: StagedArtifact) -> Path:
        """Local path of a completely written staged file."""
        if not handle.complete:
            raise StorageError(
                "Staged artifact is incomplete",
                context={"handle": handle.handle},
            )
        return handle.local_path

    def remove(self, handle: StagedArtifact) -> None:
        """Delete the staged file; a missing file is not an error."""
        handle.complete = False
        handle.local_path.unlink(missing_ok=True)
        logger.debug("staging_removed", handle=handle.handle)

    def _discard(self, handle: StagedArtifact) -> None:
        try:
            self.remove(handle)
        except OSError as exc:
            logger.warning("staging_cleanup_failed", handle=handle.handle, error=str(exc))

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_orphans(self) -> int:
        """Remove ``.pending`` files left behind by a previous process.

        Best-effort: failures are logged and skipped.

        Returns:
            Number of files removed.
        """
        if not self.root.is_dir():
            return 0

        removed = 0
        for path in self.root.rglob(f"*{Defaults.STAGING_SUFFIX}"):
            try:
                path.unlink()
                removed += 1
            except OSError as exc:
                logger.warning("staging_orphan_purge_failed", path=str(path), error=str(exc))

        if removed:
            logger.info("staging_orphans_purged", count=removed)
        return removed
