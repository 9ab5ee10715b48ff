"""
Local-disk artifact store adapter.

Implements ArtifactStorePort on a directory tree that the API also serves
under ``/replays``. Used as the primary store when STORE_BACKEND=local and
as the derived-JSON mirror otherwise.

Writes follow the atomic publish rule: write a uniquely named temp file in
the destination directory, fsync, then rename over the final path. A reader
of the final path sees either the previous object or the new one, never a
partial write.
"""

from __future__ import annotations

import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Union

from ports.artifact_store import ArtifactStorePort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import LogScope
from shared_utils.error_handler import RelayError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class LocalArtifactStoreAdapter:
    """Filesystem implementation of ArtifactStorePort rooted at *root*."""

    name = "local"

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # ArtifactStorePort implementation
    # ------------------------------------------------------------------

    def put(
        self,
        key: str,
        source: Union[bytes, BinaryIO],
        content_type: str = "application/octet-stream",
    ) -> str:
        """Atomically write an object under the store root."""
        final_path = self._resolve(key)
        temp_path = final_path.with_name(f".{final_path.name}.{uuid.uuid4().hex}.tmp")

        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as fh:
                if isinstance(source, (bytes, bytearray)):
                    fh.write(source)
                else:
                    shutil.copyfileobj(source, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(temp_path, final_path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            logger.error("local_put_failed", key=key, error=str(exc))
            raise RelayError(self.name, type(exc).__name__, key=key) from exc

        logger.info("artifact_relayed", store=self.name, key=key, content_type=content_type)
        return final_path.as_uri()

    def get(self, key: str) -> bytes:
        """Read an object from the store root."""
        path = self._resolve(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("local_get_failed", key=key, error=str(exc))
            raise RelayError(self.name, type(exc).__name__, key=key) from exc

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, key: str) -> Path:
        """Map *key* to a path, refusing keys that escape the root."""
        path = (self.root / key.lstrip("/")).resolve()
        if path == self.root or self.root not in path.parents:
            raise RelayError(self.name, "key escapes store root", key=key)
        return path
