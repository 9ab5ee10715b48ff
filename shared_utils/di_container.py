"""
Dependency injection container for managing application dependencies.
Centralizes adapter creation and lifecycle management.

Every collaborator is built lazily on first use from ``get_settings()`` and
then shared process-wide; the pipeline receives them through its
constructor and never reaches for globals itself. Construction runs under a
class-wide lock so concurrent first requests share one instance.
"""

import threading
from typing import Optional
from pathlib import Path

from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope, StoreBackend
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.CONFIG)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None

    _staging_area: Optional[object] = None
    _artifact_store: Optional[object] = None
    _local_store: Optional[object] = None
    _decoder: Optional[object] = None
    _upload_pipeline: Optional[object] = None

    _lock = threading.RLock()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        self._staging_area = None
        self._artifact_store = None
        self._local_store = None
        self._decoder = None
        self._upload_pipeline = None

    # ------------------------------------------------------------------
    # Adapter accessors
    # ------------------------------------------------------------------

    def get_staging_area(self):
        """Get or create LocalStagingArea (lazy singleton)."""
        if self._staging_area is None:
            with self._lock:
                if self._staging_area is None:
                    from adapters.local_staging_area import LocalStagingArea

                    settings = get_settings()
                    self._staging_area = LocalStagingArea(root=settings.staging_dir)
                    logger.info("initialized_staging_area", root=settings.staging_dir)
        return self._staging_area

    def get_local_store(self):
        """Get or create LocalArtifactStoreAdapter over the served replay tree."""
        if self._local_store is None:
            with self._lock:
                if self._local_store is None:
                    from adapters.local_artifact_store import LocalArtifactStoreAdapter

                    settings = get_settings()
                    self._local_store = LocalArtifactStoreAdapter(root=settings.local_store_root)
                    logger.info("initialized_local_store", root=settings.local_store_root)
        return self._local_store

    def get_artifact_store(self):
        """Get or create the configured artifact store (lazy singleton).

        STORE_BACKEND=s3 builds S3ArtifactStoreAdapter; STORE_BACKEND=local
        reuses the local store that backs ``/replays``.
        """
        if self._artifact_store is None:
            with self._lock:
                if self._artifact_store is None:
                    settings = get_settings()
                    if settings.store_backend == StoreBackend.LOCAL.value:
                        self._artifact_store = self.get_local_store()
                    else:
                        from adapters.s3_artifact_store import S3ArtifactStoreAdapter

                        self._artifact_store = S3ArtifactStoreAdapter(
                            bucket=settings.s3_bucket,
                            region=settings.aws_region,
                            endpoint_url=settings.aws_endpoint_url,
                            connect_timeout=settings.relay_connect_timeout,
                            read_timeout=settings.relay_read_timeout,
                            max_attempts=settings.relay_max_attempts,
                        )
                        logger.info("initialized_s3_artifact_store", bucket=settings.s3_bucket)
        return self._artifact_store

    def get_local_mirror(self):
        """Local derived-JSON mirror, or None when it would be redundant."""
        settings = get_settings()
        if not settings.mirror_derived_locally:
            return None
        if settings.store_backend == StoreBackend.LOCAL.value:
            return None
        return self.get_local_store()

    def get_decoder(self):
        """Get or create ScrepDecoderAdapter (lazy singleton)."""
        if self._decoder is None:
            with self._lock:
                if self._decoder is None:
                    from adapters.screp_decoder import ScrepDecoderAdapter

                    settings = get_settings()
                    self._decoder = ScrepDecoderAdapter(
                        binary=settings.screp_binary,
                        timeout=settings.decode_timeout,
                        computed=settings.decode_computed,
                        include_map=settings.decode_include_map,
                        include_commands=settings.decode_include_commands,
                    )
                    logger.info("initialized_decoder", binary=settings.screp_binary)
        return self._decoder

    def get_upload_pipeline(self):
        """Get or create UploadPipeline (lazy singleton)."""
        if self._upload_pipeline is None:
            with self._lock:
                if self._upload_pipeline is None:
                    from services.upload_pipeline import UploadPipeline

                    settings = get_settings()
                    self._upload_pipeline = UploadPipeline(
                        staging=self.get_staging_area(),
                        artifact_store=self.get_artifact_store(),
                        decoder=self.get_decoder(),
                        local_mirror=self.get_local_mirror(),
                        relay_mode=settings.get_relay_mode(),
                        max_upload_bytes=settings.max_upload_bytes,
                        allowed_extensions=settings.get_allowed_extensions(),
                        key_prefix=settings.key_prefix,
                    )
                    logger.info("initialized_upload_pipeline", relay_mode=settings.relay_mode)
        return self._upload_pipeline

    def replay_directory(self) -> Path:
        """Directory served under ``/replays``: the local store's key prefix."""
        settings = get_settings()
        return Path(settings.local_store_root) / settings.key_prefix

    def validate_decoder(self) -> bool:
        """Check the decoder can run; logged, not raised.

        Uploads still get a clean DecodeError if the binary is missing, so
        a missing decoder does not stop the server from starting.
        """
        available = self.get_decoder().is_available()
        if available:
            logger.info("decoder_validated")
        else:
            logger.warning("decoder_unavailable", binary=get_settings().screp_binary)
        return available


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
