"""
Upload pipeline: orchestrates one replay upload end to end.

Flow:  validate → stage → relay original → decode → annotate → serialize
       → (local mirror) → relay derived → cleanup.

Depends only on ports (protocol interfaces), never on concrete adapters.
Steps run strictly in order and the first failure ends the run; the staged
file is removed whatever happened. A failure after the original has been
relayed leaves the original stored. That partial state is reported through
the result's error, never rolled back.
"""

from __future__ import annotations

import time
from typing import Iterable, Optional

from domain.models import PipelineResult, RemoteKey, StagedArtifact, UploadRequest
from ports.artifact_store import ArtifactStorePort
from ports.decoder import DecoderPort
from ports.staging import StagingAreaPort
from shared_utils.constants import Defaults, LogScope, RelayMode
from shared_utils.error_handler import AppException, InputError, StorageError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.PIPELINE)

_ORIGINAL_CONTENT_TYPE = "application/octet-stream"
_DERIVED_CONTENT_TYPE = "application/json"


class UploadPipeline:
    """Receive → stage → decode → relay for a single upload.

    One instance is shared by all request threads. It holds no per-request
    state, so concurrent ``process`` calls are independent.
    """

    def __init__(
        self,
        staging: StagingAreaPort,
        artifact_store: ArtifactStorePort,
        decoder: DecoderPort,
        local_mirror: Optional[ArtifactStorePort] = None,
        relay_mode: RelayMode = RelayMode.BOTH,
        max_upload_bytes: int = Defaults.MAX_UPLOAD_BYTES,
        allowed_extensions: Iterable[str] = ("rep",),
        key_prefix: str = Defaults.KEY_PREFIX,
        json_indent: int = Defaults.JSON_INDENT,
    ) -> None:
        self._staging = staging
        self._artifacts = artifact_store
        self._decoder = decoder
        self._mirror = local_mirror
        self._relay_mode = RelayMode(relay_mode)
        self._max_upload_bytes = max_upload_bytes
        self._allowed_extensions = list(allowed_extensions)
        self._key_prefix = key_prefix.strip("/")
        self._json_indent = json_indent

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self, request: UploadRequest) -> PipelineResult:
        """Run the pipeline for one upload.

        Steps:
            1. Validate identifiers, filename and presence of a file.
            2. Stream the payload into a staged file under the size ceiling.
            3. Compute the remote key pair.
            4. Relay the original bytes.
            5. Decode the staged file.
            6. Annotate the decoded record with derived fields.
            7. Serialize the derived JSON.
            8. Write it to the local mirror, then relay it to the store.
            9. Remove the staged file (always, best-effort).

        Pipeline errors (``AppException``) are returned in
        ``PipelineResult.error`` rather than raised. Anything else is a bug
        and propagates after cleanup.
        """
        started = time.time()
        result = PipelineResult()
        staged: Optional[StagedArtifact] = None
        log = logger.bind(owner_id=request.owner_id, artifact_id=request.artifact_id)

        log.info("upload_pipeline_started", filename=request.filename)

        try:
            # 1. Validate
            key = self._validate(request)

            # 2. Stage
            staged = self._staging.create(key.owner_id)
            size = self._staging.write(staged, request.payload, self._max_upload_bytes)
            if size == 0:
                raise InputError("Uploaded file is empty", context={"filename": key.filename})
            result.size_bytes = size

            # 3. Key pair is fixed by validation; 4. Relay original
            if self._relay_mode.relays_original:
                self._relay_original(staged, key)
                result.remote_key = key.original

            # 5. Decode (only ever sees a completely written file)
            record = self._decoder.decode(self._staging.path(staged))

            # 6. Annotate
            record = self._decoder.annotate(record)

            # 7. Serialize
            derived_bytes = record.to_json(indent=self._json_indent)

            # 8. Local mirror first, then the store
            if self._mirror is not None:
                self._mirror.put(key.derived, derived_bytes, _DERIVED_CONTENT_TYPE)
            if self._relay_mode.relays_derived:
                self._artifacts.put(key.derived, derived_bytes, _DERIVED_CONTENT_TYPE)
                result.derived_key = key.derived

        except AppException as exc:
            result.error = exc
            log.warning(
                "upload_pipeline_failed",
                error_code=exc.error_code,
                error=exc.message,
                original_stored=result.remote_key is not None,
            )
        finally:
            # 9. Cleanup
            if staged is not None:
                self._cleanup(staged)
            result.duration_ms = (time.time() - started) * 1000

        if result.ok:
            log.info(
                "upload_pipeline_completed",
                remote_key=result.remote_key,
                derived_key=result.derived_key,
                size_bytes=result.size_bytes,
                duration_ms=round(result.duration_ms, 1),
            )
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate(self, request: UploadRequest) -> RemoteKey:
        if request.payload is None or not (request.filename or "").strip():
            raise InputError("No file uploaded")

        owner_id = InputValidator.validate_key_segment(request.owner_id, "ownerID")
        artifact_id = InputValidator.validate_key_segment(request.artifact_id, "artifactID")
        filename = InputValidator.sanitize_filename(request.filename)
        InputValidator.validate_file_extension(filename, self._allowed_extensions)

        return RemoteKey(
            owner_id=owner_id,
            artifact_id=artifact_id,
            filename=filename,
            prefix=self._key_prefix,
        )

    def _relay_original(self, staged: StagedArtifact, key: RemoteKey) -> None:
        try:
            fh = open(self._staging.path(staged), "rb")
        except OSError as exc:
            raise StorageError(
                "Could not accept upload",
                context={"reason": type(exc).__name__},
            ) from exc
        with fh:
            self._artifacts.put(key.original, fh, _ORIGINAL_CONTENT_TYPE)

    def _cleanup(self, staged: StagedArtifact) -> None:
        """Best-effort removal; the caller-visible result never changes."""
        try:
            self._staging.remove(staged)
        except Exception as exc:
            logger.warning("staging_cleanup_failed", handle=staged.handle, error=str(exc))
