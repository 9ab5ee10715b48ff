"""
Batch entrypoint: run the upload pipeline on a replay already on local disk.

Used for backfills and for re-deriving JSON after a decoder upgrade.
Configured through environment variables:
    OWNER_ID     — owner segment of the storage key
    ARTIFACT_ID  — artifact segment of the storage key
    REPLAY_PATH  — path of the replay file to ingest
    FILENAME     — stored filename (defaults to the basename of REPLAY_PATH)

The worker exits 0 on success, 1 on missing input or any pipeline failure.
All logging is JSON (structlog).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from domain.models import UploadRequest
from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope
from shared_utils.di_container import get_di_container
from shared_utils.logging_utils import configure_logging, get_scoped_logger, log_execution

logger = get_scoped_logger(LogScope.WORKER)


@log_execution(scope=LogScope.WORKER)
def main() -> int:
    """Worker main: read env vars, build deps, run the pipeline once."""
    owner_id = os.environ.get("OWNER_ID", "")
    artifact_id = os.environ.get("ARTIFACT_ID", "")
    replay_path = os.environ.get("REPLAY_PATH", "")

    if not owner_id or not artifact_id or not replay_path:
        logger.error(
            "worker_missing_env",
            owner_id=owner_id,
            artifact_id=artifact_id,
            replay_path=replay_path,
        )
        print("ERROR: OWNER_ID, ARTIFACT_ID and REPLAY_PATH env vars are required", file=sys.stderr)
        return 1

    source = Path(replay_path)
    filename = os.environ.get("FILENAME") or source.name
    logger.info("worker_started", owner_id=owner_id, artifact_id=artifact_id, filename=filename)

    try:
        pipeline = get_di_container().get_upload_pipeline()
        with open(source, "rb") as payload:
            result = pipeline.process(
                UploadRequest(
                    owner_id=owner_id,
                    artifact_id=artifact_id,
                    filename=filename,
                    payload=payload,
                )
            )
    except Exception as exc:
        logger.error("worker_failed", owner_id=owner_id, error=str(exc))
        return 1

    if not result.ok:
        logger.error(
            "worker_failed",
            owner_id=owner_id,
            error_code=result.error.error_code,
            error=result.error.message,
        )
        return 1

    logger.info(
        "worker_completed",
        remote_key=result.remote_key,
        derived_key=result.derived_key,
        duration_ms=round(result.duration_ms, 1),
    )
    return 0


def cli() -> None:
    """Console-script entry: configure logging, run once, exit with its code."""
    configure_logging(get_settings().log_level)
    sys.exit(main())


if __name__ == "__main__":
    cli()
