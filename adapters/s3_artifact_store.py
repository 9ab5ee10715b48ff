"""
S3-backed artifact store adapter.

Implements ArtifactStorePort using boto3 for original and derived replay objects.
"""

from __future__ import annotations

import io
from typing import BinaryIO, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ports.artifact_store import ArtifactStorePort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import RelayError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class S3ArtifactStoreAdapter:
    """Amazon S3 implementation of ArtifactStorePort.

    Objects are written to ``{bucket}/{key}``; keys are supplied fully formed
    by the caller. Every call is bounded by the connect / read timeouts and
    botocore's own retry budget; the pipeline itself never retries.
    """

    name = "S3"

    def __init__(
        self,
        bucket: str,
        region: str = Defaults.AWS_REGION,
        endpoint_url: str = "",
        connect_timeout: float = Defaults.RELAY_CONNECT_TIMEOUT,
        read_timeout: float = Defaults.RELAY_READ_TIMEOUT,
        max_attempts: int = Defaults.RELAY_MAX_ATTEMPTS,
        s3_client: Optional[object] = None,
    ) -> None:
        self.bucket = bucket
        client_kwargs: dict = {
            "region_name": region,
            "config": Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"max_attempts": max_attempts, "mode": "standard"},
            ),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
        self._s3 = s3_client or boto3.client("s3", **client_kwargs)

    # ------------------------------------------------------------------
    # ArtifactStorePort implementation
    # ------------------------------------------------------------------

    def put(
        self,
        key: str,
        source: Union[bytes, BinaryIO],
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload an object to S3, replacing whatever was stored under *key*."""
        body = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        try:
            self._s3.upload_fileobj(
                body,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("s3_put_failed", bucket=self.bucket, key=key, error=str(exc))
            raise RelayError(self.name, type(exc).__name__, key=key) from exc

        uri = f"s3://{self.bucket}/{key}"
        logger.info("artifact_relayed", store=self.name, uri=uri, content_type=content_type)
        return uri
