"""
Pure domain models for the replay ingest pipeline.

These models contain NO AWS or HTTP dependencies. They represent the values
that flow between the HTTP surface, the upload pipeline and its ports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared_utils.constants import Defaults
from shared_utils.error_handler import AppException


class UploadRequest(BaseModel):
    """One inbound upload; lives only for the duration of the request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    owner_id: str = ""
    artifact_id: str = ""
    filename: str = ""
    payload: Optional[Any] = None  # binary file-like object with read()


class StagedArtifact(BaseModel):
    """A file in the staging area.

    Created empty, grown only by ``StagingAreaPort.write`` and removed once
    the pipeline is done with it.
    """

    handle: str
    owner_id: str
    local_path: Path
    size_bytes: int = 0
    complete: bool = False


class RemoteKey(BaseModel):
    """Deterministic storage location for an upload and its derived JSON.

    Both keys share ``{prefix}/{owner_id}/{artifact_id}/{filename}`` and
    differ only by the ``.json`` suffix, so they are always found as a pair.
    """

    owner_id: str
    artifact_id: str
    filename: str
    prefix: str = Defaults.KEY_PREFIX

    @property
    def base(self) -> str:
        parts = [self.prefix, self.owner_id, self.artifact_id]
        return "/".join(p for p in parts if p)

    @property
    def original(self) -> str:
        return f"{self.base}/{self.filename}"

    @property
    def derived(self) -> str:
        return f"{self.original}{Defaults.DERIVED_SUFFIX}"


class DecodedRecord(BaseModel):
    """Structured output of the decoder plus the fields added by annotation."""

    data: Dict[str, Any] = Field(default_factory=dict)
    derived: Dict[str, Any] = Field(default_factory=dict)

    def to_json(self, indent: int = Defaults.JSON_INDENT) -> bytes:
        """Serialize to the derived artifact form.

        Key order follows the decoder's output so repeated decodes of the
        same replay produce byte-identical JSON.
        """
        document = dict(self.data)
        if self.derived:
            document["Derived"] = self.derived
        text = json.dumps(document, indent=indent, ensure_ascii=False, default=str)
        return (text + "\n").encode("utf-8")


class PipelineResult(BaseModel):
    """Terminal outcome of ``UploadPipeline.process``.

    On failure ``error`` holds the first unrecoverable error; keys that were
    already relayed before the failure are still reported.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    remote_key: Optional[str] = None
    derived_key: Optional[str] = None
    size_bytes: int = 0
    duration_ms: float = 0.0
    error: Optional[AppException] = Field(default=None, exclude=True)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def response_key(self) -> Optional[str]:
        """Key reported to the caller: the derived one when it exists."""
        return self.derived_key or self.remote_key
