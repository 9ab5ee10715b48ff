"""
Constants management.
Centralized configuration for magic values, routes, error codes and defaults.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, Enum):
    """Supported artifact store backends."""
    S3 = "s3"
    LOCAL = "local"


class RelayMode(str, Enum):
    """Which forms of an upload are relayed to the artifact store."""
    ORIGINAL = "original"
    DERIVED = "derived"
    BOTH = "both"

    @property
    def relays_original(self) -> bool:
        return self in (RelayMode.ORIGINAL, RelayMode.BOTH)

    @property
    def relays_derived(self) -> bool:
        return self in (RelayMode.DERIVED, RelayMode.BOTH)


# Default values
class Defaults:
    """Defaults for the ingest pipeline."""
    MAX_UPLOAD_BYTES: Final[int] = 10 << 20  # 10 MiB
    STAGING_CHUNK_SIZE: Final[int] = 65536
    STAGING_SUFFIX: Final[str] = ".pending"
    STAGING_PREFIX: Final[str] = "upload-"
    KEY_PREFIX: Final[str] = "replays"
    DERIVED_SUFFIX: Final[str] = ".json"
    JSON_INDENT: Final[int] = 2
    AWS_REGION: Final[str] = "ap-northeast-2"
    S3_BUCKET: Final[str] = "screp"
    RELAY_CONNECT_TIMEOUT: Final[float] = 5.0
    RELAY_READ_TIMEOUT: Final[float] = 30.0
    RELAY_MAX_ATTEMPTS: Final[int] = 3
    DECODE_TIMEOUT: Final[float] = 60.0
    LOG_LEVEL: Final[str] = "INFO"
    # Brood War "fastest" game speed: one frame every 42 ms
    FRAME_DURATION_MS: Final[int] = 42


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PIPELINE = "upload_pipeline"
    STAGING = "staging"
    DECODER = "decoder"
    WORKER = "worker"
    ADAPTER = "adapter"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    INDEX = "/"
    HEALTH = "/health"
    UPLOAD = "/upload"
    REPLAYS = "/replays"


# Multipart form field names accepted by the upload endpoint
class FormFields:
    OWNER_ID: Final[str] = "ownerID"
    ARTIFACT_ID: Final[str] = "artifactID"
    FILE: Final[str] = "repFile"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    STORAGE_ERROR = "STORAGE_ERROR"
    DECODE_FAILED = "DECODE_FAILED"
    RELAY_FAILED = "RELAY_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
