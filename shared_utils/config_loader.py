from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, ValidationError, field_validator
from functools import lru_cache
from typing import List, Optional

from shared_utils.constants import Defaults, Environment, LogScope, RelayMode, StoreBackend
from shared_utils.error_handler import ConfigurationError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults

    Every field has a default so a bare checkout runs against a local
    replay directory; production deployments set STORE_BACKEND=s3.
    """
    # Application metadata
    app_name: str = "Replay Server"
    app_version: str = "1.5.0"
    app_description: str = "Uploads replays, decodes them with screp and relays both forms to storage"
    environment: str = Environment.DEVELOPMENT.value
    log_level: str = Defaults.LOG_LEVEL

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, validation_alias=AliasChoices("api_port", "port"))
    tls_certfile: Optional[str] = None
    tls_keyfile: Optional[str] = None
    cors_allow_origins: str = "*"  # comma separated
    upload_rate_limit: str = "20/minute"

    # Artifact store
    store_backend: str = StoreBackend.S3.value
    relay_mode: str = RelayMode.BOTH.value
    aws_region: str = Defaults.AWS_REGION
    aws_endpoint_url: str = ""  # LocalStack / MinIO
    s3_bucket: str = Defaults.S3_BUCKET
    key_prefix: str = Defaults.KEY_PREFIX
    relay_connect_timeout: float = Defaults.RELAY_CONNECT_TIMEOUT
    relay_read_timeout: float = Defaults.RELAY_READ_TIMEOUT
    relay_max_attempts: int = Defaults.RELAY_MAX_ATTEMPTS

    # Local disk
    staging_dir: str = "data/staging"
    local_store_root: str = "data/store"  # /replays serves {local_store_root}/{key_prefix}
    mirror_derived_locally: bool = True
    max_upload_bytes: int = Defaults.MAX_UPLOAD_BYTES
    allowed_extensions: str = "rep"  # comma separated, no dots

    # Decoder (screp CLI)
    screp_binary: str = "screp"
    decode_timeout: float = Defaults.DECODE_TIMEOUT
    decode_computed: bool = True
    decode_include_map: bool = False
    decode_include_commands: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {e.value for e in Environment}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('store_backend')
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        """Validate artifact store backend is supported."""
        valid_backends = {b.value for b in StoreBackend}
        if v.lower() not in valid_backends:
            raise ValueError(f"store_backend must be one of {valid_backends}, got {v}")
        return v.lower()

    @field_validator('relay_mode')
    @classmethod
    def validate_relay_mode(cls, v: str) -> str:
        """Validate relay mode is one of original / derived / both."""
        valid_modes = {m.value for m in RelayMode}
        if v.lower() not in valid_modes:
            raise ValueError(f"relay_mode must be one of {valid_modes}, got {v}")
        return v.lower()

    @field_validator('max_upload_bytes', 'relay_max_attempts')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator('key_prefix')
    @classmethod
    def strip_key_prefix(cls, v: str) -> str:
        return v.strip("/")

    def get_relay_mode(self) -> RelayMode:
        return RelayMode(self.relay_mode)

    def get_allowed_extensions(self) -> List[str]:
        return [ext.lstrip(".").lower() for ext in _split_csv(self.allowed_extensions)]

    def get_cors_origins(self) -> List[str]:
        return _split_csv(self.cors_allow_origins)

    def tls_enabled(self) -> bool:
        return bool(self.tls_certfile and self.tls_keyfile)


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If settings are invalid
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        fields = [".".join(str(loc) for loc in err["loc"]) for err in exc.errors()]
        logger.error("configuration_invalid", fields=fields)
        raise ConfigurationError("Invalid configuration", context={"fields": fields}) from exc

    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        store_backend=settings.store_backend,
        relay_mode=settings.relay_mode,
        s3_bucket=settings.s3_bucket,
        aws_region=settings.aws_region,
        max_upload_bytes=settings.max_upload_bytes,
        tls=settings.tls_enabled(),
    )

    return settings
