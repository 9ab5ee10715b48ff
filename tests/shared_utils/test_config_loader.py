"""
Comprehensive tests for shared_utils.config_loader.

Covers the field validators, the list/enum helpers, env var precedence
and get_settings() caching and error reporting.
"""

import os
from unittest.mock import patch

import pytest

from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import Defaults, RelayMode
from shared_utils.error_handler import ConfigurationError


def _settings(**overrides) -> Settings:
    kw = {"environment": "development", **overrides}
    return Settings(**kw)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_upload_defaults(self) -> None:
        s = _settings()
        assert s.max_upload_bytes == Defaults.MAX_UPLOAD_BYTES
        assert s.get_allowed_extensions() == ["rep"]
        assert s.key_prefix == "replays"

    def test_relay_defaults(self) -> None:
        s = _settings()
        assert s.relay_mode == "both"
        assert s.s3_bucket == Defaults.S3_BUCKET
        assert s.aws_region == Defaults.AWS_REGION
        assert s.relay_max_attempts == Defaults.RELAY_MAX_ATTEMPTS

    def test_mirror_on_by_default(self) -> None:
        assert _settings().mirror_derived_locally is True

    def test_tls_off_by_default(self) -> None:
        assert _settings().tls_enabled() is False


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class TestValidateEnvironment:
    @pytest.mark.parametrize("input_val", ["development", "staging", "production", "PRODUCTION"])
    def test_valid_environments(self, input_val: str) -> None:
        assert _settings(environment=input_val).environment == input_val.lower()

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="environment"):
            _settings(environment="alpha")


class TestValidateStoreBackend:
    @pytest.mark.parametrize("value, expected", [("s3", "s3"), ("LOCAL", "local")])
    def test_valid(self, value: str, expected: str) -> None:
        assert _settings(store_backend=value).store_backend == expected

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="store_backend"):
            _settings(store_backend="gcs")


class TestValidateRelayMode:
    @pytest.mark.parametrize("value", ["original", "derived", "both", "Both"])
    def test_valid(self, value: str) -> None:
        s = _settings(relay_mode=value)
        assert s.get_relay_mode() is RelayMode(value.lower())

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="relay_mode"):
            _settings(relay_mode="neither")


class TestValidatePositive:
    @pytest.mark.parametrize("field", ["max_upload_bytes", "relay_max_attempts"])
    def test_zero_raises(self, field: str) -> None:
        with pytest.raises(ValueError, match="must be >= 1"):
            _settings(**{field: 0})


class TestKeyPrefix:
    def test_slashes_stripped(self) -> None:
        assert _settings(key_prefix="/replays/v2/").key_prefix == "replays/v2"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_allowed_extensions_normalised(self) -> None:
        s = _settings(allowed_extensions=" .REP, rep2 ,, ")
        assert s.get_allowed_extensions() == ["rep", "rep2"]

    def test_empty_extensions(self) -> None:
        assert _settings(allowed_extensions="").get_allowed_extensions() == []

    def test_cors_origins(self) -> None:
        s = _settings(cors_allow_origins="https://a.example, https://b.example")
        assert s.get_cors_origins() == ["https://a.example", "https://b.example"]

    def test_tls_needs_both_files(self) -> None:
        assert _settings(tls_certfile="cert.pem").tls_enabled() is False
        assert _settings(tls_certfile="cert.pem", tls_keyfile="key.pem").tls_enabled() is True


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


class TestEnvironmentVariables:
    def test_env_overrides_default(self) -> None:
        with patch.dict(os.environ, {"S3_BUCKET": "env-bucket", "RELAY_MODE": "original"}):
            s = _settings()
        assert s.s3_bucket == "env-bucket"
        assert s.get_relay_mode() is RelayMode.ORIGINAL

    def test_port_alias(self) -> None:
        with patch.dict(os.environ, {"PORT": "9443"}):
            assert _settings().api_port == 9443

    def test_kwargs_override_env(self) -> None:
        with patch.dict(os.environ, {"S3_BUCKET": "env-bucket"}):
            assert _settings(s3_bucket="kw-bucket").s3_bucket == "kw-bucket"


# ---------------------------------------------------------------------------
# get_settings caching
# ---------------------------------------------------------------------------


class TestGetSettings:
    def test_get_settings_returns_settings(self) -> None:
        """get_settings() is @lru_cache, so we clear it and invoke once."""
        get_settings.cache_clear()
        with patch.dict(os.environ, {"ENVIRONMENT": "STAGING"}, clear=False):
            settings = get_settings()
            assert isinstance(settings, Settings)
            assert settings.environment == "staging"
            assert get_settings() is settings

        get_settings.cache_clear()

    def test_invalid_settings_raise_configuration_error(self) -> None:
        get_settings.cache_clear()
        with patch.dict(os.environ, {"RELAY_MODE": "sideways"}, clear=False):
            with pytest.raises(ConfigurationError) as exc_info:
                get_settings()
        assert exc_info.value.context["fields"] == ["relay_mode"]

        get_settings.cache_clear()
