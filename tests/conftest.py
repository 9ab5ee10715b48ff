"""
Root conftest.py — shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • The environment below is set before any application module is
      imported, so the cached Settings point at throwaway directories and
      the local store backend (no AWS).
"""

import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="replay-server-tests-")
os.environ.setdefault("STORE_BACKEND", "local")
os.environ.setdefault("STAGING_DIR", os.path.join(_TEST_ROOT, "staging"))
os.environ.setdefault("LOCAL_STORE_ROOT", os.path.join(_TEST_ROOT, "store"))
os.environ.setdefault("SCREP_BINARY", "screp-not-installed")

from pathlib import Path  # noqa: E402
from typing import Callable, List  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from adapters.local_artifact_store import LocalArtifactStoreAdapter  # noqa: E402
from adapters.local_staging_area import LocalStagingArea  # noqa: E402
from domain.models import DecodedRecord  # noqa: E402
from services.upload_pipeline import UploadPipeline  # noqa: E402
from shared_utils.constants import RelayMode  # noqa: E402
from shared_utils.error_handler import DecodeError  # noqa: E402


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Sample replay bytes
# ---------------------------------------------------------------------------

REPLAY_MAGIC = b"reRS"
VALID_REPLAY = REPLAY_MAGIC + bytes(range(256)) * 8
CORRUPT_REPLAY = b"\x00\x01truncated"


@pytest.fixture()
def valid_replay() -> bytes:
    return VALID_REPLAY


@pytest.fixture()
def corrupt_replay() -> bytes:
    return CORRUPT_REPLAY


# ---------------------------------------------------------------------------
# Fake decoder
# ---------------------------------------------------------------------------

class FakeDecoder:
    """DecoderPort stand-in: accepts files starting with REPLAY_MAGIC.

    Records the size of every file it was asked to decode, so tests can
    check that only complete staged files reach the decoder.
    """

    def __init__(self) -> None:
        self.decoded_sizes: List[int] = []

    def decode(self, source: Path) -> DecodedRecord:
        data = Path(source).read_bytes()
        self.decoded_sizes.append(len(data))
        if not data.startswith(REPLAY_MAGIC):
            raise DecodeError("Replay could not be decoded")
        return DecodedRecord(
            data={
                "Header": {
                    "Frames": 1000,
                    "Players": [
                        {"ID": 0, "Name": "Flash", "Team": 1, "Race": {"Name": "Terran"}},
                        {"ID": 1, "Name": "Jaedong", "Team": 2, "Race": {"Name": "Zerg"}},
                    ],
                },
                "SizeBytes": len(data),
                "Checksum": sum(data) % 65536,
            }
        )

    def annotate(self, record: DecodedRecord) -> DecodedRecord:
        return DecodedRecord(data=record.data, derived={"PlayerCount": 2, "Matchup": "TvZ"})

    def is_available(self) -> bool:
        return True


@pytest.fixture()
def fake_decoder() -> FakeDecoder:
    return FakeDecoder()


# ---------------------------------------------------------------------------
# Real local adapters on tmp_path
# ---------------------------------------------------------------------------

@pytest.fixture()
def staging(tmp_path: Path) -> LocalStagingArea:
    return LocalStagingArea(root=tmp_path / "staging")


@pytest.fixture()
def local_store(tmp_path: Path) -> LocalArtifactStoreAdapter:
    return LocalArtifactStoreAdapter(root=tmp_path / "store")


def staged_files(staging: LocalStagingArea) -> List[Path]:
    """All files currently in the staging area."""
    if not staging.root.exists():
        return []
    return [p for p in staging.root.rglob("*") if p.is_file()]


@pytest.fixture()
def make_pipeline(staging, local_store, fake_decoder) -> Callable[..., UploadPipeline]:
    """Factory building an UploadPipeline over the tmp_path adapters.

    Keyword arguments override any constructor argument.
    """
    def _make(**overrides) -> UploadPipeline:
        kwargs = {
            "staging": staging,
            "artifact_store": local_store,
            "decoder": fake_decoder,
            "relay_mode": RelayMode.BOTH,
            "max_upload_bytes": 64 * 1024,
        }
        kwargs.update(overrides)
        return UploadPipeline(**kwargs)

    return _make


@pytest.fixture()
def mock_artifact_store() -> MagicMock:
    """Pre-configured artifact store mock."""
    mock = MagicMock()
    mock.name = "mock"
    mock.put.side_effect = lambda key, source, content_type="": f"mock://{key}"
    return mock
