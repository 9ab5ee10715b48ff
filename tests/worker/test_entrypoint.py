"""
Comprehensive tests for worker.entrypoint.main().

Covers:
  - Happy path (env vars set, pipeline succeeds, exit 0)
  - Missing env vars (exit 1)
  - Pipeline failure reported in the result (exit 1)
  - Unexpected exception and unreadable input file (exit 1)
  - Console-script wrapper exits with the code main() returned
"""

from unittest.mock import MagicMock, patch

import pytest

from worker.entrypoint import cli, main

from conftest import CORRUPT_REPLAY, VALID_REPLAY


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def worker_env(monkeypatch, tmp_path):
    """Point the worker at a replay file on tmp_path."""
    replay = tmp_path / "incoming" / "game.rep"
    replay.parent.mkdir()
    replay.write_bytes(VALID_REPLAY)

    monkeypatch.setenv("OWNER_ID", "u1")
    monkeypatch.setenv("ARTIFACT_ID", "r1")
    monkeypatch.setenv("REPLAY_PATH", str(replay))
    monkeypatch.delenv("FILENAME", raising=False)
    return replay


@pytest.fixture()
def container(make_pipeline):
    mock = MagicMock()
    mock.get_upload_pipeline.return_value = make_pipeline()
    with patch("worker.entrypoint.get_di_container", return_value=mock):
        yield mock


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestWorkerMain:
    def test_happy_path_returns_zero(self, worker_env, container, local_store) -> None:
        assert main() == 0
        assert local_store.get("replays/u1/r1/game.rep") == VALID_REPLAY
        assert local_store.exists("replays/u1/r1/game.rep.json")

    def test_input_file_left_in_place(self, worker_env, container) -> None:
        main()
        assert worker_env.read_bytes() == VALID_REPLAY

    def test_filename_override(self, worker_env, container, local_store, monkeypatch) -> None:
        monkeypatch.setenv("FILENAME", "final.rep")
        assert main() == 0
        assert local_store.exists("replays/u1/r1/final.rep.json")

    @pytest.mark.parametrize("missing", ["OWNER_ID", "ARTIFACT_ID", "REPLAY_PATH"])
    def test_missing_env_returns_one(self, worker_env, container, monkeypatch, missing) -> None:
        monkeypatch.delenv(missing)
        assert main() == 1
        container.get_upload_pipeline.assert_not_called()

    def test_missing_env_prints_error(self, worker_env, container, monkeypatch, capsys) -> None:
        monkeypatch.delenv("OWNER_ID")
        main()
        assert "OWNER_ID" in capsys.readouterr().err

    def test_pipeline_error_returns_one(self, worker_env, container, local_store) -> None:
        worker_env.write_bytes(CORRUPT_REPLAY)
        assert main() == 1
        assert not local_store.exists("replays/u1/r1/game.rep.json")

    def test_missing_input_file_returns_one(self, worker_env, container) -> None:
        worker_env.unlink()
        assert main() == 1

    def test_unexpected_exception_returns_one(self, worker_env, container) -> None:
        container.get_upload_pipeline.side_effect = RuntimeError("boom")
        assert main() == 1


class TestCli:
    @pytest.mark.parametrize("code", [0, 1])
    @patch("worker.entrypoint.configure_logging")
    def test_exits_with_main_code(self, mock_configure, code) -> None:
        with patch("worker.entrypoint.main", return_value=code) as mock_main:
            with pytest.raises(SystemExit) as excinfo:
                cli()

        assert excinfo.value.code == code
        mock_configure.assert_called_once()
        mock_main.assert_called_once_with()
