"""
screp-backed decoder adapter.

Implements DecoderPort by running the ``screp`` replay parser CLI against a
staged file and reading the JSON it prints on stdout. The binary format
itself is entirely screp's concern; every way the run can go wrong (bad
header, truncated file, unsupported version, timeout, missing binary) is
reported as the same DecodeError.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List

from domain.models import DecodedRecord
from ports.decoder import DecoderPort  # noqa: F401 (runtime_checkable)
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import DecodeError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.DECODER)

_STDERR_LOG_LIMIT = 500


def _flag(name: str, value: bool) -> str:
    return f"-{name}={'true' if value else 'false'}"


class ScrepDecoderAdapter:
    """Runs ``screp`` as a subprocess, one process per decode."""

    def __init__(
        self,
        binary: str = "screp",
        timeout: float = Defaults.DECODE_TIMEOUT,
        computed: bool = True,
        include_map: bool = False,
        include_commands: bool = False,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self.computed = computed
        self.include_map = include_map
        self.include_commands = include_commands

    # ------------------------------------------------------------------
    # DecoderPort implementation
    # ------------------------------------------------------------------

    def decode(self, source: Path) -> DecodedRecord:
        """Parse the replay at *source* into a DecodedRecord."""
        cmd = self._command(source)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.error("decode_timeout", timeout_seconds=self.timeout)
            raise DecodeError("Replay decoding timed out") from exc
        except OSError as exc:
            logger.error("decoder_unavailable", binary=self.binary, error=str(exc))
            raise DecodeError("Replay decoder unavailable") from exc

        if proc.returncode != 0:
            logger.warning(
                "decode_failed",
                exit_code=proc.returncode,
                stderr=proc.stderr.decode("utf-8", "replace")[:_STDERR_LOG_LIMIT],
            )
            raise DecodeError("Replay could not be decoded", context={"exit_code": proc.returncode})

        try:
            data = json.loads(proc.stdout)
        except ValueError as exc:
            logger.warning("decode_output_invalid", error=str(exc))
            raise DecodeError("Replay decoder produced invalid output") from exc

        if not isinstance(data, dict) or not data.get("Header"):
            raise DecodeError("Replay decoder produced no header")

        logger.info("replay_decoded", size_bytes=len(proc.stdout))
        return DecodedRecord(data=data)

    def annotate(self, record: DecodedRecord) -> DecodedRecord:
        """Add summary fields computed from the decoded header.

        Returns a new record; *record* is left untouched.
        """
        header: Dict[str, Any] = record.data.get("Header") or {}
        computed: Dict[str, Any] = record.data.get("Computed") or {}

        frames = header.get("Frames") or 0
        descs = {d.get("PlayerID"): d for d in computed.get("PlayerDescs") or []}
        players = [p for p in header.get("Players") or [] if not p.get("Observer")]

        summaries: List[Dict[str, Any]] = []
        for player in players:
            summary = {
                "Name": player.get("Name", ""),
                "Race": _race_name(player),
                "Team": player.get("Team"),
            }
            desc = descs.get(player.get("ID"))
            if desc:
                summary["APM"] = desc.get("APM")
                summary["EAPM"] = desc.get("EAPM")
            summaries.append(summary)

        derived = {
            **record.derived,
            "DurationSeconds": round(frames * Defaults.FRAME_DURATION_MS / 1000, 2),
            "PlayerCount": len(players),
            "Matchup": _matchup(players),
            "Players": summaries,
        }
        return DecodedRecord(data=record.data, derived=derived)

    def is_available(self) -> bool:
        """True when the screp binary can be found."""
        return shutil.which(self.binary) is not None or Path(self.binary).is_file()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _command(self, source: Path) -> List[str]:
        return [
            self.binary,
            _flag("header", True),
            _flag("computed", self.computed),
            _flag("map", self.include_map),
            _flag("cmds", self.include_commands),
            _flag("indent", False),
            str(source),
        ]


def _race_name(player: Dict[str, Any]) -> str:
    race = player.get("Race")
    if isinstance(race, dict):
        return race.get("Name") or ""
    return str(race or "")


def _matchup(players: List[Dict[str, Any]]) -> str:
    """Race letters grouped by team, e.g. ``PvZ`` or ``TPvZZ``."""
    teams: Dict[Any, List[str]] = {}
    for player in players:
        name = _race_name(player)
        teams.setdefault(player.get("Team"), []).append(name[:1].upper() or "?")
    ordered = sorted(teams.items(), key=lambda item: (item[0] is None, item[0] or 0))
    return "v".join("".join(sorted(letters)) for _, letters in ordered)
