"""
Port interface for the structured-decoding engine.

Implementations: ScrepDecoderAdapter (adapters/)
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from domain.models import DecodedRecord


@runtime_checkable
class DecoderPort(Protocol):
    """Turns a staged artifact into a structured record."""

    def decode(self, source: Path) -> DecodedRecord:
        """Decode the artifact stored at *source*.

        The file is only read, never modified.

        Raises:
            DecodeError: For any malformed input or engine failure.
        """
        ...

    def annotate(self, record: DecodedRecord) -> DecodedRecord:
        """Return *record* with derived fields added. Pure; never raises."""
        ...

    def is_available(self) -> bool:
        """Whether the engine can be invoked at all."""
        ...
