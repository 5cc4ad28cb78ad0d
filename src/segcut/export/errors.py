"""Export error types."""

from __future__ import annotations

from pathlib import Path


class ExportError(Exception):
    """Base class for export failures."""


class OutputNotWritableError(ExportError):
    """Raised when the output file exists but cannot be written to."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(
            f"Output file exists and is not writable: {self.path}. "
            "Check its permissions, close any program using it, "
            "or choose a different output directory."
        )


class SmartCutImpossibleError(ExportError):
    """Raised when a segment needs smart cut but it cannot be done safely."""
