"""Exception types raised by the indexer core."""
from __future__ import annotations

from typing import Optional, Sequence


class IndexerError(RuntimeError):
    pass


class ToolError(IndexerError):
    """An external tool (ffprobe/ffmpeg) exited non-zero or could not be started."""

    def __init__(self, message: str, *, cmd: Optional[Sequence[str]] = None, returncode: Optional[int] = None, stderr: str = "") -> None:
        self.cmd = list(cmd or [])
        self.returncode = returncode
        self.stderr = stderr or ""
        detail = message
        if self.cmd:
            detail += f": {' '.join(self.cmd)}"
        if returncode is not None:
            detail += f" (exit {returncode})"
        if self.stderr.strip():
            detail += f"\n{self.stderr.strip()}"
        super().__init__(detail)


class ProbeError(ToolError):
    pass


class TranscodeError(ToolError):
    pass


class SpriteError(IndexerError):
    pass


class CacheError(IndexerError):
    pass


class RelayError(IndexerError):
    pass


class Canceled(IndexerError):
    """Raised when a running external tool was killed because of cancellation."""


__all__ = [
    "IndexerError",
    "ToolError",
    "ProbeError",
    "TranscodeError",
    "SpriteError",
    "CacheError",
    "RelayError",
    "Canceled",
]
