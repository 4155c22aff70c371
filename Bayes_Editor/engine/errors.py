"""Exceptions raised by the engine session."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for failures talking to the reasoning engine."""


class EngineStartError(EngineError):
    """Raised when the engine executable cannot be launched."""


class EngineExitedError(EngineError):
    """Raised when the engine process goes away while the session is open."""

    def __init__(self, returncode: int | None) -> None:
        super().__init__(f"engine exited unexpectedly (code {returncode})")
        self.returncode = returncode


class EngineNotRunningError(EngineError):
    """Raised when a command is sent without a running engine."""
