"""Bayes_Editor package initialization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .config import Settings
    from .engine.controller import SessionController
    from .engine.session import EngineSession

__all__ = ["EngineSession", "SessionController", "Settings"]


def __getattr__(name: str) -> Any:  # pragma: no cover - attribute access
    """Lazily expose the main entry points."""

    if name == "EngineSession":
        from .engine.session import EngineSession as _EngineSession

        return _EngineSession
    if name == "SessionController":
        from .engine.controller import SessionController as _SessionController

        return _SessionController
    if name == "Settings":
        from .config import Settings as _Settings

        return _Settings
    raise AttributeError(name)
