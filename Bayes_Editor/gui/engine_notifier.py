from __future__ import annotations

import logging
from typing import List, Optional

from PySide6.QtCore import QObject, QSocketNotifier, Signal

from ..engine.errors import EngineError
from ..engine.session import EngineSession

logger = logging.getLogger(__name__)


class EngineNotifier(QObject):
    """Pump an :class:`EngineSession` from the Qt event loop.

    Socket notifiers watch the engine's stdout and stderr; when either
    becomes readable the matching session pump runs on the GUI thread and
    decoded replies are re-emitted as :attr:`command_received`.
    """

    command_received = Signal(str, list)
    diagnostic = Signal(str)
    engine_failed = Signal(str)

    def __init__(self, session: EngineSession, parent: Optional[QObject] = None) -> None:
        """Attach to the running ``session`` and take over its handler."""
        super().__init__(parent)
        self._session = session
        session.handler = self._emit_command
        self._out: Optional[QSocketNotifier] = None
        self._err: Optional[QSocketNotifier] = None
        if session.stdout is not None:
            self._out = QSocketNotifier(
                session.stdout.fileno(), QSocketNotifier.Type.Read, self
            )
            self._out.activated.connect(self._stdout_ready)
        if session.stderr is not None:
            self._err = QSocketNotifier(
                session.stderr.fileno(), QSocketNotifier.Type.Read, self
            )
            self._err.activated.connect(self._stderr_ready)

    def _emit_command(self, name: str, args: List[str]) -> None:
        self.command_received.emit(name, args)

    def _stdout_ready(self, *_args) -> None:
        try:
            self._session.read_output()
        except EngineError as exc:
            self.detach()
            self.engine_failed.emit(str(exc))

    def _stderr_ready(self, *_args) -> None:
        text = self._session.read_errors()
        if text:
            self.diagnostic.emit(text)
        elif self._err is not None:
            self._err.setEnabled(False)

    def detach(self) -> None:
        """Stop watching the engine streams."""
        for notifier in (self._out, self._err):
            if notifier is not None:
                notifier.setEnabled(False)
