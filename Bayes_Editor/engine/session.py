"""Child process session with the reasoning engine.

:class:`EngineSession` launches the engine, writes encoded commands to its
stdin and turns its stdout into command events. Reading is driven from
outside: a host calls :meth:`EngineSession.read_output` whenever stdout is
readable (``select`` in :meth:`EngineSession.poll`, a ``QSocketNotifier`` in
the GUI). Replies carry no request identifiers; callers rely on the order in
which they arrive.
"""

from __future__ import annotations

import logging
import os
import select
import subprocess
import time
from typing import IO, Any, Callable, Iterable, List, Optional, Tuple

from ..config import Settings
from .errors import EngineExitedError, EngineNotRunningError, EngineStartError
from .stream import protocol
from .stream.parser import SexpParser
from .stream.protocol import Arg, Command

logger = logging.getLogger(__name__)

CommandHandler = Callable[[str, List[str]], None]

READ_SIZE = 65536


class EngineSession:
    """Own one engine process for the lifetime of an editing session."""

    def __init__(
        self, settings: Settings, handler: Optional[CommandHandler] = None
    ) -> None:
        """Initialise the session.

        Parameters
        ----------
        settings:
            Application settings; ``engine_command()`` gives the argv to run.
        handler:
            Callable invoked as ``handler(name, args)`` for each reply.
        """
        self.settings = settings
        self.handler = handler
        self.parser = SexpParser()
        self.process: Optional[subprocess.Popen] = None
        self._exited = False
        self._stderr_open = False

    # ---- Lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Launch the engine and return once the process has started."""
        if self.running:
            return
        argv = self.settings.engine_command()
        try:
            self.process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise EngineStartError(f"cannot start engine {argv[0]!r}: {exc}") from exc
        self._exited = False
        self._stderr_open = True
        self.parser.reset()
        logger.info("Engine started: %s (pid %s)", " ".join(argv), self.process.pid)

    @property
    def running(self) -> bool:
        return (
            self.process is not None
            and not self._exited
            and self.process.poll() is None
        )

    def stop(self) -> Optional[int]:
        """Send ``quit`` and wait for the engine to exit."""
        if self.process is None:
            return None
        if self.running:
            try:
                self.quit()
            except (BrokenPipeError, EngineNotRunningError):
                logger.warning("Engine closed its input before quit")
        returncode = self.process.wait()
        self._exited = True
        for stream in (self.process.stdin, self.process.stdout, self.process.stderr):
            if stream is not None:
                stream.close()
        logger.info("Engine exited with code %s", returncode)
        self.process = None
        return returncode

    def __enter__(self) -> "EngineSession":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ---- Outgoing ------------------------------------------------------------

    def send(self, name: str, args: Iterable[Arg] = ()) -> str:
        """Encode and write one command; returns the text written."""
        if self.process is None or self._exited or self.process.stdin is None:
            raise EngineNotRunningError(f"cannot send {name!r}: engine not running")
        text = protocol.encode_command(name, args)
        logger.debug("-> %s", text.rstrip("\n"))
        self.process.stdin.write(text.encode("utf-8"))
        self.process.stdin.flush()
        return text

    def quit(self) -> None:
        self.send(protocol.QUIT)

    def load_file(self, path: str) -> None:
        self.send(protocol.LOAD_FILE, protocol.load_file_args(path))

    def save_file(self, path: str) -> None:
        self.send(protocol.SAVE_FILE, protocol.save_file_args(path))

    def algorithms(self) -> None:
        self.send(protocol.ALGORITHMS)

    def set_option(self, name: str, value: Arg) -> None:
        self.send(protocol.SET_OPTION, protocol.set_option_args(name, value))

    def query(
        self,
        algorithm: str,
        param: int | None = None,
        evidence: Iterable[Tuple[str, str]] = (),
    ) -> None:
        self.send(protocol.QUERY, protocol.query_args(algorithm, param, evidence))

    def load_network(self, network) -> None:
        self.send(protocol.LOAD_NETWORK, protocol.network_args(network))

    # ---- Incoming ------------------------------------------------------------

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self.process.stdout if self.process is not None else None

    @property
    def stderr(self) -> Optional[IO[bytes]]:
        return self.process.stderr if self.process is not None else None

    def read_output(self) -> List[Command]:
        """Read the bytes available on stdout and dispatch complete replies.

        Call only when stdout is readable, otherwise the read blocks.
        """
        if self.stdout is None:
            raise EngineNotRunningError("engine not running")
        data = os.read(self.stdout.fileno(), READ_SIZE)
        if not data:
            self._exited = True
            returncode = self.process.wait() if self.process is not None else None
            logger.error("Engine output closed (code %s)", returncode)
            raise EngineExitedError(returncode)
        return self.feed_output(data)

    def feed_output(self, data: bytes) -> List[Command]:
        """Parse ``data`` and emit every reply it completes, in order."""
        logger.debug("<- %s", data.decode("utf-8", errors="replace").rstrip("\n"))
        commands: List[Command] = []
        for expr in self.parser.feed(data):
            command = protocol.decode_expression(expr)
            if command is None:
                continue
            commands.append(command)
            if self.handler is not None:
                self.handler(command.name, list(command.args))
        return commands

    def read_errors(self) -> str:
        """Log whatever the engine wrote to stderr; never produces events."""
        if self.stderr is None:
            return ""
        data = os.read(self.stderr.fileno(), READ_SIZE)
        if not data:
            self._stderr_open = False
            return ""
        text = data.decode("utf-8", errors="replace")
        if text:
            logger.warning("[err] %s", text.rstrip("\n"))
        return text

    def poll(self, timeout: float | None = None) -> List[Command]:
        """Wait for engine output and pump the streams that are readable.

        Returns the commands decoded during this call; an empty list means
        the wait ended without output on stdout.
        """
        if self.stdout is None or self.stderr is None:
            raise EngineNotRunningError("engine not running")
        streams = [self.stdout]
        if self._stderr_open:
            streams.append(self.stderr)
        readable, _, _ = select.select(streams, [], [], timeout)
        commands: List[Command] = []
        if self.stderr in readable:
            self.read_errors()
        if self.stdout in readable:
            commands.extend(self.read_output())
        return commands

    def run_until(
        self, predicate: Callable[[], bool], timeout: float | None = None
    ) -> bool:
        """Pump output until ``predicate()`` holds.

        With ``timeout=None`` this waits as long as the engine takes. Returns
        ``False`` only if ``timeout`` elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            self.poll(remaining)
        return True
