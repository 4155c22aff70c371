"""Incremental S-expression parser for engine output.

Engine output arrives in arbitrary chunks. :class:`SexpParser` keeps the
partial state of the expression being read between calls to :meth:`feed` so a
reply split over several reads is returned once, complete, by the call that
finishes it.

Parsed lists are returned as Python ``list`` objects and atoms as ``str``.
String literals are returned without their quotes and with backslash escapes
resolved.
"""

from __future__ import annotations

import codecs
import logging
from typing import Any, List, Union

logger = logging.getLogger(__name__)

Expr = Union[str, List[Any]]

_WHITESPACE = " \t\r\n\f\v"


class SexpParser:
    """Turn a stream of text chunks into complete top-level expressions."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder_factory = codecs.getincrementaldecoder(encoding)
        self.reset()

    def reset(self) -> None:
        """Drop any partially parsed input."""
        self._decoder = self._decoder_factory(errors="replace")
        self._stack: List[List[Any]] = []
        self._atom: List[str] | None = None
        self._in_string = False
        self._escape = False

    @property
    def pending(self) -> bool:
        """``True`` while an incomplete expression is retained."""
        return bool(self._stack) or self._atom is not None or self._in_string

    @property
    def depth(self) -> int:
        return len(self._stack)

    def feed(self, chunk: bytes | str) -> List[Expr]:
        """Consume ``chunk`` and return the expressions it completes."""
        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        done: List[Expr] = []
        for ch in text:
            if self._in_string:
                self._string_char(ch, done)
            elif ch == '"':
                self._finish_atom(done)
                self._in_string = True
                self._atom = []
            elif ch == "(":
                self._finish_atom(done)
                self._stack.append([])
            elif ch == ")":
                self._finish_atom(done)
                if not self._stack:
                    logger.debug("Dropping unbalanced ')' in engine output")
                    continue
                self._emit(self._stack.pop(), done)
            elif ch in _WHITESPACE:
                self._finish_atom(done)
            else:
                if self._atom is None:
                    self._atom = []
                self._atom.append(ch)
        return done

    # ------------------------------------------------------------------
    def _string_char(self, ch: str, done: List[Expr]) -> None:
        assert self._atom is not None
        if self._escape:
            self._atom.append(ch)
            self._escape = False
        elif ch == "\\":
            self._escape = True
        elif ch == '"':
            self._in_string = False
            text = "".join(self._atom)
            self._atom = None
            self._emit(text, done)
        else:
            self._atom.append(ch)

    def _finish_atom(self, done: List[Expr]) -> None:
        if self._atom is None:
            return
        text = "".join(self._atom)
        self._atom = None
        self._emit(text, done)

    def _emit(self, expr: Expr, done: List[Expr]) -> None:
        if self._stack:
            self._stack[-1].append(expr)
        else:
            done.append(expr)
