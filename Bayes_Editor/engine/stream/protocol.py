"""S-expression command codec for the reasoning engine.

Outgoing commands are written as one line of Lisp-style text::

    (<name> <arg> <arg> ...)\\n

Arguments are typed: strings are quoted and escaped, integers and floats are
written as decimal literals, booleans become ``T`` / ``NIL`` and lists nest in
parentheses. The :data:`RAW` marker emits nothing itself; it makes the next
argument appear verbatim, which is how bare symbols such as ``network`` or
``:name`` are placed among otherwise quoted arguments.

Incoming replies are parsed by :mod:`.parser` and flattened here into a
lower-cased command name and a list of string arguments.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from numbers import Integral, Real
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ...graph.model import Network

TRUE_LITERAL = "T"
FALSE_LITERAL = "NIL"

#: Second ``add-algorithm`` argument for algorithms without a parameter.
NO_PARAM = FALSE_LITERAL

#: ``node-meta`` keys that carry a node position.
POSITION_X = ":X"
POSITION_Y = ":Y"

# Outgoing command names
QUIT = "quit"
LOAD_FILE = "load-file"
SAVE_FILE = "save-file"
ALGORITHMS = "algorithms"
QUERY = "query"
SET_OPTION = "set-option"
LOAD_NETWORK = "load-network"

# Incoming command names
INFO = "info"
NETWORK_NAME = "network-name"
NODE_NAME = "node-name"
NODE_META = "node-meta"
NODE_VALS = "node-vals"
NODE_TABLE = "node-table"
ADD_ALGORITHM = "add-algorithm"
NODE_PARENT = "node-parent"
LOAD_FILE_DONE = "load-file-done"
SETVAL = "setval"
QUERY_DONE = "query-done"
FILE_SAVE_DONE = "file-save-done"
ERROR = "error"


class RawSymbol:
    """Marker argument: emit the following argument unquoted."""

    _instance: Optional["RawSymbol"] = None

    def __new__(cls) -> "RawSymbol":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "RAW"


RAW = RawSymbol()

Arg = Union[str, int, float, bool, RawSymbol, Sequence["Arg"]]


@dataclass
class Command:
    """A command name with its ordered arguments."""

    name: str
    args: List[Any] = field(default_factory=list)


def escape(text: str) -> str:
    """Escape backslashes, then double quotes."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def format_float(value: float) -> str:
    """Return the shortest decimal text that reads back as ``value``.

    Positional notation is used unless the magnitude makes it unwieldy.
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"cannot encode non-finite float {value!r}")
    magnitude = abs(value)
    if magnitude != 0.0 and (magnitude >= 1e16 or magnitude < 1e-16):
        return repr(value)
    return np.format_float_positional(value, unique=True, trim="0")


def _encode_verbatim(value: Any) -> str:
    if isinstance(value, (RawSymbol, list, tuple)):
        raise TypeError(f"cannot emit {type(value).__name__} as a raw symbol")
    if isinstance(value, bool):
        return TRUE_LITERAL if value else FALSE_LITERAL
    if isinstance(value, Integral):
        return str(int(value))
    if isinstance(value, Real):
        return format_float(value)
    return str(value)


def encode_args(args: Iterable[Arg]) -> str:
    """Encode ``args`` into space separated literal tokens."""
    tokens: List[str] = []
    raw_next = False
    for value in args:
        if raw_next:
            raw_next = False
            tokens.append(_encode_verbatim(value))
        elif isinstance(value, RawSymbol):
            raw_next = True
        elif isinstance(value, bool):
            tokens.append(TRUE_LITERAL if value else FALSE_LITERAL)
        elif isinstance(value, Integral):
            tokens.append(str(int(value)))
        elif isinstance(value, Real):
            tokens.append(format_float(value))
        elif isinstance(value, (list, tuple)):
            tokens.append("(" + encode_args(value) + ")")
        else:
            tokens.append('"' + escape(str(value)) + '"')
    if raw_next:
        raise ValueError("RAW marker must be followed by an argument")
    return " ".join(tokens)


def encode_command(name: str, args: Iterable[Arg] = ()) -> str:
    """Return the wire text of command ``name`` with ``args``."""
    return "(" + escape(name) + " " + encode_args(args) + ")\n"


def flatten(expr: Any) -> List[str]:
    """Flatten a parsed expression depth first into its atoms."""
    if isinstance(expr, list):
        out: List[str] = []
        for item in expr:
            out.extend(flatten(item))
        return out
    return [str(expr)]


def decode_expression(expr: Any) -> Command | None:
    """Turn a parsed reply into a :class:`Command` with string arguments.

    Nested lists do not keep their structure; their atoms become plain
    arguments. Returns ``None`` for an expression without atoms.
    """
    tokens = flatten(expr)
    if not tokens:
        return None
    return Command(tokens[0].lower(), tokens[1:])


# ---- Outgoing command builders ----------------------------------------------


def load_file_args(path: str) -> List[Arg]:
    return [path, True]


def save_file_args(path: str) -> List[Arg]:
    return [path]


def set_option_args(name: str, value: Arg) -> List[Arg]:
    return [name, value]


def query_args(
    algorithm: str,
    param: int | None = None,
    evidence: Iterable[Tuple[str, str]] = (),
) -> List[Arg]:
    """Build ``query`` arguments: algorithm, optional parameter, evidence pairs."""
    args: List[Arg] = [algorithm]
    if param is not None:
        args.append(int(param))
    for node_name, value_name in evidence:
        args.append([node_name, value_name])
    return args


def network_args(network: "Network") -> List[Arg]:
    """Build the nested ``load-network`` structure describing ``network``."""
    args: List[Arg] = [[RAW, "network", RAW, ":name", network.name]]
    for node in network.nodes:
        meta: List[Arg] = []
        for key, value in node.meta.items():
            meta.extend([RAW, ":" + key, value])
        args.append(
            [
                RAW, "node",
                RAW, ":name", node.name,
                RAW, ":vals", list(node.values),
                RAW, ":parents", [p.name for p in node.parents],
                RAW, ":table", [float(p) for p in node.table],
                RAW, ":meta", meta,
            ]
        )
    return args
