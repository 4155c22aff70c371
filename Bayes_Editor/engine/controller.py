"""Load, save and query flows on top of an :class:`EngineSession`.

The engine protocol has no request identifiers, so the controller remembers
which logical flow is in progress and interprets each reply accordingly. A
flow starts when the controller sends its request (``load-file``,
``save-file`` or ``query``) and ends with the matching ``*-done`` reply, an
``error`` reply or an unrecognised reply.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from ..config import Settings
from ..graph.model import Network, Node
from .stream import protocol
from .stream.protocol import Arg

logger = logging.getLogger(__name__)

# Lisp float syntax with a non-"e" exponent marker, e.g. 0.25d0
_LISP_FLOAT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)[dDfFsSlL][+-]?\d+$")


class Flow(str, Enum):
    """Logical operation awaiting engine replies."""

    LOAD = "load"
    SAVE = "save"
    QUERY = "query"


@dataclass
class FlowError:
    """An engine failure reported to the caller once."""

    flow: Optional[Flow]
    message: str
    unknown_command: bool = False


@dataclass
class Algorithm:
    name: str
    has_param: bool


class CommandSender(Protocol):
    def send(self, name: str, args: List[Arg] = ...) -> str: ...


class SessionController:
    """Dispatch engine replies onto the networks of an editing session."""

    def __init__(
        self,
        sender: CommandSender,
        settings: Settings,
        *,
        on_error: Optional[Callable[[FlowError], None]] = None,
        on_info: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.sender = sender
        self.settings = settings
        self.on_error = on_error
        self.on_info = on_info
        self.networks: List[Network] = []
        self.current_index = -1
        self.file_names: Dict[int, str] = {}
        self.algorithms: List[Algorithm] = []
        self.status = ""
        self.loading = False
        self.saving = False
        self.querying = False
        self.query_mode = False
        self.algorithm: Optional[str] = None
        self.algorithm_param: Optional[int] = None
        self._handlers: Dict[str, Tuple[Callable[[List[str]], bool], Callable[[List[str]], None]]] = {
            protocol.INFO: (_count(1), self._on_info),
            protocol.NETWORK_NAME: (_count(1), self._on_network_name),
            protocol.NODE_NAME: (_count(1), self._on_node_name),
            protocol.NODE_META: (_count(3), self._on_node_meta),
            protocol.NODE_VALS: (_at_least(3), self._on_node_vals),
            protocol.NODE_TABLE: (_at_least(3), self._on_node_table),
            protocol.ADD_ALGORITHM: (_count(2), self._on_add_algorithm),
            protocol.NODE_PARENT: (_count(2), self._on_node_parent),
            protocol.LOAD_FILE_DONE: (_count(0), self._on_load_done),
            protocol.SETVAL: (_count(3), self._on_setval),
            protocol.QUERY_DONE: (_count(0), self._on_query_done),
            protocol.FILE_SAVE_DONE: (_count(0), self._on_save_done),
            protocol.ERROR: (lambda args: True, self._on_error),
        }

    # ---- Networks ------------------------------------------------------------

    @property
    def network(self) -> Optional[Network]:
        if 0 <= self.current_index < len(self.networks):
            return self.networks[self.current_index]
        return None

    def new_network(self) -> Network:
        """Create an empty network and make it current."""
        network = Network()
        self.networks.append(network)
        self.current_index = len(self.networks) - 1
        return network

    def close_network(self, index: int) -> None:
        """Drop the network at ``index``; the previous one becomes current."""
        if not 0 <= index < len(self.networks):
            raise IndexError("network index out of range")
        del self.networks[index]
        self.file_names = {
            (i if i < index else i - 1): name
            for i, name in self.file_names.items()
            if i != index
        }
        if self.current_index >= index:
            self.current_index -= 1
        if self.current_index < 0 and self.networks:
            self.current_index = 0

    @property
    def busy(self) -> bool:
        return self.loading or self.saving or self.querying

    @property
    def file_name(self) -> Optional[str]:
        return self.file_names.get(self.current_index)

    # ---- Outgoing flows ------------------------------------------------------

    def request_algorithms(self) -> None:
        self.sender.send(protocol.ALGORITHMS)

    def open_file(self, path: str) -> Network:
        """Start loading ``path`` into a new current network."""
        network = self.new_network()
        self.file_names[self.current_index] = path
        self.settings.open_path = path
        self.loading = True
        self.sender.send(protocol.LOAD_FILE, protocol.load_file_args(path))
        return network

    def define_network(self) -> None:
        """Send the current network to the engine with ``load-network``."""
        network = self._require_network()
        self.sender.send(protocol.LOAD_NETWORK, protocol.network_args(network))

    def save_file(self, path: Optional[str] = None) -> None:
        """Save the current network through the engine."""
        self._require_network()
        path = path or self.file_name
        if not path:
            raise ValueError("no file name for the current network")
        self.file_names[self.current_index] = path
        self.saving = True
        self.define_network()
        self.sender.send(protocol.SAVE_FILE, protocol.save_file_args(path))
        self.settings.save_path = path

    def enter_query_mode(self, algorithm: str, param: Optional[int] = None) -> None:
        """Switch to query mode and run a first query on a fresh definition."""
        self.algorithm = algorithm
        self.algorithm_param = param
        self.query_mode = True
        self.query(define=True)

    def leave_query_mode(self) -> None:
        self.query_mode = False
        self.querying = False

    def set_evidence(self, node: Node, index: Optional[int]) -> None:
        """Change evidence on ``node``; re-queries while in query mode."""
        node.set_evidence(index)
        if self.query_mode:
            self.query(define=False)

    def query(self, define: bool = True) -> None:
        """Ask the engine for posteriors of the current network."""
        network = self._require_network()
        if self.algorithm is None:
            raise ValueError("no algorithm selected")
        self.querying = True
        if define:
            self.define_network()
            if self.settings.diff_small_value > 0:
                self.sender.send(
                    protocol.SET_OPTION,
                    protocol.set_option_args(
                        "diff-small-value", float(self.settings.diff_small_value)
                    ),
                )
            if self.settings.diff_check_period > 0:
                self.sender.send(
                    protocol.SET_OPTION,
                    protocol.set_option_args(
                        "diff-check-period", int(self.settings.diff_check_period)
                    ),
                )
        param = None
        if self._algorithm_has_param(self.algorithm):
            param = self.algorithm_param or 0
        evidence = [
            (node.name, node.evidence_value)
            for node in network.nodes
            if node.evidence is not None
        ]
        self.sender.send(
            protocol.QUERY, protocol.query_args(self.algorithm, param, evidence)
        )

    def _algorithm_has_param(self, name: str) -> bool:
        for algorithm in self.algorithms:
            if algorithm.name == name:
                return algorithm.has_param
        return self.algorithm_param is not None

    def _require_network(self) -> Network:
        network = self.network
        if network is None:
            raise ValueError("no current network")
        return network

    # ---- Incoming dispatch ---------------------------------------------------

    def handle(self, name: str, args: List[str]) -> None:
        """Apply one decoded engine reply."""
        entry = self._handlers.get(name)
        if entry is None or not entry[0](args):
            self._on_unknown(name, args)
            return
        entry[1](list(args))

    __call__ = handle

    def _on_info(self, args: List[str]) -> None:
        self.status = args[0]
        if self.on_info is not None:
            self.on_info(self.status)

    def _on_network_name(self, args: List[str]) -> None:
        if self.loading and self.network is not None:
            self.network.set_name(args[0])

    def _on_node_name(self, args: List[str]) -> None:
        if self.loading and self.network is not None:
            self.network.add_node(args[0])

    def _on_node_meta(self, args: List[str]) -> None:
        node = self._node(args[0])
        if node is None:
            return
        key, value = args[1], args[2]
        if key in (protocol.POSITION_X, protocol.POSITION_Y):
            coord = _to_float(value)
            if coord is None:
                return
            if key == protocol.POSITION_X:
                node.move_to(x=coord)
            else:
                node.move_to(y=coord)
        else:
            node.set_meta(key.lstrip(":").lower(), value)

    def _on_node_vals(self, args: List[str]) -> None:
        if not self.loading:
            return
        node = self._node(args[0])
        if node is not None:
            node.load_values(args[1:])

    def _on_node_table(self, args: List[str]) -> None:
        node = self._node(args[0])
        if node is None:
            return
        table = [_to_float(v) for v in args[1:]]
        if any(p is None for p in table):
            return
        node.set_table(table)

    def _on_add_algorithm(self, args: List[str]) -> None:
        name = args[0]
        has_param = args[1] != protocol.NO_PARAM
        self.algorithms = [a for a in self.algorithms if a.name != name]
        self.algorithms.append(Algorithm(name, has_param))

    def _on_node_parent(self, args: List[str]) -> None:
        network = self.network
        if network is None:
            return
        child = network.node_by_name(args[0])
        parent = network.node_by_name(args[1])
        if child is None or parent is None or not network.can_connect(parent, child):
            return
        network.add_edge(parent, child)

    def _on_load_done(self, args: List[str]) -> None:
        self.loading = False

    def _on_setval(self, args: List[str]) -> None:
        node = self._node(args[0])
        p = _to_float(args[2])
        if node is None or p is None or args[1] not in node.values:
            return
        node.set_posterior(args[1], p)

    def _on_query_done(self, args: List[str]) -> None:
        self.querying = False

    def _on_save_done(self, args: List[str]) -> None:
        self.saving = False

    def _on_error(self, args: List[str]) -> None:
        self._abort(" ".join(args), unknown=False)

    def _on_unknown(self, name: str, args: List[str]) -> None:
        logger.warning("Unknown engine command %r with %d args", name, len(args))
        self._abort(f"Unknown command: {name} ({len(args)})", unknown=True)

    def _abort(self, message: str, *, unknown: bool) -> None:
        flow: Optional[Flow] = None
        if self.loading:
            flow = Flow.LOAD
            self.loading = False
            self.close_network(self.current_index)
        elif self.saving:
            flow = Flow.SAVE
            self.saving = False
        elif self.query_mode or self.querying:
            flow = Flow.QUERY
            self.leave_query_mode()
        error = FlowError(flow, message, unknown)
        logger.error("Engine error during %s: %s", flow.value if flow else "idle", message)
        if self.on_error is not None:
            self.on_error(error)

    def _node(self, name: str) -> Optional[Node]:
        network = self.network
        if network is None:
            return None
        return network.node_by_name(name)


def _count(n: int) -> Callable[[List[str]], bool]:
    return lambda args: len(args) == n


def _at_least(n: int) -> Callable[[List[str]], bool]:
    return lambda args: len(args) >= n


def _to_float(text: str) -> Optional[float]:
    if _LISP_FLOAT.match(text):
        text = re.sub("[dDfFsSlL]", "e", text)
    try:
        return float(text)
    except ValueError:
        return None
