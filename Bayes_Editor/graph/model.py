from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import cpt


@dataclass(eq=False)
class Node:
    """A discrete random variable of a Bayesian network.

    Nodes compare by identity: names are not required to be unique inside a
    :class:`Network`. The probability table is rebuilt, zero filled, on every
    structural change to the node or to the value lists of its parents.
    """

    name: str
    values: List[str] = field(default_factory=list)
    parents: List["Node"] = field(default_factory=list)
    table: List[float] = field(default_factory=list)
    evidence: Optional[int] = None
    posterior: List[float] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0
    _children: List["Node"] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.values = list(self.values)
        if not self.table:
            self.refresh_table()

    # ---- Naming and values ---------------------------------------------------

    def set_name(self, name: str) -> None:
        """Rename the node; empty names are ignored."""
        if name:
            self.name = name

    @property
    def arity(self) -> int:
        return len(self.values)

    def set_values(self, values: Sequence[str]) -> None:
        """Replace the whole value list."""
        self.values = list(values)
        self._values_changed()

    def load_values(self, values: Sequence[str]) -> None:
        """Assign the value list reported by a load without touching tables.

        Load replies may deliver a table before the value lists it depends
        on, so neither this node's table nor its children's are rebuilt.
        """
        self.values = list(values)
        self.posterior = [0.0] * self.arity

    def add_value(self, value: str, index: int | None = None) -> None:
        """Insert ``value`` at ``index`` or append it when ``index`` is ``None``."""
        if index is None or index < 0:
            self.values.append(value)
        else:
            self.values.insert(index, value)
        self._values_changed()

    def remove_value(self, index: int) -> None:
        """Delete the value at ``index``."""
        if index < 0 or index >= len(self.values):
            raise IndexError("value index out of range")
        del self.values[index]
        self._values_changed()

    def rename_value(self, index: int, name: str) -> None:
        """Rename a value in place; the table keeps its entries."""
        if index < 0 or index >= len(self.values):
            raise IndexError("value index out of range")
        self.values[index] = name

    def _values_changed(self) -> None:
        self.evidence = None
        self.posterior = [0.0] * self.arity
        self.refresh_table()
        for child in self._children:
            child.refresh_table()

    # ---- Probability table ---------------------------------------------------

    @property
    def parent_arities(self) -> List[int]:
        return [p.arity for p in self.parents]

    def table_size(self) -> int:
        """Return the size the table must have for the current structure."""
        return cpt.table_size(self.arity, self.parent_arities)

    def refresh_table(self) -> None:
        """Discard the table and zero fill it to the current size."""
        self.table = [0.0] * self.table_size()

    def set_table(self, table: Sequence[float]) -> None:
        self.table = [float(p) for p in table]

    def probability(self, offset: int) -> float:
        """Return table entry ``offset`` or ``0.0`` when it does not exist."""
        if 0 <= offset < len(self.table):
            return self.table[offset]
        return 0.0

    def set_probability(self, offset: int, p: float) -> None:
        """Write one table entry, appending when ``offset`` is past the end."""
        if offset < 0:
            raise IndexError("negative table offset")
        if offset < len(self.table):
            self.table[offset] = float(p)
        else:
            self.table.append(float(p))

    def cpt_index(self, self_value: int, parent_values: Sequence[int]) -> int:
        """Return the table offset of an assignment of this node and its parents."""
        return cpt.index(self_value, parent_values, self.arity, self.parent_arities)

    def cpt_decompose(self, offset: int) -> Tuple[int, List[int]]:
        """Return ``(self_value, parent_values)`` for table ``offset``."""
        return cpt.decompose(offset, self.arity, self.parent_arities)

    # ---- Parents -------------------------------------------------------------

    def add_parent(self, parent: "Node") -> None:
        if parent is self:
            raise ValueError("a node cannot be its own parent")
        if any(p is parent for p in self.parents):
            raise ValueError("duplicate parent")
        self.parents.append(parent)
        parent._children.append(self)
        self.refresh_table()

    def remove_parent(self, parent: "Node") -> None:
        if not any(p is parent for p in self.parents):
            return
        self.parents = [p for p in self.parents if p is not parent]
        parent._children = [c for c in parent._children if c is not self]
        self.refresh_table()

    @property
    def children(self) -> List["Node"]:
        return list(self._children)

    # ---- Query state ---------------------------------------------------------

    def set_evidence(self, index: int | None) -> None:
        """Fix the node to value ``index`` or clear evidence with ``None``."""
        if index is not None and not 0 <= index < self.arity:
            raise IndexError("evidence index out of range")
        self.evidence = index

    def toggle_evidence(self, index: int) -> None:
        """Select ``index`` as evidence, or clear it if it is already selected."""
        self.set_evidence(None if self.evidence == index else index)

    @property
    def evidence_value(self) -> str | None:
        if self.evidence is None:
            return None
        return self.values[self.evidence]

    def set_posterior(self, value: str, p: float) -> None:
        """Store the query result ``p`` for the value named ``value``."""
        i = self.values.index(value)
        if len(self.posterior) < self.arity:
            self.posterior.extend([0.0] * (self.arity - len(self.posterior)))
        self.posterior[i] = float(p)

    def posterior_of(self, index: int) -> float:
        if 0 <= index < len(self.posterior):
            return self.posterior[index]
        return 0.0

    # ---- Metadata ------------------------------------------------------------

    def set_meta(self, key: str, value: Any) -> None:
        self.meta[key] = value

    def move_to(self, x: float | None = None, y: float | None = None) -> None:
        """Update the node position; the position is mirrored into ``meta``."""
        if x is not None:
            self.x = float(x)
            self.meta["x"] = self.x
        if y is not None:
            self.y = float(y)
            self.meta["y"] = self.y


@dataclass(eq=False)
class Edge:
    """Directed edge; ``destination`` has ``source`` as a parent."""

    source: Node
    destination: Node


@dataclass
class Network:
    """In-memory Bayesian network owned by one editing session."""

    name: str = "Untitled network"
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def set_name(self, name: str) -> None:
        if name:
            self.name = name

    # ---- Nodes ---------------------------------------------------------------

    def add_node(
        self,
        name: str,
        *,
        values: Sequence[str] = (),
        x: float = 0.0,
        y: float = 0.0,
    ) -> Node:
        """Create a node and append it to the network."""
        node = Node(name, values=list(values))
        node.move_to(x, y)
        self.nodes.append(node)
        return node

    def node_by_name(self, name: str) -> Node | None:
        """Return the first node called ``name``."""
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def remove_node(self, node: Node) -> None:
        """Delete ``node`` and every edge touching it."""
        if not any(n is node for n in self.nodes):
            return
        for edge in self.edges_of(node):
            self.remove_edge(edge)
        self.nodes = [n for n in self.nodes if n is not node]

    # ---- Edges ---------------------------------------------------------------

    def edges_of(self, node: Node) -> List[Edge]:
        """Return edges that start or end at ``node``."""
        return [e for e in self.edges if e.source is node or e.destination is node]

    def has_edge_between(self, a: Node, b: Node) -> bool:
        """Return ``True`` if any edge connects ``a`` and ``b`` in either direction."""
        return any(
            (e.source is a and e.destination is b)
            or (e.source is b and e.destination is a)
            for e in self.edges
        )

    def can_connect(self, source: Node, destination: Node) -> bool:
        return source is not destination and not self.has_edge_between(
            source, destination
        )

    def add_edge(self, source: Node, destination: Node) -> Edge:
        """Connect ``source`` to ``destination``.

        Self-loops and a second edge between the same pair of nodes, in either
        direction, are rejected with ``ValueError``. Cycles are not checked
        here; see :meth:`is_acyclic`.
        """
        if source is destination:
            raise ValueError("self-loops are not allowed")
        if self.has_edge_between(source, destination):
            raise ValueError("nodes are already connected")
        edge = Edge(source, destination)
        self.edges.append(edge)
        destination.add_parent(source)
        return edge

    def connect(self, source: str, destination: str) -> Edge:
        """Connect two nodes by name."""
        src = self.node_by_name(source)
        dst = self.node_by_name(destination)
        if src is None or dst is None:
            raise ValueError("source and target must exist in the network")
        return self.add_edge(src, dst)

    def remove_edge(self, edge: Edge) -> None:
        if not any(e is edge for e in self.edges):
            return
        self.edges = [e for e in self.edges if e is not edge]
        edge.destination.remove_parent(edge.source)

    # ---- Structure checks ----------------------------------------------------

    def to_networkx(self):
        """Return a ``networkx.DiGraph`` whose vertices are the nodes."""
        import networkx as nx

        g = nx.DiGraph()
        g.add_nodes_from(self.nodes)
        g.add_edges_from((e.source, e.destination) for e in self.edges)
        return g

    def is_acyclic(self) -> bool:
        import networkx as nx

        return nx.is_directed_acyclic_graph(self.to_networkx())

    def find_cycle(self) -> List[Node] | None:
        """Return the nodes of one directed cycle, or ``None`` when acyclic."""
        import networkx as nx

        try:
            cycle = nx.find_cycle(self.to_networkx(), orientation="original")
        except nx.NetworkXNoCycle:
            return None
        return [u for u, _v, _dir in cycle]

    def topological_order(self) -> List[Node]:
        """Return nodes parents first; raises ``ValueError`` on a cycle."""
        import networkx as nx

        try:
            return list(nx.topological_sort(self.to_networkx()))
        except nx.NetworkXUnfeasible as exc:
            raise ValueError("network contains a cycle") from exc

    def apply_spring_layout(self, seed: int | None = None, scale: float = 200.0) -> None:
        """Position nodes using ``networkx.spring_layout``."""
        import networkx as nx

        if not self.nodes:
            return
        g = self.to_networkx().to_undirected()
        pos = nx.spring_layout(g, seed=seed, scale=scale)
        for node, coords in pos.items():
            node.move_to(float(coords[0]), float(coords[1]))
