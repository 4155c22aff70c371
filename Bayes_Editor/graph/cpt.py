"""Index arithmetic for flat conditional probability tables.

A node's table is laid out over the dimensions
``[parent_1, ..., parent_k, self]`` in row-major order, so the node's own
value is the fastest varying coordinate::

    offset = sum(a_i * prod(arity_j for j > i))

Parents keep their insertion order. Changing that order changes the mapping,
which is why every structural edit rebuilds the table.
"""

from __future__ import annotations

from typing import Iterator, List, Sequence, Tuple

import numpy as np


def table_size(arity: int, parent_arities: Sequence[int] = ()) -> int:
    """Return the number of entries in a table with the given dimensions."""
    if arity <= 0:
        return 0
    return int(np.prod([arity, *parent_arities], dtype=np.int64))


def _dims(arity: int, parent_arities: Sequence[int]) -> List[int]:
    return [int(a) for a in parent_arities] + [int(arity)]


def index(
    self_value: int,
    parent_values: Sequence[int],
    arity: int,
    parent_arities: Sequence[int] = (),
) -> int:
    """Return the flat offset for a node value and its parents' values.

    Parameters
    ----------
    self_value:
        Index into the node's own value list.
    parent_values:
        One value index per parent, in parent insertion order.
    arity:
        Number of values of the node.
    parent_arities:
        Arity of each parent, in the same order as ``parent_values``.
    """
    if len(parent_values) != len(parent_arities):
        raise ValueError(
            f"expected {len(parent_arities)} parent values, got {len(parent_values)}"
        )
    dims = _dims(arity, parent_arities)
    coords = [int(v) for v in parent_values] + [int(self_value)]
    for pos, (value, size) in enumerate(zip(coords, dims)):
        if not 0 <= value < size:
            raise IndexError(f"value {value} out of range for dimension {pos}")
    return int(np.ravel_multi_index(coords, dims))


def decompose(
    offset: int, arity: int, parent_arities: Sequence[int] = ()
) -> Tuple[int, List[int]]:
    """Invert :func:`index` returning ``(self_value, parent_values)``."""
    size = table_size(arity, parent_arities)
    if not 0 <= offset < size:
        raise IndexError(f"offset {offset} outside table of size {size}")
    rest = int(offset)
    self_value = rest % arity
    rest //= arity
    parents = [0] * len(parent_arities)
    for pos in range(len(parent_arities) - 1, -1, -1):
        parents[pos] = rest % parent_arities[pos]
        rest //= parent_arities[pos]
    return self_value, parents


def assignments(
    arity: int, parent_arities: Sequence[int] = ()
) -> Iterator[Tuple[int, List[int]]]:
    """Yield every ``(self_value, parent_values)`` pair in offset order."""
    for offset in range(table_size(arity, parent_arities)):
        yield decompose(offset, arity, parent_arities)
