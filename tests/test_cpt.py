import itertools

import pytest

from Bayes_Editor.graph import cpt


def test_index_is_row_major_with_self_fastest():
    # dims: parent_1 (2) x parent_2 (4) x self (3)
    assert cpt.index(0, [0, 0], 3, [2, 4]) == 0
    assert cpt.index(1, [0, 0], 3, [2, 4]) == 1
    assert cpt.index(0, [0, 1], 3, [2, 4]) == 3
    assert cpt.index(0, [1, 0], 3, [2, 4]) == 12
    assert cpt.index(2, [1, 3], 3, [2, 4]) == 1 * 12 + 3 * 3 + 2


@pytest.mark.parametrize(
    "arity, parents",
    [(1, []), (2, []), (3, [2]), (2, [2, 2]), (3, [4, 1, 2]), (2, [3, 2, 2])],
)
def test_round_trip_covers_table_without_gaps(arity, parents):
    size = cpt.table_size(arity, parents)
    seen = set()
    for parent_values in itertools.product(*[range(p) for p in parents]):
        for self_value in range(arity):
            offset = cpt.index(self_value, list(parent_values), arity, parents)
            assert cpt.decompose(offset, arity, parents) == (
                self_value,
                list(parent_values),
            )
            seen.add(offset)
    assert seen == set(range(size))


def test_table_size_edge_cases():
    assert cpt.table_size(3) == 3
    assert cpt.table_size(3, []) == 3
    assert cpt.table_size(0, [2, 3]) == 0
    assert cpt.table_size(2, [0]) == 0
    assert cpt.table_size(2, [3, 2]) == 12


def test_index_rejects_out_of_range_values():
    with pytest.raises(IndexError):
        cpt.index(2, [], 2, [])
    with pytest.raises(IndexError):
        cpt.index(0, [3], 2, [3])
    with pytest.raises(ValueError):
        cpt.index(0, [0, 0], 2, [2])


def test_decompose_rejects_offsets_outside_table():
    with pytest.raises(IndexError):
        cpt.decompose(4, 2, [2])
    with pytest.raises(IndexError):
        cpt.decompose(-1, 2, [2])
    with pytest.raises(IndexError):
        cpt.decompose(0, 0, [])


def test_assignments_follow_offset_order():
    rows = list(cpt.assignments(2, [2]))
    assert rows == [(0, [0]), (1, [0]), (0, [1]), (1, [1])]
