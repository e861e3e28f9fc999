from types import SimpleNamespace

import pytest

from taskboard.errors import ValidationError
from taskboard.ordering import assign_positions, check_ordering, compact, is_dense, next_position


def test_next_position_appends_after_siblings():
    assert next_position(0) == 0
    assert next_position(3) == 3


def test_assign_positions_uses_sequence_index():
    assert assign_positions([7, 3, 5]) == {7: 0, 3: 1, 5: 2}
    assert assign_positions([]) == {}


def test_check_ordering_accepts_full_permutation():
    check_ordering([1, 2, 3], [3, 1, 2])
    check_ordering([], [])


@pytest.mark.parametrize(
    "ordered, fragment",
    [
        ([1, 2], "omits"),
        ([1, 2, 3, 4], "unknown"),
        ([1, 2, 2, 3], "duplicate"),
    ],
)
def test_check_ordering_rejects_mismatch(ordered, fragment):
    with pytest.raises(ValidationError) as excinfo:
        check_ordering([1, 2, 3], ordered)
    assert fragment in excinfo.value.message


def test_check_ordering_foreign_ids_allowed_for_moves():
    check_ordering([1, 2], [9, 1, 2], allow_foreign=True)
    with pytest.raises(ValidationError):
        check_ordering([1, 2], [9, 1], allow_foreign=True)


def test_compact_rewrites_positions_and_counts_changes():
    items = [SimpleNamespace(position=p) for p in (0, 2, 5)]
    assert compact(items, "position") == 2
    assert [i.position for i in items] == [0, 1, 2]
    assert compact(items, "position") == 0


def test_is_dense():
    assert is_dense([])
    assert is_dense([2, 0, 1])
    assert not is_dense([0, 2])
    assert not is_dense([0, 0, 1])
    assert not is_dense([1, 2])
