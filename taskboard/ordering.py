from typing import Iterable, Sequence

from .errors import ValidationError


def next_position(sibling_count: int) -> int:
    """Return the position for a member appended after ``sibling_count`` siblings."""
    return sibling_count


def assign_positions(ordered_ids: Sequence[int]) -> dict[int, int]:
    return {member_id: index for index, member_id in enumerate(ordered_ids)}


def check_ordering(
    current_ids: Iterable[int],
    ordered_ids: Sequence[int],
    allow_foreign: bool = False,
) -> None:
    """Validate a full reordering request against the current membership.

    Every current member must be named exactly once. With ``allow_foreign``
    the request may also name ids from outside the container (a task being
    moved in from another list); the caller checks those exist.
    """
    current = set(current_ids)
    requested = list(ordered_ids)
    if len(set(requested)) != len(requested):
        raise ValidationError("ordering contains duplicate ids")
    missing = current.difference(requested)
    if missing:
        raise ValidationError(f"ordering omits ids {sorted(missing)}")
    if not allow_foreign:
        extra = set(requested).difference(current)
        if extra:
            raise ValidationError(f"ordering names unknown ids {sorted(extra)}")


def compact(items: Sequence[object], attr: str) -> int:
    """Rewrite ``attr`` on already-ordered ``items`` to 0..n-1.

    Returns how many items actually changed.
    """
    changed = 0
    for index, item in enumerate(items):
        if getattr(item, attr) != index:
            setattr(item, attr, index)
            changed += 1
    return changed


def is_dense(positions: Iterable[int]) -> bool:
    values = sorted(positions)
    return values == list(range(len(values)))
