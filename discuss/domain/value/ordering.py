"""Identity comparison and ordering helpers shared by all tree operations.

Lists of ids in a comment tree are kept newest-first, the order the server
delivers pages in. Locally created comments are prepended ahead of any
fetched page, and every merge deduplicates by id with the first occurrence
winning.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import TypeVar

T = TypeVar("T")


def same_id(a: object, b: object) -> bool:
    """Compare two identifiers by their string form.

    Ids may arrive as plain strings from the server or as NewType-wrapped
    values created locally; both compare equal when their text matches.
    """
    if a is None or b is None:
        return a is b
    return str(a) == str(b)


def unique_ids(ids: Iterable[T]) -> tuple[T, ...]:
    """Drop repeated ids, keeping the first occurrence of each."""
    seen: set[T] = set()
    result: list[T] = []
    for item in ids:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return tuple(result)


def prepend_unique(ids: Sequence[T], new_id: T) -> tuple[T, ...]:
    """Put ``new_id`` at the head of ``ids``, removing any later copy."""
    return (new_id, *(i for i in ids if i != new_id))


def append_unique(
    ids: Sequence[T], incoming: Iterable[T], exclude: Iterable[T] = ()
) -> tuple[T, ...]:
    """Append ``incoming`` after ``ids`` without introducing duplicates.

    Args:
        ids: Current list, kept as-is
        incoming: Ids to add at the tail, in delivery order
        exclude: Extra ids that must not be appended

    Returns:
        New tuple with the accepted incoming ids at the end
    """
    blocked = set(ids) | set(exclude)
    added: list[T] = []
    for item in incoming:
        if item in blocked:
            continue
        blocked.add(item)
        added.append(item)
    return (*ids, *added)


def newest_first(
    items: Iterable[T], key: Callable[[T], datetime] = lambda item: item.created_at
) -> list[T]:
    """Sort items newest to oldest.

    The sort is stable, so items sharing a timestamp keep their input order.
    """
    return sorted(items, key=key, reverse=True)
