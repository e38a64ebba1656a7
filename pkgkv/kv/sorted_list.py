from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence


def insert_if_absent(sorted_values: Sequence[str], value: str) -> list[str]:
    """Return a new sorted list containing *value*.

    *sorted_values* must already be sorted and unique. It is never modified;
    when *value* is already present the result is a plain copy.
    """
    i = bisect_left(sorted_values, value)
    if i < len(sorted_values) and sorted_values[i] == value:
        return list(sorted_values)
    return [*sorted_values[:i], value, *sorted_values[i:]]
