"""Two-phase accumulation of line items by grouping key.

Groups are only complete once every row of the period has been seen, so the
accumulator has an explicit ``finalize()`` step and refuses additions after
it. Within a group, items keep arrival order; groups themselves are returned
in order of first appearance.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .models import LineItem


class GroupAccumulator:
    """Collect :class:`LineItem`s per ``group_key``.

    Usage
    -----
    acc = GroupAccumulator()
    for item in items:
        acc.add(item)
    groups = acc.finalize()  # -> Mapping[str, tuple[LineItem, ...]]
    """

    __slots__ = ("_groups", "_finalized", "_item_count")

    def __init__(self) -> None:
        self._groups: dict[str, list[LineItem]] = {}
        self._finalized: Mapping[str, tuple[LineItem, ...]] | None = None
        self._item_count = 0

    def add(self, item: LineItem) -> None:
        if self._finalized is not None:
            raise RuntimeError("GroupAccumulator is finalized; no more items can be added")
        self._groups.setdefault(item.group_key, []).append(item)
        self._item_count += 1

    def extend(self, items: Iterable[LineItem]) -> None:
        for item in items:
            self.add(item)

    def finalize(self) -> Mapping[str, tuple[LineItem, ...]]:
        """End accumulation and return the read-only groups (idempotent)."""

        if self._finalized is None:
            self._finalized = MappingProxyType(
                {key: tuple(items) for key, items in self._groups.items()}
            )
        return self._finalized

    @property
    def is_finalized(self) -> bool:
        return self._finalized is not None

    @property
    def item_count(self) -> int:
        return self._item_count

    def __len__(self) -> int:
        return len(self._groups)


__all__ = ["GroupAccumulator"]
