"""Sorted, selectable collection of scan candidates."""

from __future__ import annotations

from collections.abc import Iterator

from .models import Candidate, ScanStats


class ResultSet:
    """Candidates ordered by age, youngest first, with live aggregates.

    Every mutation recomputes the affected aggregates from the full set, so
    ``stats`` always agrees with the current members and selection flags.
    Index arguments out of range are ignored.
    """

    def __init__(self) -> None:
        self._items: list[Candidate] = []
        self._stats = ScanStats()

    def insert(self, candidate: Candidate) -> None:
        self._items.append(candidate)
        # list.sort is stable: equal ages keep discovery order
        self._items.sort(key=lambda c: c.age_days)
        self._recompute()

    def toggle(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            return
        candidate = self._items[index]
        candidate.selected = not candidate.selected
        self._recompute_selection()

    def select_all(self) -> None:
        self._set_all(True)

    def deselect_all(self) -> None:
        self._set_all(False)

    def clear(self) -> None:
        self._items.clear()
        self._stats = ScanStats()

    @property
    def stats(self) -> ScanStats:
        return self._stats

    @property
    def candidates(self) -> tuple[Candidate, ...]:
        return tuple(self._items)

    def selected(self) -> list[Candidate]:
        """Selected candidates in display order."""
        return [c for c in self._items if c.selected]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Candidate:
        return self._items[index]

    def _set_all(self, value: bool) -> None:
        for candidate in self._items:
            candidate.selected = value
        self._recompute_selection()

    def _recompute(self) -> None:
        selected = [c for c in self._items if c.selected]
        self._stats = ScanStats(
            total_count=len(self._items),
            selected_count=len(selected),
            total_size=sum(c.size_bytes for c in self._items),
            selected_size=sum(c.size_bytes for c in selected),
        )

    def _recompute_selection(self) -> None:
        selected = [c for c in self._items if c.selected]
        self._stats = ScanStats(
            total_count=self._stats.total_count,
            selected_count=len(selected),
            total_size=self._stats.total_size,
            selected_size=sum(c.size_bytes for c in selected),
        )
