"""Fiscal quarter to calendar month lookup."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from ..config import settings


class QuarterMap:
    """Immutable mapping from fiscal quarter (1-4) to its calendar months.

    Quarter 1 starts at ``fiscal_year_start_month`` and each quarter covers
    three consecutive months, wrapping past December.
    """

    __slots__ = ("_start_month", "_months")

    def __init__(self, fiscal_year_start_month: int = 3) -> None:
        if not 1 <= fiscal_year_start_month <= 12:
            raise ValueError("fiscal_year_start_month must be between 1 and 12")
        months = {}
        for quarter in range(1, 5):
            first = fiscal_year_start_month - 1 + (quarter - 1) * 3
            months[quarter] = tuple((first + offset) % 12 + 1 for offset in range(3))
        self._start_month = fiscal_year_start_month
        self._months: Mapping[int, Tuple[int, ...]] = MappingProxyType(months)

    @property
    def start_month(self) -> int:
        return self._start_month

    def months_for(self, quarter: int) -> Tuple[int, ...]:
        try:
            return self._months[quarter]
        except KeyError:
            raise ValueError(f"Unknown quarter: {quarter}") from None

    def expand(self, quarters: Iterable[int]) -> Tuple[int, ...]:
        """Union of the months covered by ``quarters``, sorted, without duplicates."""
        expanded = set()
        for quarter in quarters:
            expanded.update(self.months_for(quarter))
        return tuple(sorted(expanded))

    def as_dict(self) -> dict:
        return {quarter: list(months) for quarter, months in self._months.items()}

    def __repr__(self) -> str:
        return f"QuarterMap(fiscal_year_start_month={self._start_month})"


# March-May is Q1 unless FISCAL_YEAR_START_MONTH says otherwise.
QUARTER_MAP = QuarterMap(settings.fiscal_year_start_month)
