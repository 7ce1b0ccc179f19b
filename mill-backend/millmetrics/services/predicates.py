"""Turn ``FilterParams`` into an ordered, parameterised predicate list.

Precedence for the day-precision predicate is exact date, then date range,
then years. Months, weeks of month and quarters are ANDed on top of whichever
fired. When no temporal filter is present at all the trailing default window
is applied instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import settings
from ..models.filters import FilterParams
from .periods import default_window, today as current_date
from .quarters import QUARTER_MAP, QuarterMap


class Condition(str, Enum):
    EQUALS = "equals"
    BETWEEN = "between"
    YEAR_IN = "year_in"
    MONTH_IN = "month_in"
    WEEK_OF_MONTH_IN = "week_of_month_in"


_DESCRIPTIONS = {
    Condition.EQUALS: "{column} = {0}",
    Condition.BETWEEN: "{column} BETWEEN {0} AND {1}",
    Condition.YEAR_IN: "year_of({column}) IN {0}",
    Condition.MONTH_IN: "month_of({column}) IN {0}",
    Condition.WEEK_OF_MONTH_IN: "week_of_month({column}) IN {0}",
}


@dataclass(frozen=True)
class Predicate:
    """One condition plus the values bound to it.

    Membership conditions carry a single tuple value; ``BETWEEN`` carries the
    two bounds; ``EQUALS`` carries the compared value.
    """

    condition: Condition
    column: str
    values: Tuple[Any, ...]

    def describe(self) -> str:
        rendered = [_format_value(value) for value in self.values]
        return _DESCRIPTIONS[self.condition].format(*rendered, column=self.column)


def _format_value(value: Any) -> str:
    if isinstance(value, tuple):
        return "{" + ", ".join(str(item) for item in value) + "}"
    if isinstance(value, date):
        return value.isoformat()
    return repr(value) if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class PredicateSet:
    predicates: Tuple[Predicate, ...]
    window: Optional[Tuple[date, date]] = field(default=None)

    @property
    def used_default_window(self) -> bool:
        return self.window is not None

    def describe(self) -> List[str]:
        return [predicate.describe() for predicate in self.predicates]

    def __iter__(self):
        return iter(self.predicates)

    def __len__(self) -> int:
        return len(self.predicates)


def build_predicates(
    params: FilterParams,
    *,
    date_column: str = "date",
    scope_column: str = "organisation_id",
    scope: Optional[Mapping[str, Any]] = None,
    quarter_map: QuarterMap = QUARTER_MAP,
    today: Optional[date] = None,
    window_months: Optional[int] = None,
) -> PredicateSet:
    """Resolve the WHERE conditions for ``params``.

    ``scope`` holds extra fixed equality filters (for example a shift) that
    follow the organisation predicate. Column names must come from the metric
    catalog, never from request input.
    """
    predicates: List[Predicate] = [Predicate(Condition.EQUALS, scope_column, (params.organisation_id,))]
    for column, value in (scope or {}).items():
        predicates.append(Predicate(Condition.EQUALS, column, (value,)))

    if params.exact_date is not None:
        predicates.append(Predicate(Condition.EQUALS, date_column, (params.exact_date,)))
    elif params.date_range is not None:
        predicates.append(
            Predicate(Condition.BETWEEN, date_column, (params.date_range.start, params.date_range.end))
        )
    elif params.years:
        predicates.append(Predicate(Condition.YEAR_IN, date_column, (params.years,)))

    if params.months:
        predicates.append(Predicate(Condition.MONTH_IN, date_column, (params.months,)))

    if params.weeks_of_month:
        predicates.append(Predicate(Condition.WEEK_OF_MONTH_IN, date_column, (params.weeks_of_month,)))

    if params.quarters:
        quarter_months = quarter_map.expand(params.quarters)
        if quarter_months:
            predicates.append(Predicate(Condition.MONTH_IN, date_column, (quarter_months,)))

    window = None
    if not params.has_temporal_filter:
        anchor = today if today is not None else current_date()
        months = window_months if window_months is not None else settings.default_window_months
        window = default_window(anchor, months)
        predicates.append(Predicate(Condition.BETWEEN, date_column, window))

    return PredicateSet(predicates=tuple(predicates), window=window)


def describe_params(params: FilterParams) -> Dict[str, Any]:
    """Compact dict of the filters actually set, for log lines."""
    return {
        name: value
        for name, value in params.model_dump(exclude={"organisation_id"}).items()
        if value not in (None, ())
    }
