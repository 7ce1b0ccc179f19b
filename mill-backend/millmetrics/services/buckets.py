"""Pick the time bucket a report is grouped by.

The choice depends only on which filter shapes are present: a date range or
week filter gives daily buckets, a month filter gives week-of-month buckets
and everything else, including the unfiltered default window, is monthly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Tuple, Union

from ..models.filters import FilterParams
from .periods import week_of_month

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class Granularity(str, Enum):
    DAILY = "daily"
    WEEKLY_IN_MONTH = "weekly_in_month"
    MONTHLY = "monthly"


class Expression(str, Enum):
    DAY = "day"
    DAY_LABEL = "day_label"
    MONTH_LABEL = "month_label"
    WEEK_OF_MONTH = "week_of_month"
    WEEK_LABEL = "week_label"
    FIRST_DAY = "first_day"


@dataclass(frozen=True)
class DateExpr:
    expression: Expression
    column: str


@dataclass(frozen=True)
class BucketSpec:
    granularity: Granularity
    label: DateExpr
    group_by: Tuple[DateExpr, ...]
    order_by: DateExpr

    def describe(self) -> str:
        groups = ", ".join(expr.expression.value for expr in self.group_by)
        return f"{self.granularity.value} group_by=({groups}) order_by={self.order_by.expression.value}"


def resolve_granularity(params: FilterParams) -> Granularity:
    if params.date_range is not None or params.weeks_of_month:
        return Granularity.DAILY
    if params.months:
        return Granularity.WEEKLY_IN_MONTH
    return Granularity.MONTHLY


def resolve_bucket(params: FilterParams, date_column: str = "date") -> BucketSpec:
    granularity = resolve_granularity(params)
    if granularity is Granularity.DAILY:
        return BucketSpec(
            granularity=granularity,
            label=DateExpr(Expression.DAY_LABEL, date_column),
            group_by=(DateExpr(Expression.DAY, date_column),),
            order_by=DateExpr(Expression.DAY, date_column),
        )
    if granularity is Granularity.WEEKLY_IN_MONTH:
        return BucketSpec(
            granularity=granularity,
            label=DateExpr(Expression.WEEK_LABEL, date_column),
            group_by=(
                DateExpr(Expression.WEEK_OF_MONTH, date_column),
                DateExpr(Expression.MONTH_LABEL, date_column),
            ),
            order_by=DateExpr(Expression.FIRST_DAY, date_column),
        )
    return BucketSpec(
        granularity=granularity,
        label=DateExpr(Expression.MONTH_LABEL, date_column),
        group_by=(DateExpr(Expression.MONTH_LABEL, date_column),),
        order_by=DateExpr(Expression.FIRST_DAY, date_column),
    )


def month_label(day: date) -> str:
    return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.year:04d}"


def format_label(granularity: Granularity, day: Union[date, datetime]) -> str:
    """Python rendering of the bucket label the database would produce.

    Queries from ``repos.metrics_repo`` already return text labels; this is for
    row sources that hand back the bucket's date itself.
    """
    if isinstance(day, datetime):
        day = day.date()
    if granularity is Granularity.DAILY:
        return day.isoformat()
    if granularity is Granularity.WEEKLY_IN_MONTH:
        return f"Week {week_of_month(day)}-{month_label(day)}"
    return month_label(day)
