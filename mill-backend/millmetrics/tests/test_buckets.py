from __future__ import annotations

from datetime import date, datetime

import pytest

from millmetrics.models.filters import DateRange, FilterParams
from millmetrics.services.buckets import (
    DateExpr,
    Expression,
    Granularity,
    format_label,
    resolve_bucket,
    resolve_granularity,
)

RANGE = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31))


def _params(**kwargs) -> FilterParams:
    return FilterParams(organisation_id="UNI0024", **kwargs)


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({}, Granularity.MONTHLY),
        ({"years": (2025,)}, Granularity.MONTHLY),
        ({"quarters": (1,)}, Granularity.MONTHLY),
        ({"exact_date": date(2025, 3, 9)}, Granularity.MONTHLY),
        ({"months": (3, 4)}, Granularity.WEEKLY_IN_MONTH),
        ({"months": (3,), "years": (2024,)}, Granularity.WEEKLY_IN_MONTH),
        ({"weeks_of_month": (2,)}, Granularity.DAILY),
        ({"weeks_of_month": (2,), "months": (3,)}, Granularity.DAILY),
        ({"date_range": RANGE}, Granularity.DAILY),
        ({"date_range": RANGE, "months": (1,), "quarters": (4,), "years": (2025,)}, Granularity.DAILY),
    ],
)
def test_granularity_decision(kwargs, expected):
    assert resolve_granularity(_params(**kwargs)) is expected


def test_invalid_weeks_do_not_force_daily_buckets():
    params = FilterParams.from_query("UNI0024", week="9")
    assert resolve_granularity(params) is Granularity.MONTHLY


def test_daily_bucket_groups_and_orders_by_the_date():
    bucket = resolve_bucket(_params(date_range=RANGE))
    assert bucket.label == DateExpr(Expression.DAY_LABEL, "date")
    assert bucket.group_by == (DateExpr(Expression.DAY, "date"),)
    assert bucket.order_by == DateExpr(Expression.DAY, "date")


def test_weekly_bucket_groups_by_week_and_month():
    bucket = resolve_bucket(_params(months=(3,)), date_column="report_date")
    assert bucket.label == DateExpr(Expression.WEEK_LABEL, "report_date")
    assert bucket.group_by == (
        DateExpr(Expression.WEEK_OF_MONTH, "report_date"),
        DateExpr(Expression.MONTH_LABEL, "report_date"),
    )
    assert bucket.order_by == DateExpr(Expression.FIRST_DAY, "report_date")


def test_monthly_bucket_orders_by_earliest_day():
    bucket = resolve_bucket(_params())
    assert bucket.granularity is Granularity.MONTHLY
    assert bucket.group_by == (DateExpr(Expression.MONTH_LABEL, "date"),)
    assert bucket.order_by == DateExpr(Expression.FIRST_DAY, "date")


def test_labels():
    assert format_label(Granularity.DAILY, date(2025, 3, 9)) == "2025-03-09"
    assert format_label(Granularity.WEEKLY_IN_MONTH, date(2025, 3, 9)) == "Week 2-Mar 2025"
    assert format_label(Granularity.MONTHLY, date(2025, 1, 20)) == "Jan 2025"
    assert format_label(Granularity.MONTHLY, datetime(2024, 12, 1, 8, 30)) == "Dec 2024"
