from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import Path, Query

from ..models.filters import FilterParams
from ..models.reports import ErrorPayload
from ..repos.metrics_repo import MetricsRepo
from ..services.periods import today

ERROR_RESPONSES = {
    400: {"model": ErrorPayload, "description": "Missing organisation or invalid filters"},
    500: {"model": ErrorPayload, "description": "Aggregation query failed"},
}


def get_repo() -> MetricsRepo:
    return MetricsRepo()


def get_today() -> date:
    return today()


def get_filters(
    organisation_id: str = Path(..., description="Organisation identifier"),
    exact_date: Optional[str] = Query(default=None, alias="date", description="Single day (YYYY-MM-DD)"),
    start_date: Optional[str] = Query(default=None, description="Range start (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(default=None, description="Range end (YYYY-MM-DD)"),
    year: Optional[List[str]] = Query(default=None, description="Year(s)"),
    month: Optional[List[str]] = Query(default=None, description="Month(s), 1-12"),
    week: Optional[List[str]] = Query(default=None, description="Week(s) of month, 1-5; others ignored"),
    quarter: Optional[List[str]] = Query(default=None, description="Fiscal quarter(s), 1-4"),
) -> FilterParams:
    return FilterParams.from_query(
        organisation_id,
        date=exact_date,
        start_date=start_date,
        end_date=end_date,
        year=year,
        month=month,
        week=week,
        quarter=quarter,
    )
