from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status

from ..models.filters import FilterParams
from ..models.reports import ReportCatalog, ReportInfo, ReportRow
from ..repos.metrics_repo import MetricsRepo
from ..services.catalog import CHARTS, ReportDefinition
from ..services.reporting import run_report
from .dependencies import ERROR_RESPONSES, get_filters, get_repo, get_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/charts", tags=["charts"])


def describe(definition: ReportDefinition) -> ReportInfo:
    return ReportInfo(
        key=definition.key,
        title=definition.title,
        table=definition.table.name,
        metrics=[metric.alias for metric in definition.metrics],
        fields=[field.name for field in definition.fields],
        bucketed=definition.bucketed,
    )


@router.get("", response_model=ReportCatalog)
def list_charts() -> ReportCatalog:
    return ReportCatalog(reports=[describe(definition) for definition in CHARTS.values()])


@router.get("/{chart}/{organisation_id}", response_model=List[ReportRow], responses=ERROR_RESPONSES)
def chart_series(
    chart: str,
    response: Response,
    params: FilterParams = Depends(get_filters),
    repo: MetricsRepo = Depends(get_repo),
    today: date = Depends(get_today),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> List[ReportRow]:
    definition = CHARTS.get(chart)
    if definition is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown chart: {chart}")
    rows = run_report(definition, params, repo, today=today)
    response.headers["Cache-Control"] = "private, max-age=60"
    logger.info(
        "chart_series chart=%s organisation_id=%s rows=%s request_id=%s",
        chart,
        params.organisation_id,
        len(rows),
        x_request_id,
    )
    return rows
