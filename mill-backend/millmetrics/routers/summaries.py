from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status

from ..models.filters import FilterParams
from ..models.reports import ReportCatalog, ReportRow
from ..repos.metrics_repo import MetricsRepo
from ..services.catalog import SUMMARIES
from ..services.reporting import run_report
from .charts import describe
from .dependencies import ERROR_RESPONSES, get_filters, get_repo, get_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/summaries", tags=["summaries"])


@router.get("", response_model=ReportCatalog)
def list_summaries() -> ReportCatalog:
    return ReportCatalog(reports=[describe(definition) for definition in SUMMARIES.values()])


@router.get("/{summary}/{organisation_id}", response_model=ReportRow, responses=ERROR_RESPONSES)
def summary_totals(
    summary: str,
    response: Response,
    params: FilterParams = Depends(get_filters),
    repo: MetricsRepo = Depends(get_repo),
    today: date = Depends(get_today),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> ReportRow:
    definition = SUMMARIES.get(summary)
    if definition is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown summary: {summary}")
    (totals,) = run_report(definition, params, repo, today=today)
    response.headers["Cache-Control"] = "private, max-age=60"
    logger.info(
        "summary_totals summary=%s organisation_id=%s request_id=%s",
        summary,
        params.organisation_id,
        x_request_id,
    )
    return totals
