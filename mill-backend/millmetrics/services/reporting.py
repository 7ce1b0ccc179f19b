from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from ..errors import AggregationFailed
from ..models.filters import FilterParams
from .aggregation import QueryDescriptor, build_query
from .buckets import BucketSpec, resolve_bucket
from .catalog import ReportDefinition
from .predicates import PredicateSet, build_predicates, describe_params
from .quarters import QUARTER_MAP, QuarterMap
from .shaping import ShapeContext, shape, shape_row

logger = logging.getLogger(__name__)


class RowSource(Protocol):
    def fetch(self, descriptor: QueryDescriptor) -> List[Dict[str, Any]]: ...


@dataclass(frozen=True)
class ResolvedReport:
    predicates: PredicateSet
    bucket: Optional[BucketSpec]
    query: QueryDescriptor


def resolve_report(
    definition: ReportDefinition,
    params: FilterParams,
    *,
    today: Optional[date] = None,
    quarter_map: QuarterMap = QUARTER_MAP,
) -> ResolvedReport:
    table = definition.table
    predicates = build_predicates(
        params,
        date_column=table.date_column,
        scope_column=table.scope_column,
        scope=definition.scope_filters,
        quarter_map=quarter_map,
        today=today,
    )
    bucket = resolve_bucket(params, table.date_column) if definition.bucketed else None
    query = build_query(table, predicates, bucket, definition.metrics)
    return ResolvedReport(predicates=predicates, bucket=bucket, query=query)


def run_report(
    definition: ReportDefinition,
    params: FilterParams,
    repo: RowSource,
    *,
    today: Optional[date] = None,
    quarter_map: QuarterMap = QUARTER_MAP,
) -> List[Dict[str, Any]]:
    """Resolve, execute and shape one report; all or nothing."""
    resolved = resolve_report(definition, params, today=today, quarter_map=quarter_map)
    try:
        rows = repo.fetch(resolved.query)
    except AggregationFailed as exc:
        logger.exception(
            "report=%s organisation=%s filters=%s query=%s failed: %s",
            definition.key,
            params.organisation_id,
            describe_params(params),
            exc.context or resolved.query.describe(),
            exc.__cause__ or exc,
        )
        raise

    context = ShapeContext(
        granularity=resolved.bucket.granularity if resolved.bucket else None,
        fields=definition.fields,
    )
    if definition.bucketed:
        return shape(rows, context)
    # a totals query always yields one row, zero-filled when nothing matched
    return [shape_row(rows[0] if rows else dict.fromkeys(resolved.query.output_columns), context)]
