from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from ..db import pool, set_search_path
from ..errors import AggregationFailed
from ..services.aggregation import LABEL_ALIAS, Aggregate, Metric, QueryDescriptor
from ..services.buckets import DateExpr, Expression
from ..services.predicates import Condition, Predicate

logger = logging.getLogger(__name__)


def _week_of_month(column: sql.Identifier) -> sql.Composed:
    return sql.SQL("(FLOOR((EXTRACT(DAY FROM {col}) - 1) / 7) + 1)").format(col=column)


def _month_label(column: sql.Identifier) -> sql.Composed:
    return sql.SQL("TO_CHAR({col}, 'Mon YYYY')").format(col=column)


def render_expression(expr: DateExpr) -> sql.Composable:
    column = sql.Identifier(expr.column)
    if expr.expression is Expression.DAY:
        return column
    if expr.expression is Expression.DAY_LABEL:
        return sql.SQL("TO_CHAR({col}, 'YYYY-MM-DD')").format(col=column)
    if expr.expression is Expression.MONTH_LABEL:
        return _month_label(column)
    if expr.expression is Expression.WEEK_OF_MONTH:
        return _week_of_month(column)
    if expr.expression is Expression.WEEK_LABEL:
        return sql.SQL("CONCAT('Week ', {week}, '-', {month})").format(
            week=_week_of_month(column), month=_month_label(column)
        )
    if expr.expression is Expression.FIRST_DAY:
        return sql.SQL("MIN({col})").format(col=column)
    raise ValueError(f"Unsupported expression: {expr.expression}")


def render_predicate(predicate: Predicate) -> Tuple[sql.Composable, List[Any]]:
    column = sql.Identifier(predicate.column)
    if predicate.condition is Condition.EQUALS:
        return sql.SQL("{col} = %s").format(col=column), [predicate.values[0]]
    if predicate.condition is Condition.BETWEEN:
        start, end = predicate.values
        return sql.SQL("{col} BETWEEN %s AND %s").format(col=column), [start, end]
    if predicate.condition is Condition.YEAR_IN:
        return sql.SQL("EXTRACT(YEAR FROM {col}) = ANY(%s)").format(col=column), [list(predicate.values[0])]
    if predicate.condition is Condition.MONTH_IN:
        return sql.SQL("EXTRACT(MONTH FROM {col}) = ANY(%s)").format(col=column), [list(predicate.values[0])]
    if predicate.condition is Condition.WEEK_OF_MONTH_IN:
        return sql.SQL("{week} = ANY(%s)").format(week=_week_of_month(column)), [list(predicate.values[0])]
    raise ValueError(f"Unsupported condition: {predicate.condition}")


def _metric_operand(metric: Metric, column: str) -> sql.Composable:
    value = sql.SQL("{col}::NUMERIC").format(col=sql.Identifier(column))
    if metric.when is None:
        return value
    return sql.SQL("CASE WHEN {cond} = %s THEN {value} END").format(
        cond=sql.Identifier(metric.when[0]), value=value
    )


def render_metric(metric: Metric) -> Tuple[sql.Composable, List[Any]]:
    params: List[Any] = []
    if metric.fn is Aggregate.AVG:
        expression = sql.SQL("ROUND(AVG({operand}), 2)").format(operand=_metric_operand(metric, metric.columns[0]))
        if metric.when is not None:
            params.append(metric.when[1])
    else:
        terms = []
        for column in metric.columns:
            terms.append(sql.SQL("COALESCE(SUM({operand}), 0)").format(operand=_metric_operand(metric, column)))
            if metric.when is not None:
                params.append(metric.when[1])
        expression = sql.SQL(" + ").join(terms)
    return sql.SQL("{expr} AS {alias}").format(expr=expression, alias=sql.Identifier(metric.alias)), params


def render_query(descriptor: QueryDescriptor) -> Tuple[sql.Composed, List[Any]]:
    """Render ``descriptor`` to a composed statement and its ordered parameters."""
    select_items: List[sql.Composable] = []
    params: List[Any] = []
    bucket = descriptor.bucket

    if bucket is not None:
        select_items.append(
            sql.SQL("{label} AS {alias}").format(label=render_expression(bucket.label), alias=sql.Identifier(LABEL_ALIAS))
        )
    for metric in descriptor.metrics:
        fragment, metric_params = render_metric(metric)
        select_items.append(fragment)
        params.extend(metric_params)

    conditions: List[sql.Composable] = []
    for predicate in descriptor.predicates:
        fragment, predicate_params = render_predicate(predicate)
        conditions.append(fragment)
        params.extend(predicate_params)

    parts: List[sql.Composable] = [
        sql.SQL("SELECT {items} FROM {table}").format(
            items=sql.SQL(", ").join(select_items), table=sql.Identifier(descriptor.table.name)
        )
    ]
    if conditions:
        parts.append(sql.SQL("WHERE {conditions}").format(conditions=sql.SQL(" AND ").join(conditions)))
    if bucket is not None:
        parts.append(
            sql.SQL("GROUP BY {groups}").format(groups=sql.SQL(", ").join(render_expression(expr) for expr in bucket.group_by))
        )
        parts.append(sql.SQL("ORDER BY {order}").format(order=render_expression(bucket.order_by)))
    return sql.SQL(" ").join(parts), params


class MetricsRepo:
    """Executes aggregation descriptors against the metric tables."""

    def fetch(self, descriptor: QueryDescriptor) -> List[Dict[str, Any]]:
        query, params = render_query(descriptor)
        start = perf_counter()
        try:
            with pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    set_search_path(cur)
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise AggregationFailed(
                f"Aggregation on {descriptor.table.name} failed",
                context=descriptor.describe(),
            ) from exc
        elapsed = (perf_counter() - start) * 1000
        logger.debug(
            "fetch table=%s metrics=%s bucketed=%s rows=%s elapsed_ms=%.2f",
            descriptor.table.name,
            len(descriptor.metrics),
            descriptor.bucketed,
            len(rows),
            elapsed,
        )
        return rows
