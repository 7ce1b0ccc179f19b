"""Compose predicates, bucket and metrics into one query descriptor.

The descriptor is plain structured data. ``repos.metrics_repo`` renders it
with ``psycopg.sql`` so identifiers are quoted by the driver and every
request-derived value is bound as a parameter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from .buckets import BucketSpec
from .predicates import PredicateSet

LABEL_ALIAS = "label"
_ALIAS_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class Aggregate(str, Enum):
    SUM = "SUM"
    AVG = "AVG"


@dataclass(frozen=True)
class MetricTable:
    """Allow-listed table with the columns reports may touch."""

    name: str
    columns: FrozenSet[str]
    date_column: str = "date"
    scope_column: str = "organisation_id"

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", frozenset(self.columns))

    @property
    def known_columns(self) -> FrozenSet[str]:
        return self.columns | {self.date_column, self.scope_column}

    def require(self, column: str) -> str:
        if column not in self.known_columns:
            raise ValueError(f"Column {column!r} is not allowed on table {self.name!r}")
        return column


@dataclass(frozen=True)
class Metric:
    """One aggregated output column.

    SUM metrics may add several columns together; each is null-coalesced so
    an empty group sums to zero. AVG metrics take a single column and are
    rounded to two decimals, staying null for an empty group. ``when`` limits
    the aggregation to rows where ``column = value``.
    """

    alias: str
    columns: Tuple[str, ...]
    fn: Aggregate = Aggregate.SUM
    when: Optional[Tuple[str, Any]] = None

    def __post_init__(self) -> None:
        if not _ALIAS_PATTERN.match(self.alias) or self.alias == LABEL_ALIAS:
            raise ValueError(f"Invalid metric alias: {self.alias!r}")
        if not self.columns:
            raise ValueError(f"Metric {self.alias!r} needs at least one column")
        if self.fn is Aggregate.AVG and len(self.columns) != 1:
            raise ValueError(f"AVG metric {self.alias!r} takes exactly one column")

    @classmethod
    def sum(cls, alias: str, *columns: str, when: Optional[Tuple[str, Any]] = None) -> "Metric":
        return cls(alias=alias, columns=tuple(columns or (alias,)), fn=Aggregate.SUM, when=when)

    @classmethod
    def avg(cls, alias: str, column: str, when: Optional[Tuple[str, Any]] = None) -> "Metric":
        return cls(alias=alias, columns=(column,), fn=Aggregate.AVG, when=when)

    def referenced_columns(self) -> Tuple[str, ...]:
        if self.when is None:
            return self.columns
        return self.columns + (self.when[0],)


@dataclass(frozen=True)
class QueryDescriptor:
    table: MetricTable
    metrics: Tuple[Metric, ...]
    predicates: PredicateSet
    bucket: Optional[BucketSpec] = field(default=None)

    @property
    def output_columns(self) -> Tuple[str, ...]:
        aliases = tuple(metric.alias for metric in self.metrics)
        return (LABEL_ALIAS,) + aliases if self.bucket is not None else aliases

    @property
    def bucketed(self) -> bool:
        return self.bucket is not None

    def describe(self) -> Dict[str, Any]:
        return {
            "table": self.table.name,
            "metrics": [f"{metric.fn.value}({'+'.join(metric.columns)}) AS {metric.alias}" for metric in self.metrics],
            "predicates": self.predicates.describe(),
            "bucket": self.bucket.describe() if self.bucket else None,
        }


def build_query(
    table: MetricTable,
    predicates: PredicateSet,
    bucket: Optional[BucketSpec],
    metrics: Sequence[Metric],
) -> QueryDescriptor:
    """Validate every identifier against ``table`` and bundle the parts."""
    if not metrics:
        raise ValueError("At least one metric is required")
    _require_unique(metric.alias for metric in metrics)
    for metric in metrics:
        for column in metric.referenced_columns():
            table.require(column)
    for predicate in predicates:
        table.require(predicate.column)
    if bucket is not None:
        for expr in (bucket.label, bucket.order_by, *bucket.group_by):
            table.require(expr.column)
    return QueryDescriptor(table=table, metrics=tuple(metrics), predicates=predicates, bucket=bucket)


def _require_unique(aliases: Iterable[str]) -> None:
    seen = set()
    for alias in aliases:
        if alias in seen:
            raise ValueError(f"Duplicate metric alias: {alias!r}")
        seen.add(alias)
