from __future__ import annotations

from datetime import date

import pytest
from psycopg import sql

from millmetrics.models.filters import FilterParams
from millmetrics.repos.metrics_repo import render_metric, render_predicate, render_query
from millmetrics.services.aggregation import Aggregate, Metric, MetricTable, build_query
from millmetrics.services.buckets import resolve_bucket
from millmetrics.services.catalog import CHARTS, SUMMARIES, TABLES, YARN_REALISATION
from millmetrics.services.predicates import Condition, Predicate, PredicateSet, build_predicates

TABLE = MetricTable(name="production_efficiency", columns=frozenset({"shift", "kgs", "production_efficiency"}))


def _predicates(today, **kwargs) -> PredicateSet:
    return build_predicates(FilterParams(organisation_id="UNI0024", **kwargs), today=today)


def test_metric_constructors():
    total = Metric.sum("mechanical", "routine_maintainance", "mechanical_breakdown")
    assert total.fn is Aggregate.SUM
    assert total.columns == ("routine_maintainance", "mechanical_breakdown")
    assert Metric.sum("kgs").columns == ("kgs",)
    average = Metric.avg("shift_1", "kgs", when=("shift", 1))
    assert average.referenced_columns() == ("kgs", "shift")


@pytest.mark.parametrize("alias", ["label", "Bad-Alias", "1st", ""])
def test_invalid_aliases_are_rejected(alias):
    with pytest.raises(ValueError):
        Metric.sum(alias, "kgs")


def test_average_takes_a_single_column():
    with pytest.raises(ValueError):
        Metric(alias="avg", columns=("kgs", "gps"), fn=Aggregate.AVG)


def test_build_query_bundles_parts(today):
    predicates = _predicates(today)
    bucket = resolve_bucket(FilterParams(organisation_id="UNI0024"))
    query = build_query(TABLE, predicates, bucket, [Metric.avg("overall", "production_efficiency")])
    assert query.output_columns == ("label", "overall")
    assert query.bucketed
    assert query.describe()["predicates"][0] == "organisation_id = 'UNI0024'"


def test_totals_query_has_no_label(today):
    query = build_query(TABLE, _predicates(today), None, [Metric.sum("total_kgs", "kgs")])
    assert query.output_columns == ("total_kgs",)
    assert not query.bucketed


def test_unknown_metric_column_is_rejected(today):
    with pytest.raises(ValueError, match="not allowed"):
        build_query(TABLE, _predicates(today), None, [Metric.sum("gps")])


def test_unknown_predicate_column_is_rejected(today):
    predicates = PredicateSet(predicates=(Predicate(Condition.EQUALS, "password", ("x",)),))
    with pytest.raises(ValueError, match="not allowed"):
        build_query(TABLE, predicates, None, [Metric.sum("kgs")])


def test_duplicate_aliases_are_rejected(today):
    with pytest.raises(ValueError, match="Duplicate"):
        build_query(TABLE, _predicates(today), None, [Metric.sum("kgs"), Metric.avg("kgs", "kgs")])


def test_empty_metric_list_is_rejected(today):
    with pytest.raises(ValueError):
        build_query(TABLE, _predicates(today), None, [])


def test_render_predicate_binds_values():
    _, params = render_predicate(Predicate(Condition.EQUALS, "organisation_id", ("UNI0024",)))
    assert params == ["UNI0024"]
    _, params = render_predicate(Predicate(Condition.BETWEEN, "date", (date(2025, 1, 1), date(2025, 1, 31))))
    assert params == [date(2025, 1, 1), date(2025, 1, 31)]
    _, params = render_predicate(Predicate(Condition.WEEK_OF_MONTH_IN, "date", ((1, 2),)))
    assert params == [[1, 2]]


def test_render_metric_binds_condition_once_per_column():
    _, params = render_metric(Metric.sum("shift_total", "kgs", "gps", when=("shift", 2)))
    assert params == [2, 2]
    _, params = render_metric(Metric.avg("overall", "kgs"))
    assert params == []


def test_render_query_orders_select_params_before_where_params(today):
    predicates = _predicates(today, months=(3, 4))
    bucket = resolve_bucket(FilterParams(organisation_id="UNI0024", months=(3, 4)))
    query = build_query(
        TABLE,
        predicates,
        bucket,
        [Metric.avg("shift_1", "kgs", when=("shift", 1)), Metric.avg("overall", "kgs")],
    )
    statement, params = render_query(query)
    assert isinstance(statement, sql.Composed)
    assert params == [1, "UNI0024", [3, 4]]


def test_catalog_reports_reference_only_allowed_columns():
    assert set(TABLES) == {"yarn_realisation", "rf_utilisation", "production_efficiency", "unit_per_kg"}
    for definition in [*CHARTS.values(), *SUMMARIES.values()]:
        for metric in definition.metrics:
            for column in metric.referenced_columns():
                assert column in definition.table.known_columns


def test_catalog_contains_expected_reports():
    assert CHARTS["total-droppings"].table is YARN_REALISATION
    assert CHARTS["total-droppings"].metrics == (Metric.avg("avg_total_dropping", "total_dropping"),)
    assert [metric.alias for metric in CHARTS["production-efficiency"].metrics] == [
        "shift_1",
        "shift_2",
        "shift_3",
        "overall",
    ]
    assert SUMMARIES["total-kgs-shift1"].scope_filters == {"shift": 1}
    assert not SUMMARIES["rf-utilisation"].bucketed
