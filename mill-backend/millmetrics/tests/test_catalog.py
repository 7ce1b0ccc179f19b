from __future__ import annotations

import pytest

from millmetrics.models.filters import FilterParams
from millmetrics.services.aggregation import Aggregate
from millmetrics.services.catalog import CHARTS, PRODUCTION_EFFICIENCY, SUMMARIES, UNIT_PER_KG
from millmetrics.services.predicates import Condition
from millmetrics.services.reporting import resolve_report, run_report
from millmetrics.services.shaping import PercentField, RemainderField, TotalField, ValueField


def _inputs(output):
    if isinstance(output, ValueField):
        return (output.source or output.name,)
    if isinstance(output, TotalField):
        return output.sources
    if isinstance(output, PercentField):
        return output.numerator + (output.denominator,)
    if isinstance(output, RemainderField):
        return output.parts + (output.guard,)
    raise AssertionError(f"unexpected field {output!r}")


@pytest.mark.parametrize("definition", [*CHARTS.values(), *SUMMARIES.values()], ids=lambda d: d.key)
def test_fields_only_read_metrics_or_earlier_fields(definition):
    available = {metric.alias for metric in definition.metrics}
    for output in definition.fields:
        missing = set(_inputs(output)) - available
        assert not missing, f"{definition.key}.{output.name} reads {missing}"
        available.add(output.name)


def test_utilisation_chart_averages_u_percent_per_shift():
    definition = CHARTS["production-utilisation"]
    assert definition.table is PRODUCTION_EFFICIENCY
    assert [(metric.alias, metric.fn, metric.columns, metric.when) for metric in definition.metrics] == [
        ("shift_1", Aggregate.AVG, ("u_percent",), ("shift", 1)),
        ("shift_2", Aggregate.AVG, ("u_percent",), ("shift", 2)),
        ("shift_3", Aggregate.AVG, ("u_percent",), ("shift", 3)),
        ("overall", Aggregate.AVG, ("u_percent",), None),
    ]


@pytest.mark.parametrize(
    "key, alias, fn",
    [
        ("total-kgs", "total_kgs", Aggregate.SUM),
        ("u-percent", "average_u_percent", Aggregate.AVG),
        ("gps-total", "total_gps", Aggregate.SUM),
        ("efficiency-total", "total_efficiency", Aggregate.SUM),
        ("eup-total", "total_eup", Aggregate.SUM),
    ],
)
def test_production_totals_exist_overall_and_per_shift(key, alias, fn, today):
    overall = SUMMARIES[key]
    assert [(metric.alias, metric.fn) for metric in overall.metrics] == [(alias, fn)]
    assert overall.scope_filters == {}
    for shift in (1, 2, 3):
        scoped = SUMMARIES[f"{key}-shift{shift}"]
        assert scoped.scope_filters == {"shift": shift}
        resolved = resolve_report(scoped, FilterParams(organisation_id="UNI0024", years=(2025,)), today=today)
        assert resolved.predicates.predicates[1].condition is Condition.EQUALS
        assert resolved.predicates.predicates[1].values == (shift,)


def test_production_sum_totals_round_to_two_places(make_repo, today):
    repo = make_repo(rows=[{"total_gps": "1234.5678"}])
    (totals,) = run_report(SUMMARIES["gps-total-shift2"], FilterParams(organisation_id="UNI0024"), repo, today=today)
    assert totals == {"total_gps": 1234.57}


def test_yarn_realisation_summary_returns_ratio_and_percent_strings(make_repo, today):
    params = FilterParams(organisation_id="UNI0024")
    repo = make_repo(rows=[{"material_input": "1000", "yarn_output": "812"}])
    (totals,) = run_report(SUMMARIES["yarn-realisation"], params, repo, today=today)
    assert totals == {"yarn_realisation_ratio": "0.81", "yarn_realisation_percent": "81.20"}

    (empty,) = run_report(SUMMARIES["yarn-realisation"], params, make_repo(), today=today)
    assert empty == {"yarn_realisation_ratio": "0.00", "yarn_realisation_percent": "0.00"}


def test_blow_room_summary_pairs_kg_strings_with_percentages(make_repo, today):
    repo = make_repo(
        rows=[
            {
                "raw_material_input": "2000",
                "total_dropping": "50",
                "flat_waste": "10",
                "micro_dust": None,
                "contamination_collection": "3",
            }
        ]
    )
    (totals,) = run_report(SUMMARIES["blow-room-waste"], FilterParams(organisation_id="UNI0024"), repo, today=today)
    assert totals == {
        "total_dropping_kg": "50.00",
        "total_dropping_percent": "2.50",
        "flat_waste_kg": "10.00",
        "flat_waste_percent": "0.50",
        "micro_dust_kg": "0.00",
        "micro_dust_percent": "0.00",
        "contamination_collection_kg": "3.00",
        "contamination_collection_percent": "0.15",
    }


def test_mechanical_summary_includes_worked_spindles(make_repo, today):
    repo = make_repo(
        rows=[
            {
                "allocated_spindle": "1000",
                "worked_spindle": "900",
                "routine_maintainance": "20",
                "preventive_maintainance": "5",
                "mechanical_breakdown": "0",
            }
        ]
    )
    (totals,) = run_report(
        SUMMARIES["mechanical-maintainance-summary"], FilterParams(organisation_id="UNI0024"), repo, today=today
    )
    assert totals["allocated_spindle"] == 1000.0
    assert totals["worked_spindle"] == 900.0
    assert totals["routine_maintainance"] == 20.0
    assert totals["routine_maintainance_percent"] == "2.00"
    assert totals["mechanical_breakdown_percent"] == "0.00"
    assert [metric.alias for metric in SUMMARIES["mechanical-maintainance-summary"].metrics].count(
        "allocated_spindle"
    ) == 1


def test_labour_summary_without_allocation_is_zero(make_repo, today):
    (totals,) = run_report(SUMMARIES["labour-summary"], FilterParams(organisation_id="UNI0024"), make_repo(), today=today)
    assert "worked_spindle" not in totals
    assert totals["labour_absentism_percent"] == "0.00"
    assert totals["doff_delay"] == 0.0


def test_unit_per_kg_total_is_a_decimal_string(make_repo, today):
    definition = SUMMARIES["unit-per-kg"]
    assert definition.table is UNIT_PER_KG
    assert len(definition.metrics[0].columns) == 9
    (empty,) = run_report(definition, FilterParams(organisation_id="UNI0024"), make_repo(), today=today)
    assert empty == {"unit_per_kg": "0.00"}


def test_machine_and_operation_ukg_sum_their_groups():
    assert SUMMARIES["machine-ukg"].metrics[0].columns == (
        "first_passage_ukg",
        "second_passage_ukg",
        "speed_frame_ukg",
        "ring_frame_ukg",
        "autoconer_ukg",
    )
    assert SUMMARIES["operation-ukg"].metrics[0].columns == (
        "humidification_ukg",
        "compressor_ukg",
        "lighting_other_ukg",
    )
    assert [metric.alias for metric in SUMMARIES["draw-frame-ukg"].metrics] == [
        "first_passage_ukg",
        "second_passage_ukg",
    ]
    assert SUMMARIES["compressor-ukg"].metrics[0].alias == "total_compressor_ukg"


def test_combined_ukg_chart_adds_group_averages(make_repo, today):
    row = {
        "label": "Jan 2025",
        "avg_br_carding_awes_ukg": "0.456",
        "avg_first_passage_ukg": "0.1",
        "avg_second_passage_ukg": "0.2",
        "avg_speed_frame_ukg": "0.3",
        "avg_ring_frame_ukg": "1.0",
        "avg_autoconer_ukg": "0.4",
        "avg_humidification_ukg": "0.5",
        "avg_compressor_ukg": None,
        "avg_lighting_other_ukg": "0.25",
    }
    rows = run_report(CHARTS["ukg-combined"], FilterParams(organisation_id="UNI0024"), make_repo(rows=[row]), today=today)
    assert rows == [{"label": "Jan 2025", "waste": 0.46, "machine": 2.0, "operation": 0.75}]
