"""Allow-listed tables, columns and the report definitions built on them.

Nothing from a request is ever used as an identifier: routers look reports up
by key here and every column a report touches is checked against its table
when the module is imported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .aggregation import Metric, MetricTable
from .shaping import FieldKind, OutputField, PercentField, RemainderField, TotalField, ValueField

YARN_REALISATION = MetricTable(
    name="yarn_realisation",
    columns=frozenset(
        {
            "raw_material_input",
            "yarn_output",
            "total_waste",
            "total_dropping",
            "flat_waste",
            "micro_dust",
            "contamination_collection",
            "ohtc_waste",
            "prep_fan_waste",
            "plant_room_waste",
            "ring_frame_roving_waste",
            "speed_frame_roving_waste",
            "all_dept_sweeping_waste",
            "comber_waste",
            "hard_waste",
            "invisible_loss",
        }
    ),
)

RF_UTILISATION = MetricTable(
    name="rf_utilisation",
    columns=frozenset(
        {
            "allocated_spindle",
            "worked_spindle",
            "routine_maintainance",
            "preventive_maintainance",
            "mechanical_breakdown",
            "electrical_breakdown",
            "planned_maintainance",
            "power_failure",
            "labour_absentism",
            "labour_shortage",
            "labour_unrest",
            "doff_delay",
            "bobbin_shortage",
            "lot_count_change",
            "lot_count_runout",
            "quality_checking",
            "quality_deviation",
            "traveller_change",
        }
    ),
)

PRODUCTION_EFFICIENCY = MetricTable(
    name="production_efficiency",
    columns=frozenset({"shift", "kgs", "gps", "production_efficiency", "eup", "u_percent"}),
)

UNIT_PER_KG = MetricTable(
    name="unit_per_kg",
    columns=frozenset(
        {
            "shift",
            "br_carding_awes_ukg",
            "first_passage_ukg",
            "second_passage_ukg",
            "speed_frame_ukg",
            "ring_frame_ukg",
            "autoconer_ukg",
            "humidification_ukg",
            "compressor_ukg",
            "lighting_other_ukg",
        }
    ),
)

TABLES: Mapping[str, MetricTable] = {
    table.name: table for table in (YARN_REALISATION, RF_UTILISATION, PRODUCTION_EFFICIENCY, UNIT_PER_KG)
}

BLOWROOM_WASTE = ("total_dropping", "flat_waste", "micro_dust", "contamination_collection")
FILTER_WASTE = ("ohtc_waste", "prep_fan_waste", "plant_room_waste")
ROVING_WASTE = ("ring_frame_roving_waste", "speed_frame_roving_waste")
OTHER_WASTE = ("all_dept_sweeping_waste", "comber_waste", "hard_waste", "invisible_loss")
ALL_WASTE = BLOWROOM_WASTE + FILTER_WASTE + ROVING_WASTE + OTHER_WASTE

MECHANICAL_LOSS = ("routine_maintainance", "preventive_maintainance", "mechanical_breakdown")
ELECTRICAL_LOSS = ("electrical_breakdown", "planned_maintainance", "power_failure")
LABOUR_LOSS = ("labour_absentism", "labour_shortage", "labour_unrest", "doff_delay")
PROCESS_LOSS = (
    "bobbin_shortage",
    "lot_count_change",
    "lot_count_runout",
    "quality_checking",
    "quality_deviation",
    "traveller_change",
)

DRAW_FRAME_UKG = ("first_passage_ukg", "second_passage_ukg")
MACHINE_UKG = DRAW_FRAME_UKG + ("speed_frame_ukg", "ring_frame_ukg", "autoconer_ukg")
OPERATION_UKG = ("humidification_ukg", "compressor_ukg", "lighting_other_ukg")
ALL_UKG = ("br_carding_awes_ukg",) + MACHINE_UKG + OPERATION_UKG


@dataclass(frozen=True)
class ReportDefinition:
    key: str
    title: str
    table: MetricTable
    metrics: Tuple[Metric, ...]
    fields: Tuple[OutputField, ...] = ()
    bucketed: bool = True
    scope: Tuple[Tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        for metric in self.metrics:
            for column in metric.referenced_columns():
                self.table.require(column)
        for column, _ in self.scope:
            self.table.require(column)

    @property
    def scope_filters(self) -> Dict[str, Any]:
        return dict(self.scope)


def _average_chart(key: str, title: str, table: MetricTable, column: str) -> ReportDefinition:
    return ReportDefinition(key=key, title=title, table=table, metrics=(Metric.avg(f"avg_{column}", column),))


def _shift_chart(key: str, title: str, table: MetricTable, column: str, shifts: Iterable[Any]) -> ReportDefinition:
    metrics = [Metric.avg(f"shift_{shift}", column, when=("shift", shift)) for shift in shifts]
    metrics.append(Metric.avg("overall", column))
    return ReportDefinition(key=key, title=title, table=table, metrics=tuple(metrics))


def _index(definitions: Iterable[ReportDefinition]) -> Dict[str, ReportDefinition]:
    indexed: Dict[str, ReportDefinition] = {}
    for definition in definitions:
        if definition.key in indexed:
            raise ValueError(f"Duplicate report key: {definition.key}")
        indexed[definition.key] = definition
    return indexed


_YARN_AVERAGES = (
    ("total-droppings", "Blow room total droppings", "total_dropping"),
    ("flat-waste", "Blow room flat waste", "flat_waste"),
    ("micro-dust", "Blow room micro dust", "micro_dust"),
    ("contamination-collection", "Blow room contamination collection", "contamination_collection"),
    ("prep-fan-waste", "Filter prep fan waste", "prep_fan_waste"),
    ("plant-room-waste", "Filter plant room waste", "plant_room_waste"),
    ("ring-frame-roving-waste", "Ring frame roving waste", "ring_frame_roving_waste"),
    ("speed-frame-roving-waste", "Speed frame roving waste", "speed_frame_roving_waste"),
    ("all-dept-sweeping-waste", "All department sweeping waste", "all_dept_sweeping_waste"),
    ("comber-waste", "Comber waste", "comber_waste"),
    ("hard-waste", "Hard waste", "hard_waste"),
    ("invisible-loss", "Invisible loss", "invisible_loss"),
)

_RF_AVERAGES = MECHANICAL_LOSS + ELECTRICAL_LOSS + LABOUR_LOSS + PROCESS_LOSS

_PRODUCTION_SHIFT_CHARTS = (
    ("production-efficiency", "Production efficiency by shift", "production_efficiency"),
    ("production-kgs", "Production kgs by shift", "kgs"),
    ("production-gps", "Grams per spindle by shift", "gps"),
    ("production-utilisation", "Spindle utilisation (U%) by shift", "u_percent"),
    ("production-eup", "EUP by shift", "eup"),
)

_WASTE_BREAKDOWN_CHART = ReportDefinition(
    key="waste-breakdown",
    title="Yarn waste breakdown",
    table=YARN_REALISATION,
    metrics=tuple(Metric.sum(column) for column in ("raw_material_input",) + ALL_WASTE),
    fields=(
        ValueField("raw_material_input", kind=FieldKind.DECIMAL_STRING),
        TotalField("blowroom_waste", BLOWROOM_WASTE, kind=FieldKind.DECIMAL_STRING),
        TotalField("filter_waste", FILTER_WASTE, kind=FieldKind.DECIMAL_STRING),
        TotalField("roving_waste", ROVING_WASTE, kind=FieldKind.DECIMAL_STRING),
        TotalField("other_waste", OTHER_WASTE, kind=FieldKind.DECIMAL_STRING),
        TotalField("waste_output", ALL_WASTE, kind=FieldKind.DECIMAL_STRING),
    ),
)

_LOSS_BREAKDOWN_CHART = ReportDefinition(
    key="loss-breakdown",
    title="RF loss breakdown",
    table=RF_UTILISATION,
    metrics=(
        Metric.sum("allocated_spindle"),
        Metric.sum("mechanical", *MECHANICAL_LOSS),
        Metric.sum("electrical", *ELECTRICAL_LOSS),
        Metric.sum("labour", *LABOUR_LOSS),
        Metric.sum("process", *PROCESS_LOSS),
    ),
)

_UKG_COMBINED_CHART = ReportDefinition(
    key="ukg-combined",
    title="Unit per kg: waste, machine and operation",
    table=UNIT_PER_KG,
    metrics=tuple(Metric.avg(f"avg_{column}", column) for column in ALL_UKG),
    fields=(
        ValueField("waste", "avg_br_carding_awes_ukg", places=2),
        TotalField("machine", tuple(f"avg_{column}" for column in MACHINE_UKG), places=2),
        TotalField("operation", tuple(f"avg_{column}" for column in OPERATION_UKG), places=2),
    ),
)

# dashboard tiles: several plain averages over every shift
_PRODUCTION_HOME_CHARTS = (
    ReportDefinition(
        key="production-efficiency-home",
        title="Production overview",
        table=PRODUCTION_EFFICIENCY,
        metrics=(
            Metric.avg("kgs", "kgs"),
            Metric.avg("utilization_percentage", "u_percent"),
            Metric.avg("production_efficiency", "production_efficiency"),
            Metric.avg("gps", "gps"),
        ),
    ),
    ReportDefinition(
        key="eup-home",
        title="EUP overview",
        table=PRODUCTION_EFFICIENCY,
        metrics=(
            Metric.avg("eup", "eup"),
            Metric.avg("utilization_percentage", "u_percent"),
            Metric.avg("production_efficiency", "production_efficiency"),
        ),
    ),
)

CHARTS: Mapping[str, ReportDefinition] = _index(
    [
        *(_average_chart(key, title, YARN_REALISATION, column) for key, title, column in _YARN_AVERAGES),
        *(
            _average_chart(column.replace("_", "-"), column.replace("_", " ").capitalize(), RF_UTILISATION, column)
            for column in _RF_AVERAGES
        ),
        *(
            _shift_chart(key, title, PRODUCTION_EFFICIENCY, column, (1, 2, 3))
            for key, title, column in _PRODUCTION_SHIFT_CHARTS
        ),
        *(
            _shift_chart(column.replace("_", "-"), f"{column.replace('_', ' ')} by shift", UNIT_PER_KG, column, ("1", "2", "3"))
            for column in ALL_UKG
        ),
        *_PRODUCTION_HOME_CHARTS,
        _WASTE_BREAKDOWN_CHART,
        _LOSS_BREAKDOWN_CHART,
        _UKG_COMBINED_CHART,
    ]
)


def _production_totals(key: str, title: str, metric: Metric, fields: Tuple[OutputField, ...] = ()) -> List[ReportDefinition]:
    """An all-shift total plus one ``<key>-shift<n>`` total per shift."""
    definitions = [
        ReportDefinition(key=key, title=title, table=PRODUCTION_EFFICIENCY, metrics=(metric,), fields=fields, bucketed=False)
    ]
    for shift in (1, 2, 3):
        definitions.append(
            ReportDefinition(
                key=f"{key}-shift{shift}",
                title=f"{title}, shift {shift}",
                table=PRODUCTION_EFFICIENCY,
                metrics=(metric,),
                fields=fields,
                bucketed=False,
                scope=(("shift", shift),),
            )
        )
    return definitions


def _share_summary(
    key: str,
    title: str,
    table: MetricTable,
    whole: str,
    columns: Tuple[str, ...],
    *,
    suffix: str = "",
    kind: FieldKind = FieldKind.NUMBER,
    leading: Tuple[str, ...] = (),
) -> ReportDefinition:
    """Totals of ``columns``, each paired with its share of ``whole`` as ``<name>_percent``."""
    fields: List[OutputField] = [ValueField(name) for name in leading]
    for column in columns:
        fields.append(ValueField(f"{column}{suffix}", column, kind=kind))
        fields.append(PercentField(f"{column}_percent", (column,), whole))
    return ReportDefinition(
        key=key,
        title=title,
        table=table,
        metrics=tuple(Metric.sum(column) for column in dict.fromkeys((whole,) + leading + columns)),
        fields=tuple(fields),
        bucketed=False,
    )


def _waste_group_summary(key: str, title: str, columns: Tuple[str, ...]) -> ReportDefinition:
    return _share_summary(
        key, title, YARN_REALISATION, "raw_material_input", columns, suffix="_kg", kind=FieldKind.DECIMAL_STRING
    )


def _loss_group_summary(key: str, title: str, columns: Tuple[str, ...], *, with_worked: bool = False) -> ReportDefinition:
    leading = ("allocated_spindle", "worked_spindle") if with_worked else ("allocated_spindle",)
    return _share_summary(key, title, RF_UTILISATION, "allocated_spindle", columns, leading=leading)


def _ukg_total(column: str) -> ReportDefinition:
    return ReportDefinition(
        key=column.replace("_", "-"),
        title=f"Total {column.replace('_', ' ')}",
        table=UNIT_PER_KG,
        metrics=(Metric.sum(f"total_{column}", column),),
        bucketed=False,
    )


SUMMARIES: Mapping[str, ReportDefinition] = _index(
    [
        ReportDefinition(
            key="yarn-efficiency",
            title="Yarn realisation efficiency",
            table=YARN_REALISATION,
            metrics=(
                Metric.sum("material_input", "raw_material_input"),
                Metric.sum("yarn_output"),
                Metric.sum("total_waste"),
            ),
            fields=(
                ValueField("MaterialInput", "material_input"),
                ValueField("YarnOutput", "yarn_output"),
                ValueField("TotalWaste", "total_waste"),
                PercentField("YarnRealization", ("yarn_output",), "material_input", kind=FieldKind.NUMBER),
                PercentField("WasteOutput", ("total_waste",), "material_input", kind=FieldKind.NUMBER),
                RemainderField("InvisibleLoss", 100.0, ("YarnRealization", "WasteOutput"), guard="material_input"),
            ),
            bucketed=False,
        ),
        ReportDefinition(
            key="waste-summary",
            title="Yarn waste summary",
            table=YARN_REALISATION,
            metrics=tuple(Metric.sum(column) for column in ("raw_material_input",) + ALL_WASTE),
            fields=(
                ValueField("raw_material_input", kind=FieldKind.DECIMAL_STRING),
                TotalField("blowroom_waste", BLOWROOM_WASTE, kind=FieldKind.DECIMAL_STRING),
                PercentField("blowroom_percent", BLOWROOM_WASTE, "raw_material_input"),
                TotalField("filter_waste", FILTER_WASTE, kind=FieldKind.DECIMAL_STRING),
                PercentField("filter_percent", FILTER_WASTE, "raw_material_input"),
                TotalField("roving_waste", ROVING_WASTE, kind=FieldKind.DECIMAL_STRING),
                PercentField("roving_percent", ROVING_WASTE, "raw_material_input"),
                TotalField("other_waste", OTHER_WASTE, kind=FieldKind.DECIMAL_STRING),
                PercentField("other_percent", OTHER_WASTE, "raw_material_input"),
                TotalField("waste_output", ALL_WASTE, kind=FieldKind.DECIMAL_STRING),
                PercentField("waste_percent_of_input", ALL_WASTE, "raw_material_input"),
            ),
            bucketed=False,
        ),
        ReportDefinition(
            key="rf-utilisation",
            title="Ring frame spindle utilisation",
            table=RF_UTILISATION,
            metrics=(
                Metric.sum("total_allocated", "allocated_spindle"),
                Metric.sum("total_worked", "worked_spindle"),
            ),
            fields=(
                PercentField("rf_utilisation_ratio", ("total_worked",), "total_allocated", scale=1.0),
                PercentField("rf_utilisation_percent", ("total_worked",), "total_allocated"),
            ),
            bucketed=False,
        ),
        ReportDefinition(
            key="loss-summary",
            title="RF loss summary",
            table=RF_UTILISATION,
            metrics=_LOSS_BREAKDOWN_CHART.metrics,
            fields=(
                ValueField("allocated_spindle"),
                ValueField("mechanical"),
                PercentField("mechanical_percent", ("mechanical",), "allocated_spindle"),
                ValueField("electrical"),
                PercentField("electrical_percent", ("electrical",), "allocated_spindle"),
                ValueField("labour"),
                PercentField("labour_percent", ("labour",), "allocated_spindle"),
                ValueField("process"),
                PercentField("process_percent", ("process",), "allocated_spindle"),
            ),
            bucketed=False,
        ),
        ReportDefinition(
            key="yarn-realisation",
            title="Yarn realisation ratio",
            table=YARN_REALISATION,
            metrics=(
                Metric.sum("material_input", "raw_material_input"),
                Metric.sum("yarn_output"),
            ),
            fields=(
                PercentField("yarn_realisation_ratio", ("yarn_output",), "material_input", scale=1.0),
                PercentField("yarn_realisation_percent", ("yarn_output",), "material_input"),
            ),
            bucketed=False,
        ),
        _waste_group_summary("blow-room-waste", "Blow room waste", BLOWROOM_WASTE),
        _waste_group_summary("filter-waste", "Filter waste", FILTER_WASTE),
        _waste_group_summary("roving-waste", "Roving waste", ROVING_WASTE),
        _waste_group_summary("other-waste", "Other waste", OTHER_WASTE),
        ReportDefinition(
            key="spindle-summary",
            title="Average allocated and worked spindles",
            table=RF_UTILISATION,
            metrics=(
                Metric.avg("allocated_spindle", "allocated_spindle"),
                Metric.avg("worked_spindle", "worked_spindle"),
            ),
            bucketed=False,
        ),
        _loss_group_summary(
            "mechanical-maintainance-summary", "Mechanical maintenance losses", MECHANICAL_LOSS, with_worked=True
        ),
        _loss_group_summary("electrical-maintainance-summary", "Electrical maintenance losses", ELECTRICAL_LOSS),
        _loss_group_summary("labour-summary", "Labour losses", LABOUR_LOSS),
        _loss_group_summary("process-loss-summary", "Process losses", PROCESS_LOSS),
        *_production_totals("total-kgs", "Total production kgs", Metric.sum("total_kgs", "kgs")),
        *_production_totals("u-percent", "Average U%", Metric.avg("average_u_percent", "u_percent")),
        *_production_totals(
            "gps-total", "Total grams per spindle", Metric.sum("total_gps", "gps"), (ValueField("total_gps", places=2),)
        ),
        *_production_totals(
            "efficiency-total",
            "Total production efficiency",
            Metric.sum("total_efficiency", "production_efficiency"),
            (ValueField("total_efficiency", places=2),),
        ),
        *_production_totals(
            "eup-total", "Total EUP", Metric.sum("total_eup", "eup"), (ValueField("total_eup", places=2),)
        ),
        *(
            _ukg_total(column)
            for column in ("br_carding_awes_ukg", "speed_frame_ukg", "ring_frame_ukg", "autoconer_ukg") + OPERATION_UKG
        ),
        ReportDefinition(
            key="draw-frame-ukg",
            title="Draw frame unit per kg",
            table=UNIT_PER_KG,
            metrics=tuple(Metric.sum(column) for column in DRAW_FRAME_UKG),
            bucketed=False,
        ),
        ReportDefinition(
            key="machine-ukg",
            title="Machine unit per kg",
            table=UNIT_PER_KG,
            metrics=(Metric.sum("machine", *MACHINE_UKG),),
            bucketed=False,
        ),
        ReportDefinition(
            key="operation-ukg",
            title="Operation unit per kg",
            table=UNIT_PER_KG,
            metrics=(Metric.sum("operation", *OPERATION_UKG),),
            bucketed=False,
        ),
        ReportDefinition(
            key="unit-per-kg",
            title="Total unit per kg",
            table=UNIT_PER_KG,
            metrics=(Metric.sum("unit_per_kg", *ALL_UKG),),
            fields=(ValueField("unit_per_kg", kind=FieldKind.DECIMAL_STRING),),
            bucketed=False,
        ),
    ]
)
