"""Post-process aggregation rows into response rows.

Rows may carry numbers as ``Decimal`` or text; every numeric field is coerced
and nulls become zero. Percentages and ratios are guarded so a non-positive
denominator yields zero (``"0.00"`` for string-typed fields).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .aggregation import LABEL_ALIAS
from .buckets import Granularity, format_label


class FieldKind(str, Enum):
    NUMBER = "number"
    DECIMAL_STRING = "decimal_string"


def to_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def ratio(numerator: Any, denominator: Any) -> float:
    den = to_number(denominator)
    if den <= 0:
        return 0.0
    return to_number(numerator) / den


def percent(numerator: Any, denominator: Any, scale: float = 100.0) -> float:
    return round(ratio(numerator, denominator) * scale, 2)


def fixed(value: Any, places: int = 2) -> str:
    return f"{round(to_number(value), places):.{places}f}"


def percent_string(numerator: Any, denominator: Any, scale: float = 100.0) -> str:
    return fixed(percent(numerator, denominator, scale))


def _render(kind: FieldKind, value: float, places: Optional[int]) -> Union[float, str]:
    if kind is FieldKind.DECIMAL_STRING:
        return fixed(value, 2 if places is None else places)
    return round(value, places) if places is not None else value


@dataclass(frozen=True)
class ValueField:
    name: str
    source: Optional[str] = None
    kind: FieldKind = FieldKind.NUMBER
    places: Optional[int] = None

    def compute(self, numbers: Mapping[str, float]) -> float:
        return numbers.get(self.source or self.name, 0.0)


@dataclass(frozen=True)
class TotalField:
    name: str
    sources: Tuple[str, ...]
    kind: FieldKind = FieldKind.NUMBER
    places: Optional[int] = None

    def compute(self, numbers: Mapping[str, float]) -> float:
        return sum(numbers.get(source, 0.0) for source in self.sources)


@dataclass(frozen=True)
class PercentField:
    """``sum(numerator) / denominator * scale``; ``scale=1`` gives a plain ratio."""

    name: str
    numerator: Tuple[str, ...]
    denominator: str
    scale: float = 100.0
    kind: FieldKind = FieldKind.DECIMAL_STRING
    places: Optional[int] = 2

    def compute(self, numbers: Mapping[str, float]) -> float:
        top = sum(numbers.get(source, 0.0) for source in self.numerator)
        return percent(top, numbers.get(self.denominator, 0.0), self.scale)


@dataclass(frozen=True)
class RemainderField:
    """``whole - sum(parts)``, or zero when ``guard`` is not positive."""

    name: str
    whole: float
    parts: Tuple[str, ...]
    guard: str
    kind: FieldKind = FieldKind.NUMBER
    places: Optional[int] = 2

    def compute(self, numbers: Mapping[str, float]) -> float:
        if numbers.get(self.guard, 0.0) <= 0:
            return 0.0
        return self.whole - sum(numbers.get(part, 0.0) for part in self.parts)


OutputField = Union[ValueField, TotalField, PercentField, RemainderField]


@dataclass(frozen=True)
class ShapeContext:
    granularity: Optional[Granularity] = None
    fields: Tuple[OutputField, ...] = ()


def _label(value: Any, granularity: Optional[Granularity]) -> str:
    """Pass SQL-rendered labels through; format rows that carry a raw ``date`` instead."""
    if isinstance(value, date) and granularity is not None:
        return format_label(granularity, value)
    return "" if value is None else str(value)


def shape_row(row: Mapping[str, Any], context: ShapeContext) -> Dict[str, Any]:
    numbers: Dict[str, float] = {key: to_number(value) for key, value in row.items() if key != LABEL_ALIAS}
    shaped: Dict[str, Any] = {}
    if context.granularity is not None:
        shaped[LABEL_ALIAS] = _label(row.get(LABEL_ALIAS), context.granularity)

    if not context.fields:
        shaped.update(numbers)
        return shaped

    for output in context.fields:
        value = output.compute(numbers)
        # later fields may build on earlier ones, e.g. a remainder of percentages
        numbers[output.name] = value
        shaped[output.name] = _render(output.kind, value, output.places)
    return shaped


def shape(rows: Iterable[Mapping[str, Any]], context: ShapeContext) -> List[Dict[str, Any]]:
    return [shape_row(row, context) for row in rows]
