from __future__ import annotations

import re
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ..errors import InvalidRequest

WEEK_OF_MONTH_RANGE = range(1, 6)
MONTH_RANGE = range(1, 13)
QUARTER_RANGE = range(1, 5)
# fromisoformat alone also accepts basic and week dates on newer Pythons
ISO_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}\Z")

QueryValue = Union[None, str, int, Sequence[Union[str, int]]]


def _as_list(value: QueryValue) -> List[Union[str, int]]:
    """Normalise a single query value or a repeated parameter into a list."""
    if value is None:
        return []
    if isinstance(value, (str, int)):
        return [value]
    return list(value)


def _parse_ints(name: str, value: QueryValue) -> List[int]:
    parsed: List[int] = []
    for raw in _as_list(value):
        if isinstance(raw, int):
            parsed.append(raw)
            continue
        text = str(raw).strip()
        if not text:
            continue
        try:
            parsed.append(int(text))
        except ValueError as exc:
            raise InvalidRequest(f"{name} must be an integer, got {text!r}") from exc
    return parsed


def _parse_date(name: str, value: Optional[Union[str, date]]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    message = f"{name} must be an ISO date (YYYY-MM-DD), got {text!r}"
    if not ISO_DATE.match(text):
        raise InvalidRequest(message)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidRequest(message) from exc


def _unique_sorted(values: Iterable[int]) -> Tuple[int, ...]:
    return tuple(sorted(set(values)))


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("start_date must not be after end_date")
        return self


class FilterParams(BaseModel):
    """Normalised temporal filters for one reporting request.

    ``years``, ``months``, ``weeks_of_month`` and ``quarters`` are stored as
    sorted tuples without duplicates. Week values outside 1-5 are dropped
    rather than rejected; every other out-of-range value is an error.
    """

    model_config = ConfigDict(frozen=True)

    organisation_id: str
    exact_date: Optional[date] = None
    date_range: Optional[DateRange] = None
    years: Tuple[int, ...] = ()
    months: Tuple[int, ...] = ()
    weeks_of_month: Tuple[int, ...] = ()
    quarters: Tuple[int, ...] = ()

    @field_validator("organisation_id", mode="before")
    @classmethod
    def _validate_organisation(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("organisation_id is required")
        return str(value).strip()

    @field_validator("years")
    @classmethod
    def _validate_years(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        for year in value:
            if not 1 <= year <= 9999:
                raise ValueError(f"year out of range: {year}")
        return _unique_sorted(value)

    @field_validator("months")
    @classmethod
    def _validate_months(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        for month in value:
            if month not in MONTH_RANGE:
                raise ValueError(f"month must be between 1 and 12, got {month}")
        return _unique_sorted(value)

    @field_validator("weeks_of_month")
    @classmethod
    def _drop_invalid_weeks(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        return _unique_sorted(week for week in value if week in WEEK_OF_MONTH_RANGE)

    @field_validator("quarters")
    @classmethod
    def _validate_quarters(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        for quarter in value:
            if quarter not in QUARTER_RANGE:
                raise ValueError(f"quarter must be between 1 and 4, got {quarter}")
        return _unique_sorted(value)

    @property
    def has_temporal_filter(self) -> bool:
        return bool(
            self.exact_date
            or self.date_range
            or self.years
            or self.months
            or self.weeks_of_month
            or self.quarters
        )

    @classmethod
    def from_query(
        cls,
        organisation_id: Optional[str],
        *,
        date: Optional[Union[str, date]] = None,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None,
        year: QueryValue = None,
        month: QueryValue = None,
        week: QueryValue = None,
        quarter: QueryValue = None,
    ) -> "FilterParams":
        """Build filters from raw query parameters, raising ``InvalidRequest``."""
        if organisation_id is None or not str(organisation_id).strip():
            raise InvalidRequest("organisation_id is required")

        exact = _parse_date("date", date)
        start = _parse_date("start_date", start_date)
        end = _parse_date("end_date", end_date)
        if (start is None) != (end is None):
            raise InvalidRequest("start_date and end_date must be supplied together")

        try:
            return cls(
                organisation_id=organisation_id,
                exact_date=exact,
                date_range=DateRange(start=start, end=end) if start and end else None,
                years=_parse_ints("year", year),
                months=_parse_ints("month", month),
                weeks_of_month=_parse_ints("week", week),
                quarters=_parse_ints("quarter", quarter),
            )
        except ValidationError as exc:
            messages = "; ".join(str(error.get("msg", "")) for error in exc.errors())
            raise InvalidRequest(messages or "invalid filter parameters") from exc
