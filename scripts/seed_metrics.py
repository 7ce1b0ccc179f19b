#!/usr/bin/env python3
"""
Seed deterministic synthetic daily rows into the four metric tables.

The script is idempotent: rows are upserted on their (organisation_id, date)
or (organisation_id, date, shift) unique keys, so re-running it refreshes the
same window instead of duplicating it.
"""
from __future__ import annotations

import argparse
import random
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Iterator, List

ROOT = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT / "mill-backend"

import sys

sys.path.append(str(BACKEND_DIR))

from millmetrics.db import close_pool, initialize_database, open_pool, pool, set_search_path  # type: ignore  # noqa: E402
from millmetrics.services.catalog import (  # type: ignore  # noqa: E402
    ALL_UKG,
    ALL_WASTE,
    ELECTRICAL_LOSS,
    LABOUR_LOSS,
    MECHANICAL_LOSS,
    PROCESS_LOSS,
)

RANDOM = random.Random(42)
DEFAULT_ORGANISATION = "UNI0024"
DEFAULT_DAYS = 400


def _days(end: date, count: int) -> Iterator[date]:
    for offset in range(count - 1, -1, -1):
        yield end - timedelta(days=offset)


def _yarn_row(organisation_id: str, day: date) -> Dict[str, object]:
    raw_input = round(RANDOM.uniform(9000, 12000), 3)
    wastes = {column: round(raw_input * RANDOM.uniform(0.002, 0.02), 3) for column in ALL_WASTE}
    total_waste = round(sum(wastes.values()), 3)
    row: Dict[str, object] = {
        "organisation_id": organisation_id,
        "date": day,
        "raw_material_input": raw_input,
        "yarn_output": round(raw_input - total_waste - raw_input * 0.01, 3),
        "total_waste": total_waste,
    }
    row.update(wastes)
    return row


def _rf_row(organisation_id: str, day: date) -> Dict[str, object]:
    allocated = RANDOM.choice((24000, 25200, 26400))
    losses = {
        column: round(RANDOM.uniform(0, 300), 2)
        for column in MECHANICAL_LOSS + ELECTRICAL_LOSS + LABOUR_LOSS + PROCESS_LOSS
    }
    row: Dict[str, object] = {
        "organisation_id": organisation_id,
        "date": day,
        "allocated_spindle": allocated,
        "worked_spindle": round(allocated - sum(losses.values()), 2),
    }
    row.update(losses)
    return row


def _production_rows(organisation_id: str, day: date) -> List[Dict[str, object]]:
    return [
        {
            "organisation_id": organisation_id,
            "date": day,
            "shift": shift,
            "kgs": round(RANDOM.uniform(2500, 3500), 3),
            "gps": round(RANDOM.uniform(95, 130), 3),
            "production_efficiency": round(RANDOM.uniform(82, 97), 2),
            "eup": round(RANDOM.uniform(85, 99), 2),
            "u_percent": round(RANDOM.uniform(88, 99), 2),
        }
        for shift in (1, 2, 3)
    ]


def _ukg_rows(organisation_id: str, day: date) -> List[Dict[str, object]]:
    rows = []
    for shift in ("1", "2", "3"):
        row: Dict[str, object] = {"organisation_id": organisation_id, "date": day, "shift": shift}
        row.update({column: round(RANDOM.uniform(0.05, 1.6), 3) for column in ALL_UKG})
        rows.append(row)
    return rows


def _upsert(cur, table: str, rows: List[Dict[str, object]], conflict: str) -> None:
    if not rows:
        return
    columns = list(rows[0].keys())
    keys = {column.strip() for column in conflict.split(",")}
    updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in columns if column not in keys)
    statement = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join(f'%({column})s' for column in columns)}) "
        f"ON CONFLICT ({conflict}) DO UPDATE SET {updates}"
    )
    cur.executemany(statement, rows)


def seed(organisation_id: str, days: int, end: date) -> int:
    yarn: List[Dict[str, object]] = []
    rf: List[Dict[str, object]] = []
    production: List[Dict[str, object]] = []
    ukg: List[Dict[str, object]] = []
    for day in _days(end, days):
        yarn.append(_yarn_row(organisation_id, day))
        rf.append(_rf_row(organisation_id, day))
        production.extend(_production_rows(organisation_id, day))
        ukg.extend(_ukg_rows(organisation_id, day))

    with pool.connection() as conn:
        with conn.cursor() as cur:
            set_search_path(cur)
            _upsert(cur, "yarn_realisation", yarn, "organisation_id, date")
            _upsert(cur, "rf_utilisation", rf, "organisation_id, date")
            _upsert(cur, "production_efficiency", production, "organisation_id, date, shift")
            _upsert(cur, "unit_per_kg", ukg, "organisation_id, date, shift")
        conn.commit()
    return len(yarn) + len(rf) + len(production) + len(ukg)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--organisation", default=DEFAULT_ORGANISATION)
    parser.add_argument("--days", type=int, default=DEFAULT_DAYS)
    parser.add_argument("--end", type=date.fromisoformat, default=date.today())
    args = parser.parse_args()
    open_pool()
    try:
        initialize_database()
        written = seed(args.organisation, args.days, args.end)
        print(f"Seeded {written} rows for {args.organisation} ending {args.end.isoformat()}.")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
