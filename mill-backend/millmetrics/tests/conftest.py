from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

import pytest

from millmetrics.services.aggregation import QueryDescriptor

TODAY = date(2025, 3, 14)


class FakeRepo:
    """Stands in for ``MetricsRepo``; records descriptors and replays rows."""

    def __init__(self, rows: List[Dict[str, Any]] | None = None, error: Exception | None = None):
        self.rows = rows or []
        self.error = error
        self.descriptors: List[QueryDescriptor] = []

    def fetch(self, descriptor: QueryDescriptor) -> List[Dict[str, Any]]:
        self.descriptors.append(descriptor)
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def fake_repo() -> FakeRepo:
    return FakeRepo()


@pytest.fixture
def make_repo():
    return FakeRepo
