"""Error taxonomy shared by the resolver, the repository and the routers."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ReportingError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ReportingError):
    """Missing organisation scope or unparseable filter input (HTTP 400)."""

    status_code = 400


class AggregationFailed(ReportingError):
    """The aggregation query could not be executed (HTTP 500).

    ``context`` carries the organisation and resolved descriptors so the
    failure can be logged without re-deriving them.
    """

    status_code = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})
