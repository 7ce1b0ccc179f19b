from .filters import DateRange, FilterParams
from .reports import ErrorPayload, ReportCatalog, ReportInfo, ReportRow

__all__ = [
    "DateRange",
    "ErrorPayload",
    "FilterParams",
    "ReportCatalog",
    "ReportInfo",
    "ReportRow",
]
