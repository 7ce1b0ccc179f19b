from __future__ import annotations

from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

ReportRow = Dict[str, Union[str, float]]


class ReportInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    title: str
    table: str
    metrics: List[str]
    fields: List[str] = Field(default_factory=list)
    bucketed: bool


class ReportCatalog(BaseModel):
    reports: List[ReportInfo]


class ErrorPayload(BaseModel):
    error: str
