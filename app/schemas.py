"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import ChartPoint, DaySummary, IngestionOutcome, IngestionResult, Reading


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadingPayload(BaseModel):
    """Body posted by the device. The value is validated by the ingestion service."""

    value: Any = Field(
        default=None,
        validation_alias=AliasChoices("value", "weight", "sensorValue"),
        description="Numeric sensor value.",
    )
    recorded_at: Any = Field(
        default=None,
        validation_alias=AliasChoices("recordedAt", "recorded_at"),
        description="Optional ISO-8601 timestamp; defaults to the time of persistence.",
    )


class IngestionResponse(_CamelModel):
    """Outcome of a posted or triggered reading."""

    message: str
    outcome: IngestionOutcome
    reading: Optional[Reading] = None

    @classmethod
    def from_result(cls, result: IngestionResult) -> "IngestionResponse":
        return cls(message=result.message, outcome=result.outcome, reading=result.reading)


class ErrorResponse(BaseModel):
    message: str


class LogEntryOut(_CamelModel):
    value: float
    time: datetime


class DaySummaryOut(_CamelModel):
    day_summary: float
    logs: List[LogEntryOut] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: DaySummary) -> "DaySummaryOut":
        return cls(
            day_summary=summary.day_summary,
            logs=[LogEntryOut(value=entry.value, time=entry.time) for entry in summary.logs],
        )


class ChartPointOut(_CamelModel):
    day: date = Field(..., alias="date")
    day_summary: float

    @classmethod
    def from_point(cls, point: ChartPoint) -> "ChartPointOut":
        return cls(day=point.day, day_summary=point.day_summary)
