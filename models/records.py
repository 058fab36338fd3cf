"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class IngestionMode(str, Enum):
    """Policy applied when a new value is compared with the latest reading."""

    monotonic_reject = "monotonic_reject"
    consumption_delta = "consumption_delta"
    unconditional = "unconditional"


class IngestionOutcome(str, Enum):
    """What happened to an incoming value."""

    logged = "logged"
    rejected = "rejected"
    skipped = "skipped"


class DeltaStrategy(str, Enum):
    """How the per-day consumption figure is derived."""

    recomputed = "recomputed"
    stored = "stored"


class Reading(BaseModel):
    """A single persisted sensor sample. Immutable once stored."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int = Field(..., ge=1, description="Store-assigned sequence number.")
    value: float
    recorded_at: datetime
    derived: Optional[float] = Field(
        default=None, description="Amount consumed since the previous reading."
    )


@dataclass(frozen=True)
class IngestionResult:
    outcome: IngestionOutcome
    message: str
    reading: Optional[Reading] = None

    @property
    def stored(self) -> bool:
        return self.outcome is IngestionOutcome.logged


@dataclass(frozen=True, slots=True)
class LogEntry:
    value: float
    time: datetime


@dataclass(slots=True)
class DaySummary:
    """Readings of one local calendar day and the amount consumed that day."""

    day: date
    logs: List[LogEntry] = field(default_factory=list)
    day_summary: float = 0.0


@dataclass(frozen=True, slots=True)
class ChartPoint:
    day: date
    day_summary: float
