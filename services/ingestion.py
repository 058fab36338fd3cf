"""Validation and policy checks for incoming readings."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from datastore.reading_store import ReadingStore
from models.records import IngestionMode, IngestionOutcome, IngestionResult, Reading
from services.errors import ValidationError

logger = logging.getLogger(__name__)


class IngestionService:
    """Records one incoming value according to the configured ingestion mode."""

    def __init__(
        self,
        store: ReadingStore,
        mode: IngestionMode = IngestionMode.consumption_delta,
    ) -> None:
        self.store = store
        self.mode = mode

    def ingest(self, value: Any, recorded_at: Any = None) -> IngestionResult:
        """Validate ``value`` and store it unless the mode says otherwise.

        Raises ``ValidationError`` for malformed input. Storage failures
        surface as ``StorageError`` from the store.
        """
        parsed_value = self.parse_value(value)
        timestamp = self.parse_timestamp(recorded_at) if recorded_at is not None else None

        with self.store.transaction() as tx:
            latest = tx.latest()
            result = self._apply_policy(tx, parsed_value, timestamp, latest)

        logger.info(
            result.message,
            extra={
                "value": parsed_value,
                "outcome": result.outcome.value,
                "mode": self.mode.value,
                "reading_id": result.reading.id if result.reading else None,
                "derived": result.reading.derived if result.reading else None,
            },
        )
        return result

    def _apply_policy(
        self,
        tx: ReadingStore,
        value: float,
        recorded_at: Optional[datetime],
        latest: Optional[Reading],
    ) -> IngestionResult:
        if self.mode is IngestionMode.unconditional:
            reading = tx.append(value, recorded_at=recorded_at)
            return IngestionResult(IngestionOutcome.logged, "Reading logged.", reading)

        if latest is None:
            derived = 0.0 if self.mode is IngestionMode.consumption_delta else None
            reading = tx.append(value, recorded_at=recorded_at, derived=derived)
            return IngestionResult(IngestionOutcome.logged, "First reading logged.", reading)

        if self.mode is IngestionMode.monotonic_reject:
            if value >= latest.value:
                return IngestionResult(
                    IngestionOutcome.rejected,
                    (
                        f"Reading rejected: {value:g} is not lower than the "
                        f"last logged value {latest.value:g}."
                    ),
                )
            reading = tx.append(value, recorded_at=recorded_at)
            return IngestionResult(IngestionOutcome.logged, "Reading logged.", reading)

        if value > latest.value:
            return IngestionResult(
                IngestionOutcome.skipped,
                (
                    f"Value increased from {latest.value:g} to {value:g}; "
                    "treated as a refill, reading not logged."
                ),
            )

        derived = latest.value - value
        reading = tx.append(value, recorded_at=recorded_at, derived=derived)
        return IngestionResult(
            IngestionOutcome.logged,
            f"Reading logged; {derived:g} consumed since the last reading.",
            reading,
        )

    @staticmethod
    def parse_value(value: Any) -> float:
        if value is None:
            raise ValidationError("Missing reading value.")
        if isinstance(value, bool):
            raise ValidationError("Reading value must be a number.")
        if isinstance(value, (int, float)):
            parsed = float(value)
        elif isinstance(value, str):
            candidate = value.strip()
            if not candidate:
                raise ValidationError("Missing reading value.")
            try:
                parsed = float(candidate)
            except ValueError as exc:
                raise ValidationError(f"Reading value {value!r} is not a number.") from exc
        else:
            raise ValidationError("Reading value must be a number.")

        if not math.isfinite(parsed):
            raise ValidationError("Reading value must be a finite number.")
        return parsed

    @staticmethod
    def parse_timestamp(value: Any) -> datetime:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            candidate = value.strip()
            if not candidate:
                raise ValidationError("Timestamp is empty.")
            if candidate.endswith("Z"):
                candidate = candidate[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(candidate)
            except ValueError as exc:
                raise ValidationError(f"Invalid timestamp {value!r}.") from exc
        else:
            raise ValidationError("Timestamp must be an ISO-8601 string.")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

        return parsed.astimezone(timezone.utc)
