"""Day bucketing and consumption summaries for stored readings."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from datastore.reading_store import ReadingStore
from models.records import ChartPoint, DaySummary, DeltaStrategy, LogEntry, Reading

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_local(moment: datetime, tz: Optional[tzinfo]) -> datetime:
    """Convert ``moment`` to ``tz``; ``None`` means the server's local zone."""
    return moment.astimezone(tz) if tz is not None else moment.astimezone()


def local_day(moment: datetime, tz: Optional[tzinfo]) -> date:
    return to_local(moment, tz).date()


def day_window(day: date, tz: Optional[tzinfo]) -> tuple[datetime, datetime]:
    """Return ``[midnight, next midnight)`` of ``day`` in ``tz`` as aware datetimes."""

    def _midnight(target: date) -> datetime:
        naive = datetime.combine(target, time.min)
        if tz is None:
            return naive.astimezone()
        return naive.replace(tzinfo=tz)

    return _midnight(day), _midnight(day + timedelta(days=1))


def group_by_day(
    readings: Iterable[Reading], tz: Optional[tzinfo]
) -> Dict[date, List[Reading]]:
    """Bucket readings by local calendar day, keeping their incoming order."""

    buckets: Dict[date, List[Reading]] = {}
    for reading in readings:
        buckets.setdefault(local_day(reading.recorded_at, tz), []).append(reading)
    return dict(sorted(buckets.items()))


def compute_day_summary(readings: Sequence[Reading], strategy: DeltaStrategy) -> float:
    """Amount consumed within one day's ordered readings."""

    if strategy is DeltaStrategy.stored:
        return sum((reading.derived or 0.0) for reading in readings)

    total = 0.0
    for earlier, later in zip(readings, readings[1:]):
        if earlier.value > later.value:
            total += earlier.value - later.value
    return total


class Aggregator:
    """Groups stored readings by local day and summarizes consumption."""

    def __init__(
        self,
        store: ReadingStore,
        strategy: DeltaStrategy = DeltaStrategy.recomputed,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.strategy = strategy
        self.tz = tz
        self._clock = clock

    def today(self) -> date:
        return local_day(self._clock(), self.tz)

    def summarize_all(self) -> Dict[date, DaySummary]:
        readings = self.store.query()
        summaries = {
            day: self._summarize(day, bucket)
            for day, bucket in group_by_day(readings, self.tz).items()
        }
        logger.debug(
            "Summarized all readings",
            extra={"reading_count": len(readings), "status": f"{len(summaries)} days"},
        )
        return summaries

    def summarize_day(self, day: Optional[date] = None) -> DaySummary:
        target = day or self.today()
        start, end = day_window(target, self.tz)
        bucket = group_by_day(self.store.query(start=start, end=end), self.tz).get(target, [])
        return self._summarize(target, bucket)

    def chart_series(self) -> list[ChartPoint]:
        return [
            ChartPoint(day=day, day_summary=summary.day_summary)
            for day, summary in self.summarize_all().items()
        ]

    def _summarize(self, day: date, readings: Sequence[Reading]) -> DaySummary:
        return DaySummary(
            day=day,
            logs=[LogEntry(value=reading.value, time=reading.recorded_at) for reading in readings],
            day_summary=compute_day_summary(readings, self.strategy),
        )


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone, using server local time", extra={"reason": name})
        return None
