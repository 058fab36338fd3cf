from __future__ import annotations
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import RLock
from typing import Callable, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from models.records import Reading
from services.errors import StorageError
from settings import get_settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ReadingStore:
    """Append-only store of readings, optionally mirrored to a JSON document."""

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._items: List[Reading] = []
        self._next_id = 1
        self.persistence_path = persistence_path
        self._clock = clock
        self._lock = RLock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    @contextmanager
    def transaction(self) -> Iterator["ReadingStore"]:
        """Hold the write lock so ``latest()`` followed by ``append()`` is atomic."""

        with self._lock:
            yield self

    def append(
        self,
        value: float,
        recorded_at: Optional[datetime] = None,
        derived: Optional[float] = None,
    ) -> Reading:
        with self._lock:
            reading = Reading(
                id=self._next_id,
                value=value,
                recorded_at=_as_utc(recorded_at or self._clock()),
                derived=derived,
            )
            self._items.append(reading)
            try:
                self._persist()
            except OSError as exc:
                self._items.pop()
                logger.error(
                    "Failed to persist reading",
                    extra={"value": value, "reason": str(exc)},
                )
                raise StorageError(f"Could not write reading to store: {exc}") from exc
            self._next_id += 1
            return reading.model_copy(deep=True)

    def latest(self) -> Optional[Reading]:
        with self._lock:
            if not self._items:
                return None
            item = max(self._items, key=lambda reading: (reading.recorded_at, reading.id))
            return item.model_copy(deep=True)

    def query(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Reading]:
        """Return readings in ``[start, end)`` ordered by time, then insertion order."""

        with self._lock:
            snapshot = [item.model_copy(deep=True) for item in self._items]

        lower = _as_utc(start) if start is not None else None
        upper = _as_utc(end) if end is not None else None
        selected = [
            reading
            for reading in snapshot
            if (lower is None or reading.recorded_at >= lower)
            and (upper is None or reading.recorded_at < upper)
        ]
        return sorted(selected, key=lambda reading: (reading.recorded_at, reading.id))

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [item.model_dump(mode="json", by_alias=True) for item in self._items]
        target = self.persistence_path
        # Readers only ever see the previous document or the new one.
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f"{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _quarantine(self, path: Path) -> Path:
        """Move an unparseable store file aside so it is never overwritten."""
        aside = path.with_name(f"{path.name}.corrupt")
        suffix = 1
        while aside.exists():
            aside = path.with_name(f"{path.name}.corrupt.{suffix}")
            suffix += 1
        os.replace(path, aside)
        return aside

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
        except OSError as exc:
            raise StorageError(f"Could not read reading store: {exc}") from exc

        try:
            data = json.loads(raw)
            items = [Reading.model_validate(payload) for payload in data]
        except (json.JSONDecodeError, TypeError, PydanticValidationError) as exc:
            try:
                aside = self._quarantine(self.persistence_path)
            except OSError as move_exc:
                raise StorageError(
                    f"Reading store is unreadable and could not be moved aside: {move_exc}"
                ) from exc
            logger.error(
                "Reading store is unreadable; moved aside and starting empty",
                extra={"reason": f"{exc.__class__.__name__} ({aside.name})"},
            )
            items = []

        self._items = items
        self._next_id = max((item.id for item in items), default=0) + 1
        logger.info("Loaded reading store", extra={"reading_count": len(items)})


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
