"""Explicit wiring of the store and services owned by the process entry point."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from datastore.reading_store import ReadingStore, build_default_store
from models.records import DeltaStrategy, IngestionMode
from services.aggregator import Aggregator, resolve_timezone
from services.ingestion import IngestionService
from services.trigger import DeviceTrigger, TriggerService, build_trigger
from settings import Settings, get_settings


@dataclass
class ServiceContainer:
    store: ReadingStore
    ingestion: IngestionService
    aggregator: Aggregator
    trigger: TriggerService

    async def aclose(self) -> None:
        await self.trigger.aclose()


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[ReadingStore] = None,
    device: Optional[DeviceTrigger] = None,
) -> ServiceContainer:
    """Factory that wires every service around a single store handle."""
    if store is None:
        if settings is None:
            store = build_default_store()
        else:
            persistence = Path(settings.store_path) if settings.store_path else None
            store = ReadingStore(persistence_path=persistence)
    settings = settings or get_settings()

    ingestion = IngestionService(store=store, mode=IngestionMode(settings.ingestion_mode))
    aggregator = Aggregator(
        store=store,
        strategy=DeltaStrategy(settings.summary_strategy),
        tz=resolve_timezone(settings.timezone),
    )
    trigger = TriggerService(
        trigger=device if device is not None else build_trigger(settings),
        ingestion=ingestion,
        timeout=settings.trigger_timeout,
    )
    return ServiceContainer(
        store=store,
        ingestion=ingestion,
        aggregator=aggregator,
        trigger=trigger,
    )
