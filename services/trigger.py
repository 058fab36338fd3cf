"""On-demand readings requested from the scale device."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Optional, Protocol

import httpx

from models.records import IngestionResult
from services.errors import (
    AdapterTimeoutError,
    AdapterUnavailableError,
    TriggerDisabledError,
)
from services.ingestion import IngestionService
from settings import Settings

logger = logging.getLogger(__name__)


class DeviceTrigger(Protocol):
    """Anything that can ask the device for a fresh value."""

    async def request_reading(self) -> Any:
        ...

    async def aclose(self) -> None:
        ...


class StaticDeviceTrigger:
    """Always answers with the same value. Handy for tests and demos."""

    def __init__(self, value: Any, delay: float = 0.0) -> None:
        self.value = value
        self.delay = delay
        self.calls = 0

    async def request_reading(self) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.value

    async def aclose(self) -> None:
        return None


class SimulatedDeviceTrigger:
    """Stands in for the device with a random delay and a random value."""

    def __init__(
        self,
        min_value: float = 0.0,
        max_value: float = 1000.0,
        min_delay: float = 0.1,
        max_delay: float = 1.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_value < min_value:
            raise ValueError("max_value must not be lower than min_value.")
        self.min_value = min_value
        self.max_value = max_value
        self.min_delay = min_delay
        self.max_delay = max(max_delay, min_delay)
        self._rng = rng or random.Random()

    async def request_reading(self) -> float:
        await asyncio.sleep(self._rng.uniform(self.min_delay, self.max_delay))
        return round(self._rng.uniform(self.min_value, self.max_value), 2)

    async def aclose(self) -> None:
        return None


class HttpDeviceTrigger:
    """Requests a reading from the device's own HTTP endpoint."""

    def __init__(
        self,
        base_url: str,
        path: str = "/read",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def request_reading(self) -> Any:
        try:
            response = await self._client.post(self.path)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise AdapterTimeoutError(
                f"Device at {self.base_url} did not answer in time."
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise AdapterUnavailableError(
                f"Device at {self.base_url} answered with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise AdapterUnavailableError(
                f"Device at {self.base_url} is unreachable: {exc}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise AdapterUnavailableError("Device reply is not valid JSON.") from exc

        if not isinstance(payload, dict):
            raise AdapterUnavailableError("Device reply must be a JSON object.")
        for key in ("value", "weight"):
            if key in payload:
                return payload[key]
        raise AdapterUnavailableError("Device reply does not contain a value.")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class TriggerService:
    """Runs the device trigger with a bounded wait and ingests its answer."""

    def __init__(
        self,
        trigger: Optional[DeviceTrigger],
        ingestion: IngestionService,
        timeout: float = 10.0,
    ) -> None:
        self.trigger = trigger
        self.ingestion = ingestion
        self.timeout = timeout

    async def trigger_reading(self) -> IngestionResult:
        if self.trigger is None:
            raise TriggerDisabledError("No device trigger is configured.")

        start_time = time.perf_counter()
        try:
            value = await asyncio.wait_for(
                self.trigger.request_reading(), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise AdapterTimeoutError(
                f"Device did not produce a reading within {self.timeout:g}s."
            ) from exc

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Device answered trigger",
            extra={"value": value, "elapsed_ms": elapsed_ms},
        )
        return self.ingestion.ingest(value)

    async def aclose(self) -> None:
        if self.trigger is not None:
            await self.trigger.aclose()


def build_trigger(settings: Settings) -> Optional[DeviceTrigger]:
    if settings.trigger_mode == "disabled":
        return None
    if settings.trigger_mode == "http":
        return HttpDeviceTrigger(settings.device_base_url, timeout=settings.trigger_timeout)
    return SimulatedDeviceTrigger(
        min_value=settings.simulator_min_value,
        max_value=max(settings.simulator_max_value, settings.simulator_min_value),
    )
