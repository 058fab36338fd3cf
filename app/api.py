"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status

from app.schemas import (
    ChartPointOut,
    DaySummaryOut,
    ErrorResponse,
    IngestionResponse,
    ReadingPayload,
)
from models.records import IngestionOutcome, IngestionResult, Reading
from services.aggregator import Aggregator
from services.container import ServiceContainer
from services.errors import (
    AdapterTimeoutError,
    AdapterUnavailableError,
    StorageError,
    TriggerDisabledError,
    ValidationError,
)
from services.ingestion import IngestionService
from services.trigger import TriggerService

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_ingestion(services: ServiceContainer = Depends(get_services)) -> IngestionService:
    return services.ingestion


def get_aggregator(services: ServiceContainer = Depends(get_services)) -> Aggregator:
    return services.aggregator


def get_trigger(services: ServiceContainer = Depends(get_services)) -> TriggerService:
    return services.trigger


def _fail(status_code: int, exc: Exception, reason: str) -> NoReturn:
    logger.warning(str(exc), extra={"status": status_code, "reason": reason})
    raise HTTPException(status_code=status_code, detail=str(exc)) from exc


def _to_response(result: IngestionResult, response: Response) -> IngestionResponse:
    if result.outcome is IngestionOutcome.rejected:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return IngestionResponse.from_result(result)


@router.post(
    "/reading",
    response_model=IngestionResponse,
    responses=_ERROR_RESPONSES,
    summary="Record a reading posted by the device.",
)
async def post_reading(
    response: Response,
    payload: Optional[ReadingPayload] = Body(default=None),
    ingestion: IngestionService = Depends(get_ingestion),
) -> IngestionResponse:
    payload = payload or ReadingPayload()
    try:
        result = ingestion.ingest(payload.value, recorded_at=payload.recorded_at)
    except ValidationError as exc:
        _fail(status.HTTP_400_BAD_REQUEST, exc, "invalid reading")
    except StorageError as exc:
        _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "storage")
    return _to_response(result, response)


@router.post(
    "/trigger",
    response_model=IngestionResponse,
    responses={
        **_ERROR_RESPONSES,
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
        status.HTTP_504_GATEWAY_TIMEOUT: {"model": ErrorResponse},
    },
    summary="Ask the device for a fresh reading and record it.",
)
async def trigger_reading(
    response: Response,
    trigger: TriggerService = Depends(get_trigger),
) -> IngestionResponse:
    try:
        result = await trigger.trigger_reading()
    except TriggerDisabledError as exc:
        _fail(status.HTTP_503_SERVICE_UNAVAILABLE, exc, "trigger disabled")
    except AdapterTimeoutError as exc:
        _fail(status.HTTP_504_GATEWAY_TIMEOUT, exc, "device timeout")
    except AdapterUnavailableError as exc:
        _fail(status.HTTP_502_BAD_GATEWAY, exc, "device unavailable")
    except ValidationError as exc:
        _fail(status.HTTP_502_BAD_GATEWAY, exc, "device sent invalid value")
    except StorageError as exc:
        _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "storage")
    return _to_response(result, response)


@router.get(
    "/summary-all",
    response_model=Dict[str, DaySummaryOut],
    summary="Readings and consumption grouped by local calendar day.",
)
async def summary_all(
    aggregator: Aggregator = Depends(get_aggregator),
) -> Dict[str, DaySummaryOut]:
    return {
        day.isoformat(): DaySummaryOut.from_summary(summary)
        for day, summary in aggregator.summarize_all().items()
    }


@router.get(
    "/summary",
    response_model=DaySummaryOut,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    summary="Readings and consumption for one day (default: today).",
)
async def summary(
    day: Optional[date] = Query(default=None, alias="date", description="YYYY-MM-DD"),
    aggregator: Aggregator = Depends(get_aggregator),
) -> DaySummaryOut:
    return DaySummaryOut.from_summary(aggregator.summarize_day(day))


@router.get(
    "/summary-chart",
    response_model=list[ChartPointOut],
    summary="Daily consumption totals in ascending date order.",
)
async def summary_chart(
    aggregator: Aggregator = Depends(get_aggregator),
) -> list[ChartPointOut]:
    return [ChartPointOut.from_point(point) for point in aggregator.chart_series()]


@router.get(
    "/readings/latest",
    response_model=Reading,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Most recent stored reading.",
)
async def latest_reading(
    services: ServiceContainer = Depends(get_services),
) -> Reading:
    reading = services.store.latest()
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readings have been logged yet.",
        )
    return reading


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    return {
        "status": "ok",
        "readings": services.store.count(),
        "mode": services.ingestion.mode.value,
    }


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
