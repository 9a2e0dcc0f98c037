"""HTTP route definitions for the exporter."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Mapping

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from app.instrumentation import ABORT_REASON_KEY, CLIENT_CLOSED_REQUEST
from app.schemas import DiagnosticVars
from models.records import BatchResult
from services.aggregator import Aggregator
from services.errors import DeadlineExceeded, RequestCanceled, ScrapeAborted, SensorError
from services.exposition import render_directory, render_metrics
from services.metrics import RequestMetrics

router = APIRouter()


class DirectoryResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"


def get_aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator


def get_sensor_table(request: Request) -> Mapping[str, str]:
    return request.app.state.sensors


def get_metrics(request: Request) -> RequestMetrics:
    return request.app.state.metrics


def get_scrape_timeout(request: Request) -> float:
    return request.app.state.settings.scrape_timeout


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def run_scrape(
    request: Request,
    scrape: Awaitable[BatchResult],
    timeout: float,
) -> BatchResult:
    """Await ``scrape`` unless the client goes away or the deadline passes first."""
    scrape_task = asyncio.ensure_future(scrape)
    disconnect_task = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait(
            {scrape_task, disconnect_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for task in (scrape_task, disconnect_task):
            if not task.done():
                task.cancel()

    if scrape_task in done:
        return scrape_task.result()
    if disconnect_task in done:
        raise RequestCanceled()
    raise DeadlineExceeded()


@router.get(
    "/",
    response_class=PlainTextResponse,
    summary="Latest readings of every sensor in Prometheus text format.",
)
@router.get(
    "/prometheus",
    response_class=PlainTextResponse,
    summary="Latest readings of every sensor in Prometheus text format.",
)
async def get_sensor_data(
    request: Request,
    aggregator: Aggregator = Depends(get_aggregator),
    timeout: float = Depends(get_scrape_timeout),
) -> Response:
    try:
        batch = await run_scrape(request, aggregator.aggregate(), timeout)
    except SensorError as exc:
        return PlainTextResponse(
            f"error fetching data; {exc}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    except ScrapeAborted as exc:
        setattr(request.state, ABORT_REASON_KEY, exc.reason)
        if isinstance(exc, RequestCanceled):
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        return PlainTextResponse(
            f"error fetching data; {exc}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return PlainTextResponse(render_metrics(batch))


@router.get(
    "/sensors",
    response_class=DirectoryResponse,
    summary="Configured sensors and their network addresses.",
)
async def get_sensors(sensors: Mapping[str, str] = Depends(get_sensor_table)) -> Response:
    return DirectoryResponse(render_directory(sensors))


@router.get(
    "/debug/vars",
    response_model=DiagnosticVars,
    summary="Process-wide request counters and timings.",
)
async def get_debug_vars(metrics: RequestMetrics = Depends(get_metrics)) -> DiagnosticVars:
    return DiagnosticVars.from_snapshot(metrics.snapshot())
