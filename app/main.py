from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI

from app.api import router
from app.instrumentation import InstrumentationMiddleware
from logging_config import configure_logging
from services.aggregator import Aggregator
from services.metrics import RequestMetrics, build_default_metrics
from services.sensor_client import SensorClient, build_http_client
from settings import Settings, get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await app.state.sensor_client.aclose()


def create_app(
    settings: Optional[Settings] = None,
    metrics: Optional[RequestMetrics] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    metrics = metrics or build_default_metrics()
    configure_logging(settings)

    app = FastAPI(
        title="Awair Exporter",
        description="Republishes Awair local air-data readings for Prometheus.",
        version="0.1.0",
        lifespan=lifespan,
    )

    sensor_client = SensorClient(build_http_client(settings, transport=transport))
    aggregator = Aggregator(client=sensor_client, sensors=settings.sensors)
    metrics.set_sensor_count(len(aggregator.sensors))

    app.state.settings = settings
    app.state.sensors = aggregator.sensors
    app.state.sensor_client = sensor_client
    app.state.aggregator = aggregator
    app.state.metrics = metrics

    app.add_middleware(InstrumentationMiddleware, metrics=metrics)
    app.include_router(router)
    return app
