"""HTTP client for the sensors' local air-data endpoint."""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from models.records import Reading
from services.errors import DecodeError, RemoteStatusError, SensorError, TransportError
from settings import Settings

logger = logging.getLogger(__name__)

LATEST_PATH = "/air-data/latest"


def build_http_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Shared async client; ``transport`` lets tests stub the sensors."""
    return httpx.AsyncClient(timeout=settings.request_timeout, transport=transport)


class SensorClient:
    """Fetches the latest reading from one sensor per call, without retries."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def build_url(address: str) -> str:
        return f"http://{address}{LATEST_PATH}"

    async def fetch(self, address: str) -> Reading:
        url = self.build_url(address)
        started = time.perf_counter()
        status_code: Optional[int] = None
        try:
            try:
                response = await self._http.get(url)
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                raise TransportError(url, str(exc) or exc.__class__.__name__) from exc
            status_code = response.status_code
            reading = self._decode(url, response)
        except SensorError as exc:
            logger.warning(
                "Sensor request failed",
                extra={
                    "url": url,
                    "status_code": status_code,
                    "elapsed_ms": _elapsed_ms(started),
                    "reason": exc,
                },
            )
            raise

        logger.info(
            "Sensor request completed",
            extra={
                "url": url,
                "status_code": status_code,
                "elapsed_ms": _elapsed_ms(started),
            },
        )
        return reading

    @staticmethod
    def _decode(url: str, response: httpx.Response) -> Reading:
        if not 200 <= response.status_code <= 299:
            raise RemoteStatusError(url, response.status_code)
        try:
            return Reading.model_validate_json(response.content)
        except ValidationError as exc:
            detail = exc.errors()[0]["msg"] if exc.errors() else "validation failed"
            raise DecodeError(url, f"invalid air-data payload: {detail}") from exc


def _elapsed_ms(started: float) -> str:
    return f"{(time.perf_counter() - started) * 1000:.2f}"
