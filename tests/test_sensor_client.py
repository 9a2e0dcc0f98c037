from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import httpx
import pytest

from conftest import air_data, sensor_transport
from models.records import Reading
from services.errors import DecodeError, RemoteStatusError, TransportError
from services.sensor_client import SensorClient


def _fetch(routes, address: str) -> Reading:
    async def run() -> Reading:
        client = SensorClient(httpx.AsyncClient(transport=sensor_transport(routes)))
        try:
            return await client.fetch(address)
        finally:
            await client.aclose()

    return asyncio.run(run())


def test_build_url_targets_latest_air_data() -> None:
    assert SensorClient.build_url("192.168.53.1") == "http://192.168.53.1/air-data/latest"
    assert SensorClient.build_url("sensor:8080") == "http://sensor:8080/air-data/latest"


def test_fetch_decodes_reading() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=air_data(score=80.0))

    reading = _fetch({"bedroom": handler}, "bedroom")

    assert seen == ["http://bedroom/air-data/latest"]
    assert reading.score == 80.0
    assert reading.temp == 21.5
    assert reading.pm10_est == 4.0
    assert reading.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_fetch_ignores_unknown_and_defaults_missing_fields() -> None:
    payload = {"score": 42, "temp": None, "firmware": "1.2.3"}

    reading = _fetch({"bedroom": payload}, "bedroom")

    assert reading.score == 42.0
    assert reading.temp == 0.0
    assert reading.co2 == 0.0
    assert reading.timestamp is None


def test_fetch_unreachable_sensor_raises_transport_error() -> None:
    with pytest.raises(TransportError) as excinfo:
        _fetch({}, "bedroom")

    assert "http://bedroom/air-data/latest" in str(excinfo.value)


def test_fetch_timeout_raises_transport_error() -> None:
    routes = {"bedroom": httpx.ReadTimeout("timed out")}

    with pytest.raises(TransportError):
        _fetch(routes, "bedroom")


@pytest.mark.parametrize("status_code", [199, 301, 404, 503])
def test_fetch_non_2xx_raises_remote_status_error(status_code: int) -> None:
    routes = {"bedroom": httpx.Response(status_code, json=air_data())}

    with pytest.raises(RemoteStatusError) as excinfo:
        _fetch(routes, "bedroom")

    assert excinfo.value.status_code == status_code
    assert "non-200 returned from remote" in str(excinfo.value)


def test_fetch_accepts_any_2xx_status() -> None:
    reading = _fetch({"bedroom": httpx.Response(204, json=air_data(co2=999))}, "bedroom")

    assert reading.co2 == 999.0


@pytest.mark.parametrize(
    "body",
    [b"not json", b"[1, 2, 3]", b'{"score": "high"}', b""],
)
def test_fetch_malformed_body_raises_decode_error(body: bytes) -> None:
    routes = {"bedroom": httpx.Response(200, content=body)}

    with pytest.raises(DecodeError):
        _fetch(routes, "bedroom")


def test_fetch_logs_one_line_per_attempt(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="services.sensor_client"):
        _fetch({"bedroom": air_data()}, "bedroom")
        with pytest.raises(RemoteStatusError):
            _fetch({"bedroom": httpx.Response(500)}, "bedroom")

    records = [r for r in caplog.records if r.name == "services.sensor_client"]
    assert len(records) == 2

    ok, failed = records
    assert ok.levelno == logging.INFO
    assert ok.url == "http://bedroom/air-data/latest"
    assert ok.status_code == 200
    assert float(ok.elapsed_ms) >= 0

    assert failed.levelno == logging.WARNING
    assert failed.status_code == 500
    assert "non-200" in str(failed.reason)
