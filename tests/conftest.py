from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Iterator, Mapping, Union

import httpx
import pytest

from logging_config import configure_logging
from settings import Settings

Route = Union[Dict[str, Any], httpx.Response, Callable[[httpx.Request], Any], Exception]


@pytest.fixture(scope="session", autouse=True)
def _configure_logging() -> Iterator[None]:
    configure_logging(Settings())
    yield


def air_data(**overrides: Any) -> Dict[str, Any]:
    """A complete air-data payload as served by a sensor."""
    payload: Dict[str, Any] = {
        "timestamp": "2024-01-01T12:00:00.000Z",
        "score": 75.0,
        "dew_point": 11.2,
        "temp": 21.5,
        "humid": 52.1,
        "abs_humid": 9.8,
        "co2": 612.0,
        "co2_est": 400.0,
        "voc": 143.0,
        "voc_baseline": 36850.0,
        "voc_h2_raw": 27.0,
        "voc_ethanol_raw": 38.0,
        "pm25": 3.0,
        "pm10_est": 4.0,
    }
    payload.update(overrides)
    return payload


def sensor_transport(routes: Mapping[str, Route]) -> httpx.MockTransport:
    """Serve stub sensors keyed by host; unknown hosts refuse the connection.

    A route may be a payload dict, a ready ``httpx.Response``, an exception to
    raise, or a (possibly async) handler taking the request.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(request.url.host)
        if route is None:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, httpx.Response):
            return httpx.Response(
                route.status_code, headers=route.headers, content=route.content
            )
        if callable(route):
            result = route(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return httpx.Response(200, json=route)

    return httpx.MockTransport(handler)


async def hang_forever(request: httpx.Request) -> httpx.Response:
    await asyncio.Event().wait()
    raise AssertionError("unreachable")


@pytest.fixture()
def make_settings() -> Callable[..., Settings]:
    def factory(sensors: Mapping[str, str], **overrides: Any) -> Settings:
        return Settings(sensors=dict(sensors), **overrides)

    return factory
