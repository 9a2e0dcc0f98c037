from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple


_BIND_ADDR_ENV = "BIND_ADDR"
_SENSORS_ENV = "AWAIR_SENSORS"
_REQUEST_TIMEOUT_ENV = "AWAIR_REQUEST_TIMEOUT"
_SCRAPE_TIMEOUT_ENV = "AWAIR_SCRAPE_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_LOG_HIDE_ENV = "LOG_HIDE"
_LOG_HIDE_DATE_ENV = "LOG_HIDE_DATE"
_LOG_HIDE_FILE_ENV = "LOG_HIDE_FILE"

DEFAULT_BIND_ADDR = "127.0.0.1:8080"
DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_SCRAPE_TIMEOUT = 10.0

# These may change based on DHCP leases on the sensor network.
DEFAULT_SENSORS: Mapping[str, str] = MappingProxyType(
    {
        "Bedroom": "192.168.53.1",
        "Living Room": "192.168.53.235",
    }
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    bind_addr: str = DEFAULT_BIND_ADDR
    sensors: Mapping[str, str] = field(default_factory=lambda: DEFAULT_SENSORS)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    scrape_timeout: float = DEFAULT_SCRAPE_TIMEOUT
    log_level: str = "INFO"
    hide_log: bool = False
    hide_log_date: bool = False
    hide_log_file: bool = False


def freeze_sensor_table(table: Mapping[str, str]) -> Mapping[str, str]:
    """Return a read-only copy of ``table`` suitable for sharing across requests."""
    return MappingProxyType(dict(table))


def parse_sensor_table(raw: str) -> Mapping[str, str]:
    """Parse a JSON object of ``{"name": "host:port"}`` pairs."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Sensor table is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Sensor table must be a JSON object of name to address.")

    table: dict[str, str] = {}
    for name, address in data.items():
        if not isinstance(address, str) or not address.strip():
            raise ValueError(f"Sensor {name!r} has an invalid address.")
        if not name.strip():
            raise ValueError("Sensor names must not be empty.")
        table[name] = address.strip()
    return freeze_sensor_table(table)


def parse_sensor_assignments(items: Iterable[str]) -> Mapping[str, str]:
    """Parse ``NAME=ADDRESS`` items, as given on the command line."""
    table: dict[str, str] = {}
    for item in items:
        name, sep, address = item.rpartition("=")
        name = name.strip()
        address = address.strip()
        if not sep or not name or not address:
            raise ValueError(f"Expected NAME=ADDRESS, got {item!r}.")
        if name in table:
            raise ValueError(f"Sensor {name!r} is listed more than once.")
        table[name] = address
    return freeze_sensor_table(table)


def parse_bind_addr(value: str) -> Tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host binds every interface."""
    host, sep, port_raw = value.strip().rpartition(":")
    if not sep:
        raise ValueError(f"Bind address {value!r} must look like host:port.")
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ValueError(f"Bind address {value!r} has an invalid port.") from exc
    if not 0 < port < 65536:
        raise ValueError(f"Bind address {value!r} has an out of range port.")
    host = host.strip("[]") or "0.0.0.0"
    return host, port


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_sensor_table(default: Mapping[str, str]) -> Mapping[str, str]:
    value = os.getenv(_SENSORS_ENV)
    if value is None or not value.strip():
        return default
    try:
        return parse_sensor_table(value)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        bind_addr=_read_str_env(_BIND_ADDR_ENV, DEFAULT_BIND_ADDR),
        sensors=_read_sensor_table(DEFAULT_SENSORS),
        request_timeout=_read_positive_float(_REQUEST_TIMEOUT_ENV, DEFAULT_REQUEST_TIMEOUT),
        scrape_timeout=_read_positive_float(_SCRAPE_TIMEOUT_ENV, DEFAULT_SCRAPE_TIMEOUT),
        log_level=_read_log_level("INFO"),
        hide_log=_read_bool_env(_LOG_HIDE_ENV, False),
        hide_log_date=_read_bool_env(_LOG_HIDE_DATE_ENV, False),
        hide_log_file=_read_bool_env(_LOG_HIDE_FILE_ENV, False),
    )
