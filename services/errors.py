"""Errors raised while scraping sensors."""

from __future__ import annotations

from typing import Optional


class SensorError(Exception):
    """A single sensor could not produce a reading."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"GET {url}: {message}")
        self.url = url


class TransportError(SensorError):
    """The sensor could not be reached."""


class RemoteStatusError(SensorError):
    """The sensor answered outside the 2xx range."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"non-200 returned from remote (status {status_code})")
        self.status_code = status_code


class DecodeError(SensorError):
    """The sensor body was not a valid air-data payload."""


class ScrapeAborted(Exception):
    """The scrape request ended before every sensor answered."""

    reason: Optional[str] = None


class RequestCanceled(ScrapeAborted):
    reason = "canceled"

    def __init__(self, message: str = "request canceled") -> None:
        super().__init__(message)


class DeadlineExceeded(ScrapeAborted):
    reason = "deadline_exceeded"

    def __init__(self, message: str = "deadline exceeded") -> None:
        super().__init__(message)
