"""Per-request counters, timers and access logging."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from services.metrics import RequestMetrics

logger = logging.getLogger(__name__)

ABORT_REASON_KEY = "abort_reason"
CANCELED = "canceled"
DEADLINE_EXCEEDED = "deadline_exceeded"
CLIENT_CLOSED_REQUEST = 499

_KILOBYTE = 1 << 10
_MEGABYTE = 1 << 20
_GIGABYTE = 1 << 30


def format_content_length(content_length: int) -> str:
    if content_length >= _GIGABYTE:
        return f"{content_length / _GIGABYTE:0.2f}gB"
    if content_length >= _MEGABYTE:
        return f"{content_length / _MEGABYTE:0.2f}mB"
    if content_length >= _KILOBYTE:
        return f"{content_length / _KILOBYTE:0.2f}kB"
    return f"{content_length}B"


class ResponseRecorder:
    """Wraps an ASGI ``send`` callable, remembering status and body size."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status_code: Optional[int] = None
        self.content_length = 0

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status_code = message["status"]
        elif message["type"] == "http.response.body":
            self.content_length += len(message.get("body", b""))
        await self._send(message)


class InstrumentationMiddleware:
    """Counts, times and logs every HTTP request.

    Routes flag aborted scrapes by storing ``abort_reason`` in the request
    state; a task cancelled by the server is counted as a cancellation too.
    """

    def __init__(self, app: ASGIApp, metrics: RequestMetrics) -> None:
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        self.metrics.record_request()
        state = scope.setdefault("state", {})
        recorder = ResponseRecorder(send)
        started = time.perf_counter()
        cancelled = False
        try:
            await self.app(scope, receive, recorder)
        except asyncio.CancelledError:
            cancelled = True
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._record(scope, state.get(ABORT_REASON_KEY), recorder, elapsed_ms, cancelled)

    def _record(
        self,
        scope: Scope,
        abort_reason: Optional[str],
        recorder: ResponseRecorder,
        elapsed_ms: float,
        cancelled: bool,
    ) -> None:
        status_code = recorder.status_code
        if status_code is None:
            status_code = CLIENT_CLOSED_REQUEST if cancelled else 500

        if status_code != 200:
            self.metrics.record_error()
        if cancelled or abort_reason == CANCELED:
            self.metrics.record_canceled()
        elif abort_reason == DEADLINE_EXCEEDED:
            self.metrics.record_deadline_exceeded()
        self.metrics.record_elapsed(elapsed_ms)

        logger.info(
            "%s %s",
            scope.get("method", "GET"),
            scope.get("path", ""),
            extra={
                "status_code": status_code,
                "size": format_content_length(recorder.content_length),
                "elapsed_ms": f"{elapsed_ms:.2f}",
            },
        )
