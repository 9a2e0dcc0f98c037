"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from services.metrics import MetricsSnapshot


class DiagnosticVars(BaseModel):
    """Process counters, keyed the way the diagnostics endpoint publishes them."""

    model_config = ConfigDict(populate_by_name=True)

    sensor_count: int = Field(..., ge=0, alias="awair.sensor.count")
    request_count: int = Field(..., ge=0, alias="http.request.count")
    deadline_exceeded_count: int = Field(
        ..., ge=0, alias="http.request.deadline_exceeded.count"
    )
    canceled_count: int = Field(..., ge=0, alias="http.request.canceled.count")
    error_count: int = Field(..., ge=0, alias="http.request.error.count")
    elapsed_last: float = Field(
        ..., alias="http.request.elapsed.last", description="Milliseconds."
    )
    elapsed_avg: float = Field(..., alias="http.request.elapsed.avg")
    elapsed_p95: float = Field(..., alias="http.request.elapsed.p95")
    elapsed_min: float = Field(..., alias="http.request.elapsed.min")
    elapsed_max: float = Field(..., alias="http.request.elapsed.max")

    @classmethod
    def from_snapshot(cls, snapshot: MetricsSnapshot) -> "DiagnosticVars":
        return cls(
            sensor_count=snapshot.sensor_count,
            request_count=snapshot.request_count,
            deadline_exceeded_count=snapshot.deadline_exceeded_count,
            canceled_count=snapshot.canceled_count,
            error_count=snapshot.error_count,
            elapsed_last=snapshot.elapsed_last,
            elapsed_avg=snapshot.elapsed_avg,
            elapsed_p95=snapshot.elapsed_p95,
            elapsed_min=snapshot.elapsed_min,
            elapsed_max=snapshot.elapsed_max,
        )
