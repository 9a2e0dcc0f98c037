"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from services.errors import SensorError

SensorTable = Mapping[str, str]

METRIC_FIELDS: Tuple[str, ...] = (
    "score",
    "dew_point",
    "temp",
    "humid",
    "co2",
    "voc",
    "voc_baseline",
    "voc_h2_raw",
    "voc_ethanol_raw",
    "pm25",
    "pm10_est",
)


class Reading(BaseModel):
    """Latest air-data measurement reported by a single sensor."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    timestamp: Optional[datetime] = None
    score: float = 0.0
    dew_point: float = 0.0
    temp: float = 0.0
    humid: float = 0.0
    co2: float = 0.0
    voc: float = 0.0
    voc_baseline: float = 0.0
    voc_h2_raw: float = 0.0
    voc_ethanol_raw: float = 0.0
    pm25: float = 0.0
    pm10_est: float = 0.0

    @field_validator(*METRIC_FIELDS, mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    def metrics(self) -> List[Tuple[str, float]]:
        """Metric values in exposition order."""
        return [(name, getattr(self, name)) for name in METRIC_FIELDS]


@dataclass
class BatchResult:
    """Outcome of polling every sensor in the table once."""

    readings: Dict[str, Reading] = field(default_factory=dict)
    sensors: List[str] = field(default_factory=list)
    failures: List[Tuple[str, "SensorError"]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def error(self) -> Optional["SensorError"]:
        if not self.failures:
            return None
        return self.failures[0][1]

    def sorted_sensors(self) -> List[str]:
        return sorted(self.readings)

    def is_complete(self, table: SensorTable) -> bool:
        accounted = set(self.readings) | {name for name, _ in self.failures}
        return accounted == set(table)
