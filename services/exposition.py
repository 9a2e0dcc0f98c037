"""Rendering of batches into the Prometheus text exposition format."""

from __future__ import annotations

import json
from typing import Dict, List

from models.records import BatchResult, SensorTable

METRIC_PREFIX = "awair_"


def quote_label(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def render_metrics(batch: BatchResult) -> str:
    """Render every reading of a successful batch, sensors sorted by name."""
    lines: List[str] = []
    for sensor in batch.sorted_sensors():
        reading = batch.readings[sensor]
        label = quote_label(sensor)
        for name, value in reading.metrics():
            lines.append(f"{METRIC_PREFIX}{name}{{sensor={label}}} {value:f}\n")
    return "".join(lines)


def render_directory(sensors: SensorTable) -> Dict[str, str]:
    return dict(sensors)
