"""Fan-out polling of every configured sensor."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Tuple

from models.records import BatchResult, Reading, SensorTable
from services.errors import SensorError
from services.sensor_client import SensorClient
from settings import freeze_sensor_table

logger = logging.getLogger(__name__)


class Aggregator:
    """Queries each sensor concurrently and gathers one batch per scrape."""

    def __init__(self, client: SensorClient, sensors: SensorTable) -> None:
        self.client = client
        self.sensors = freeze_sensor_table(sensors)

    async def collect(self) -> BatchResult:
        """Poll every sensor once and wait for all of them to finish.

        Failures are returned in sensor-name order so the first error of a
        batch does not depend on which request happened to finish first.
        """
        readings: Dict[str, Reading] = {}
        responded: List[str] = []
        results_lock = asyncio.Lock()
        errors: asyncio.Queue[Tuple[str, SensorError]] = asyncio.Queue(maxsize=len(self.sensors))

        async def fetch_one(name: str, address: str) -> None:
            try:
                reading = await self.client.fetch(address)
            except SensorError as exc:
                errors.put_nowait((name, exc))
                return
            async with results_lock:
                readings[name] = reading
                responded.append(name)

        await asyncio.gather(
            *(fetch_one(name, address) for name, address in self.sensors.items())
        )

        failures: List[Tuple[str, SensorError]] = []
        while not errors.empty():
            failures.append(errors.get_nowait())
        failures.sort(key=lambda item: item[0])

        return BatchResult(readings=readings, sensors=responded, failures=failures)

    async def aggregate(self) -> BatchResult:
        """Poll every sensor, failing the whole batch if any sensor failed."""
        batch = await self.collect()
        if batch.failures:
            name, error = batch.failures[0]
            logger.warning(
                "Scrape failed for %d of %d sensors",
                len(batch.failures),
                len(self.sensors),
                extra={"sensor": name, "reason": error},
            )
            raise error
        return batch
