"""
Infrastructure layer: periodic sensor polling.

Drives ``FarmService.tick`` for every online device. Each device is polled
on its own cadence: faster while its pump runs, slower otherwise. The tick
handler itself stays pure; this module only decides *when* to call it.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional
import logging

from farm_engine.config import settings
from farm_engine.domain.errors import FarmEngineError
from farm_engine.infrastructure.sensor_feed import SensorFeed, SensorFeedError
from farm_engine.services.application.farm_service import FarmService

logger = logging.getLogger(__name__)


class SensorPollingScheduler:
    """Asyncio loop polling the sensor feed for online devices."""

    def __init__(
        self,
        service: FarmService,
        feed: SensorFeed,
        clock: Optional[Callable[[], datetime]] = None,
        sensor_interval_seconds: Optional[float] = None,
        pump_active_interval_seconds: Optional[float] = None,
        resolution_seconds: Optional[float] = None,
    ):
        self.service = service
        self.feed = feed
        self.clock = clock or service.clock
        self.sensor_interval = timedelta(
            seconds=sensor_interval_seconds or settings.sensor_interval_seconds
        )
        self.pump_active_interval = timedelta(
            seconds=pump_active_interval_seconds or settings.pump_active_interval_seconds
        )
        self.resolution_seconds = resolution_seconds or settings.scheduler_resolution_seconds
        self._next_due: Dict[str, datetime] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[datetime] = None) -> int:
        """
        Poll every online device whose next sample is due.

        Returns:
            Number of devices ticked
        """
        now = now or self.clock()
        online = self.service.online_farmers()
        online_ids = {farm.farmer_id for farm in online}

        # Devices that went offline stop producing samples
        for farmer_id in list(self._next_due):
            if farmer_id not in online_ids:
                del self._next_due[farmer_id]

        ticked = 0
        for farm in online:
            due = self._next_due.get(farm.farmer_id)
            if due is not None and now < due:
                continue
            try:
                sample = await self.feed.next_sample(
                    farm.farmer_id, farm.latest_sample, farm.irrigation.pump_on, now
                )
                irrigation, _ = self.service.tick(farm.farmer_id, sample)
            except SensorFeedError as e:
                logger.warning(f"Sensor feed failed for {farm.farmer_id}: {e.message}")
                self._next_due[farm.farmer_id] = now + self.sensor_interval
                continue
            except FarmEngineError as e:
                logger.warning(f"Tick rejected for {farm.farmer_id}: {e.message}")
                self._next_due[farm.farmer_id] = now + self.sensor_interval
                continue
            except Exception:
                logger.exception(f"Polling failed for {farm.farmer_id}")
                self._next_due[farm.farmer_id] = now + self.sensor_interval
                continue

            interval = self.pump_active_interval if irrigation.pump_on else self.sensor_interval
            self._next_due[farm.farmer_id] = now + interval
            ticked += 1

        if ticked:
            logger.debug(f"Scheduler pass ticked {ticked} device(s)")
        return ticked

    async def _run(self) -> None:
        logger.info("Sensor polling scheduler started")
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Scheduler pass failed")
            await asyncio.sleep(self.resolution_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sensor polling scheduler stopped")
