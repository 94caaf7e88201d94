"""
Reservation Expiry Sweeper

Periodically frees pending reservations whose hold has run out. Without it
an abandoned reservation holds its stock forever; expires_at is not checked
anywhere else.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "inventory_expiry_sweep"


class ExpirySweeper:
    """APScheduler interval job calling InventoryService.expire_overdue_reservations"""

    def __init__(
        self,
        inventory_service,
        interval_seconds: int = 60,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        if interval_seconds < 1:
            raise ValueError("interval_seconds must be at least 1")
        self.inventory_service = inventory_service
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self.last_run_at: Optional[datetime] = None
        self.total_expired = 0

    async def sweep_once(self, now: Optional[datetime] = None) -> int:
        """Run one sweep; returns the number of reservations expired"""
        now = now or datetime.now(timezone.utc)
        expired = await self.inventory_service.expire_overdue_reservations(now=now)
        self.last_run_at = now
        self.total_expired += expired
        if expired:
            logger.info(f"Expired {expired} overdue reservations")
        return expired

    def start(self) -> None:
        self.scheduler.add_job(
            self.sweep_once,
            'interval',
            seconds=self.interval_seconds,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Reservation expiry sweep scheduled every {self.interval_seconds}s")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Reservation expiry sweep stopped")

    @property
    def running(self) -> bool:
        return self.scheduler.running


__all__ = ["ExpirySweeper", "SWEEP_JOB_ID"]
