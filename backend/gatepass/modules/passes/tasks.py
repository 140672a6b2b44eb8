"""
Celery tasks for the scheduled pass sweeps.

Each task runs one sweep in a fresh event loop. Workers hold no WebSocket
connections, so pushes go out through Redis and the API process relays
them to connected users.
"""

import asyncio
from typing import Any, Dict

from celery import Task

from gatepass.core.celery_app import celery_app
from gatepass.core.database import AsyncSessionLocal, close_db
from gatepass.core.logging_config import logger
from gatepass.core.redis_client import RedisClient
from gatepass.services.notification_relay import RedisNotificationPublisher
from gatepass.services.sweep_service import PassSweeper


class SweepTask(Task):
    """Celery task that runs a PassSweeper method with its own session"""

    sweep_method: str = ""

    async def async_run_sweep(self) -> int:
        redis = RedisClient()
        try:
            async with AsyncSessionLocal() as db:
                sweeper = PassSweeper(db, RedisNotificationPublisher(client=redis))
                return await getattr(sweeper, self.sweep_method)()
        finally:
            await redis.disconnect()
            # The engine's connections belong to this loop
            await close_db()

    def run_sweep(self) -> Dict[str, Any]:
        logger.info(f"Starting sweep task {self.name}")
        try:
            processed = asyncio.run(self.async_run_sweep())
        except Exception as e:
            logger.log_error_with_context(e, context=self.name)
            raise
        return {"task": self.name, "processed": processed}


@celery_app.task(bind=True, base=SweepTask, sweep_method="send_pending_reminders")
def send_pass_reminders(self):
    """Remind mentors and HODs about passes waiting on them"""
    return self.run_sweep()


@celery_app.task(bind=True, base=SweepTask, sweep_method="mark_overdue_passes")
def mark_overdue_passes(self):
    """Move checked-out passes past their return time to overdue"""
    return self.run_sweep()


@celery_app.task(bind=True, base=SweepTask, sweep_method="expire_unused_passes")
def expire_unused_passes(self):
    """Expire passes that were never used before their return time"""
    return self.run_sweep()


@celery_app.task(bind=True, base=SweepTask, sweep_method="alert_security_overdue")
def alert_security_overdue(self):
    """Alert security about passes that recently became overdue"""
    return self.run_sweep()
