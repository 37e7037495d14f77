"""
Scheduler service that runs the tracking sync periodically.
This is the long-running entry point of the agent.
"""

import asyncio
import signal
import sys
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from clinic_shipping import __version__
from clinic_shipping.config import ShippingConfig, init_config
from clinic_shipping.logging_config import setup_logging
from clinic_shipping.models import SyncReport
from clinic_shipping.service import ShippingComponents, build_components


SYNC_JOB_ID = "tracking_sync"


class TrackingScheduler:
    """
    Runs the tracking sync job on an interval.

    A run that is still going when the next one is due is not overlapped;
    missed runs are coalesced into one.
    """

    def __init__(self, components: ShippingComponents):
        self.components = components
        self.config = components.config

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._stopped: Optional[asyncio.Event] = None
        self._last_report: Optional[SyncReport] = None

    @property
    def last_report(self) -> Optional[SyncReport]:
        return self._last_report

    async def run_sync(self) -> SyncReport:
        try:
            self._last_report = await self.components.sync_job.run()
        except Exception as e:
            logger.exception(f"Tracking job error: {e}")
            self._last_report = SyncReport(completed_at=datetime.utcnow(), errors=[{"error": str(e)}])
        return self._last_report

    async def start(self, run_now: bool = True):
        """Start the scheduler and block until stop() is called."""
        logger.info(f"Starting Clinic Shipping Agent v{__version__}")

        errors = self.config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            raise RuntimeError("Invalid configuration")

        self._stopped = asyncio.Event()
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_sync,
            IntervalTrigger(hours=self.config.sync_interval_hours),
            id=SYNC_JOB_ID,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now() if run_now else None,
        )
        self._scheduler.start()
        logger.info(f"Tracking sync scheduled every {self.config.sync_interval_hours}h")

        await self._stopped.wait()

    async def stop(self):
        """Stop the scheduler and release the HTTP session."""
        logger.info("Stopping scheduler...")
        self.components.sync_job.cancel()

        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        await self.components.close()

        if self._stopped:
            self._stopped.set()

        logger.info("Scheduler stopped")

    def run(self):
        """Run the scheduler (blocking)."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        def signal_handler():
            logger.info("Received shutdown signal")
            loop.create_task(self.stop())

        try:
            if sys.platform != "win32":
                loop.add_signal_handler(signal.SIGTERM, signal_handler)
                loop.add_signal_handler(signal.SIGINT, signal_handler)
        except NotImplementedError:
            pass

        try:
            loop.run_until_complete(self.start())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
            loop.run_until_complete(self.stop())
        finally:
            loop.close()


def run_scheduler(config_file: Optional[str] = None, config: Optional[ShippingConfig] = None):
    """
    Run the tracking scheduler.

    Args:
        config_file: Path to configuration file
        config: Already loaded configuration (takes precedence)
    """
    config = config or init_config(config_file)
    setup_logging(config, console=True)

    if not config.sync_enabled:
        logger.warning("SYNC_ENABLED is false, nothing to schedule")
        return

    scheduler = TrackingScheduler(build_components(config))
    scheduler.run()
