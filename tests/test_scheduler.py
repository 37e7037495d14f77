"""Tests for the tracking scheduler."""

from types import SimpleNamespace

import pytest

from clinic_shipping.models import SyncReport
from clinic_shipping.scheduler import TrackingScheduler


class StubSyncJob:
    def __init__(self, error: Exception = None):
        self.error = error
        self.runs = 0
        self.cancelled = False

    async def run(self) -> SyncReport:
        self.runs += 1
        if self.error:
            raise self.error
        return SyncReport(orders_scanned=3)

    def cancel(self):
        self.cancelled = True


def make_components(config, sync_job):
    async def close():
        pass

    return SimpleNamespace(config=config, sync_job=sync_job, close=close)


class TestTrackingScheduler:
    """Tests for TrackingScheduler."""

    @pytest.mark.asyncio
    async def test_run_sync_keeps_report(self, config):
        scheduler = TrackingScheduler(make_components(config, StubSyncJob()))

        report = await scheduler.run_sync()

        assert report.orders_scanned == 3
        assert scheduler.last_report is report

    @pytest.mark.asyncio
    async def test_run_sync_survives_job_error(self, config):
        scheduler = TrackingScheduler(make_components(config, StubSyncJob(RuntimeError("store offline"))))

        report = await scheduler.run_sync()

        assert report.errors == [{"error": "store offline"}]
        assert report.completed_at is not None

    @pytest.mark.asyncio
    async def test_invalid_config_refuses_to_start(self, config):
        config.envioclick_api_key = ""
        scheduler = TrackingScheduler(make_components(config, StubSyncJob()))

        with pytest.raises(RuntimeError, match="Invalid configuration"):
            await scheduler.start()

    @pytest.mark.asyncio
    async def test_stop_cancels_running_scan(self, config):
        job = StubSyncJob()
        scheduler = TrackingScheduler(make_components(config, job))

        await scheduler.stop()

        assert job.cancelled is True
