"""
Tracking sync job.
Polls Envioclick for every active order and records status transitions.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any
from loguru import logger

from clinic_shipping.logging_config import order_logger
from clinic_shipping.models import ACTIVE_STATUSES, Order, SyncReport
from clinic_shipping.store import OrderStore
from clinic_shipping.tracking.status_mapping import map_carrier_status
from clinic_shipping.tracking.tracking_client import TrackingClient


class TrackingSyncJob:
    """
    Updates processing/shipped orders from carrier tracking.

    Features:
    - Bounded concurrency across orders
    - Per-order lock around read-track-write
    - One failing order never stops the scan
    - cancel() skips orders that have not started
    """

    def __init__(
        self,
        store: OrderStore,
        tracking_client: TrackingClient,
        concurrency: int = 5,
    ):
        self.store = store
        self.tracking_client = tracking_client
        self.concurrency = max(1, concurrency)
        self._cancelled = asyncio.Event()

    def cancel(self):
        """
        Stop picking up new orders.

        Applies to the running scan, or to the next one if none is running.
        """
        self._cancelled.set()

    async def run(self) -> SyncReport:
        """Run one scan over all active orders."""
        logger.info("Starting tracking update job (Envioclick)...")
        report = SyncReport()

        try:
            await self._scan(report)
            report.cancelled = self._cancelled.is_set()
        finally:
            self._cancelled.clear()

        report.completed_at = datetime.utcnow()
        logger.info(
            f"Tracking job completed: {report.orders_updated} updated, "
            f"{report.orders_unchanged} unchanged, {report.orders_failed} failed, "
            f"{report.orders_skipped} skipped ({report.duration_ms} ms)"
        )
        return report

    async def _scan(self, report: SyncReport):
        orders = await self.store.list_orders(ACTIVE_STATUSES)
        report.orders_scanned = len(orders)

        if not orders:
            logger.info("No active orders to track.")
            return

        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(order: Order):
            async with semaphore:
                if self._cancelled.is_set():
                    report.orders_skipped += 1
                    return
                await self._sync_order(order.id, report)

        await asyncio.gather(*(worker(order) for order in orders))

    async def _sync_order(self, order_id: str, report: SyncReport):
        log = order_logger(order_id)

        try:
            async with self.store.lock(order_id):
                # Re-read under the lock so the write is based on current data
                order = await self.store.get_order(order_id)

                if not order.tracking_number:
                    report.orders_skipped += 1
                    return

                result = await self.tracking_client.track(order.tracking_number)
                if not result.success:
                    log.warning(f"Tracking failed for {order.tracking_number}: {result.error}")
                    report.orders_failed += 1
                    report.errors.append({"order_id": order_id, "error": result.error})
                    return

                fields = self._build_update(order, result.status)
                if not fields:
                    report.orders_unchanged += 1
                    return

                await self.store.update_order(order_id, fields)

                if "status" in fields:
                    log.info(f"Status changed: {order.status} -> {fields['status'].value} ({result.status})")
                    report.orders_updated += 1
                else:
                    log.debug(f"Carrier status now '{result.status}'")
                    report.orders_unchanged += 1

        except Exception as e:
            log.error(f"Failed to track order: {e}")
            report.orders_failed += 1
            report.errors.append({"order_id": order_id, "error": str(e)})

    @staticmethod
    def _build_update(order: Order, carrier_status: str | None) -> dict[str, Any]:
        """Fields to write; empty when nothing changed."""
        fields: dict[str, Any] = {}

        if carrier_status and carrier_status != order.tracking_status:
            fields["tracking_status"] = carrier_status

        new_status = map_carrier_status(carrier_status)
        if new_status is not None and new_status != order.status:
            fields["status"] = new_status

        if fields:
            fields["tracking_updated_at"] = datetime.now(timezone.utc)

        return fields
