"""
Shipping Service for the clinic storefront.

Order-level operations on top of the Envioclick clients:
1. Checkout quote with catalog-verified weights
2. Shipment generation when a payment is approved
3. Manual shipment retry from the admin panel
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from loguru import logger

from clinic_shipping.config import ShippingConfig
from clinic_shipping.envioclick import EnvioclickAPI, RateQuoter, ShipmentCreator
from clinic_shipping.envioclick.shipments import DEFAULT_PROVIDER
from clinic_shipping.geo import DaneResolver
from clinic_shipping.logging_config import order_logger
from clinic_shipping.models import LineItem, Order, OrderStatus, QuoteResult, ShipmentResult
from clinic_shipping.store import JsonOrderStore, OrderStore
from clinic_shipping.tracking import TrackingClient, TrackingSyncJob


# Catalog weights are grams; carriers price in kg
DEFAULT_ITEM_WEIGHT_KG = 0.5
MIN_PACKAGE_WEIGHT_KG = 0.5


class ShippingService:
    """Order-level shipping operations."""

    def __init__(
        self,
        config: ShippingConfig,
        store: OrderStore,
        quoter: RateQuoter,
        creator: ShipmentCreator,
    ):
        self.config = config
        self.store = store
        self.quoter = quoter
        self.creator = creator

    async def verify_items(self, items: list[LineItem]) -> list[LineItem]:
        """
        Replace client-sent item data with the catalog's.

        Weights come from the catalog in grams and are converted to kg;
        items missing from the catalog weigh DEFAULT_ITEM_WEIGHT_KG and
        keep their own price. A missing or non-positive quantity counts
        as 1. If the whole cart weighs less than MIN_PACKAGE_WEIGHT_KG the
        first item is scaled up so the package reaches the carrier minimum.
        """
        catalog = await self.store.get_catalog(i.id for i in items if i.id)

        verified = []
        for item in items:
            product = catalog.get(item.id) if item.id else None
            grams = product.weight if product else None
            verified.append(item.model_copy(update={
                "quantity": max(item.quantity or 1, 1),
                "weight": grams / 1000 if grams else DEFAULT_ITEM_WEIGHT_KG,
                "price": product.price if product and product.price is not None else item.price,
                "dimensions": product.dimensions if product else None,
            }))

        total_kg = sum(i.weight * i.quantity for i in verified)
        if verified and total_kg < MIN_PACKAGE_WEIGHT_KG:
            first = verified[0]
            missing = (MIN_PACKAGE_WEIGHT_KG - total_kg) / first.quantity
            verified[0] = first.model_copy(update={"weight": first.weight + missing})

        logger.info(f"Verified total weight: {max(total_kg, MIN_PACKAGE_WEIGHT_KG):.3f} kg")
        return verified

    async def calculate_shipping(
        self,
        city: str,
        department: str,
        items: list[LineItem],
        total: float = 0.0,
    ) -> QuoteResult:
        """Checkout quote with verified weights. Never raises."""
        logger.info(f"Calculating shipping for: {city}, {department}")

        try:
            verified = await self.verify_items(items)
            result = await self.quoter.quote(city, department, verified, total)
        except Exception as e:
            logger.exception(f"Shipping calculation failed for {city}, {department}")
            return QuoteResult(success=False, error=f"Error interno al calcular envío: {e}")

        if not result.success:
            logger.error(f"Quote failure: {result.error}")
        return result

    async def _generate(self, order: Order) -> ShipmentResult:
        """Create the shipment for an order and persist the shipment record."""
        log = order_logger(order.id)

        result = await self.creator.create_shipment(
            order.customer, order.items, order.total, order.shipping_option
        )

        if result.success:
            await self.store.update_order(order.id, {
                "tracking_number": result.tracking_number,
                "shipping_label_url": result.label_url,
                "shipping_provider": result.carrier or DEFAULT_PROVIDER,
                "shipping_generated_at": datetime.now(timezone.utc),
            })
            log.info(f"Shipment created: {result.tracking_number} ({result.carrier})")
        else:
            log.error(f"Shipment generation failed: {result.error}")

        return result

    async def handle_order_approved(self, order_id: str) -> Optional[ShipmentResult]:
        """
        Generate the shipment once payment is approved.

        Skips orders that are not processing, have no positive total, or
        already carry a tracking number. Never raises.

        Returns:
            ShipmentResult, or None when the order was skipped
        """
        log = order_logger(order_id)

        try:
            async with self.store.lock(order_id):
                order = await self.store.get_order(order_id)

                if order.status != OrderStatus.PROCESSING:
                    log.debug(f"Not processing ({order.status}), skipping shipment")
                    return None
                if order.total <= 0:
                    log.info("Zero total, skipping shipment")
                    return None
                if order.tracking_number:
                    log.info(f"Already shipped as {order.tracking_number}")
                    return None

                return await self._generate(order)

        except Exception as e:
            log.exception(f"Shipping generation failed: {e}")
            return ShipmentResult(success=False, error=str(e))

    async def retry_shipment_generation(self, order_id: str) -> ShipmentResult:
        """
        Operator retry for an order left without a tracking number.

        Raises:
            OrderNotFoundError: if the order does not exist
        """
        async with self.store.lock(order_id):
            order = await self.store.get_order(order_id)

            if order.tracking_number:
                return ShipmentResult(
                    success=False,
                    tracking_number=order.tracking_number,
                    error="Order already has a tracking number.",
                )

            return await self._generate(order)


@dataclass
class ShippingComponents:
    """Everything wired from one config, sharing one HTTP session."""

    config: ShippingConfig
    api: EnvioclickAPI
    store: OrderStore
    quoter: RateQuoter
    creator: ShipmentCreator
    tracking_client: TrackingClient
    service: ShippingService
    sync_job: TrackingSyncJob

    async def close(self):
        await self.api.close()


def build_components(
    config: ShippingConfig,
    store: Optional[OrderStore] = None,
    resolver: Optional[DaneResolver] = None,
) -> ShippingComponents:
    """Wire clients, store and service from configuration."""
    api = EnvioclickAPI(config)
    store = store or JsonOrderStore(config.order_store_file)
    quoter = RateQuoter(api, config, resolver)
    creator = ShipmentCreator(api, quoter, config, resolver)
    tracking_client = TrackingClient(api)

    return ShippingComponents(
        config=config,
        api=api,
        store=store,
        quoter=quoter,
        creator=creator,
        tracking_client=tracking_client,
        service=ShippingService(config, store, quoter, creator),
        sync_job=TrackingSyncJob(store, tracking_client, config.sync_concurrency),
    )
