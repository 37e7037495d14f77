"""
Shipment (label) generation.

Attempt sequence:
1. Submit with the rate id chosen at checkout (if any)
2. On rejection, re-quote once and pick a fresh rate
3. Submit once more with the fresh rate id; a second failure is terminal
"""

from typing import Optional, Union
from loguru import logger

from clinic_shipping.config import ShippingConfig
from clinic_shipping.envioclick.api import EnvioclickAPI
from clinic_shipping.envioclick.payloads import build_shipment_payload
from clinic_shipping.envioclick.quoting import RateQuoter
from clinic_shipping.exceptions import CoverageError, EnvioclickAPIError
from clinic_shipping.geo import DaneResolver, get_resolver
from clinic_shipping.models import (
    Customer,
    GeoCode,
    LineItem,
    RateQuote,
    ShipmentResult,
    ShippingOption,
)


DEFAULT_PROVIDER = "Envioclick"


def select_fresh_quote(quotes: list[RateQuote], carrier: Optional[str]) -> Optional[RateQuote]:
    """
    Pick the replacement rate after a re-quote.

    Prefers the carrier the buyer originally chose (cheapest of its offers),
    otherwise the first quote returned.
    """
    if not quotes:
        return None

    if carrier:
        same_carrier = [q for q in quotes if q.carrier == carrier]
        if same_carrier:
            return min(same_carrier, key=lambda q: q.shipping_cost)

    return quotes[0]


class ShipmentCreator:
    """Generates Envioclick shipments with a single re-quote fallback."""

    def __init__(
        self,
        api: EnvioclickAPI,
        quoter: RateQuoter,
        config: ShippingConfig,
        resolver: Optional[DaneResolver] = None,
    ):
        self.api = api
        self.quoter = quoter
        self.config = config
        self._resolver = resolver

    @property
    def resolver(self) -> DaneResolver:
        return self._resolver or get_resolver()

    async def _submit(
        self,
        id_rate: Union[int, str],
        customer: Customer,
        items: list[LineItem],
        total: float,
        destination: GeoCode,
    ) -> tuple[str, str]:
        payload = build_shipment_payload(id_rate, customer, items, total, destination, self.config)
        data = await self.api.shipment(payload)

        tracker = data.get("tracker")
        if not tracker:
            raise EnvioclickAPIError("Envioclick shipment response has no tracker", payload=data)

        return str(tracker), data.get("url") or ""

    async def create_shipment(
        self,
        customer: Customer,
        items: list[LineItem],
        total: float,
        shipping_option: Optional[ShippingOption] = None,
    ) -> ShipmentResult:
        """
        Generate a shipment label.

        Returns:
            ShipmentResult with tracking number and label URL, or
            success=False with the reason
        """
        try:
            return await self._create_shipment(customer, items, total, shipping_option)
        except Exception as e:
            logger.exception(f"[Shipment] Unexpected error: {e}")
            return ShipmentResult(success=False, error=str(e))

    async def _create_shipment(
        self,
        customer: Customer,
        items: list[LineItem],
        total: float,
        shipping_option: Optional[ShippingOption],
    ) -> ShipmentResult:
        destination = self.resolver.resolve(customer.city, customer.department)
        if destination is None:
            error = CoverageError(customer.city, customer.department)
            logger.error(f"[Shipment] {error} ({customer.department})")
            return ShipmentResult(success=False, error=str(error))

        chosen_carrier = shipping_option.carrier if shipping_option else None
        id_rate = shipping_option.id_rate if shipping_option else None

        if id_rate:
            try:
                tracking_number, label_url = await self._submit(
                    id_rate, customer, items, total, destination
                )
                logger.info(f"[Shipment] Created {tracking_number} with rate {id_rate}")
                return ShipmentResult(
                    success=True,
                    tracking_number=tracking_number,
                    label_url=label_url,
                    carrier=chosen_carrier or DEFAULT_PROVIDER,
                )
            except EnvioclickAPIError as e:
                logger.warning(f"[Shipment] Rate {id_rate} rejected, re-quoting: {e} {e.payload or ''}")

        logger.info("[Shipment] Re-quoting to get a fresh rate...")
        quote_result = await self.quoter.quote(
            customer.city, customer.department, items, total
        )

        fresh = select_fresh_quote(quote_result.quotes, chosen_carrier) if quote_result.success else None
        if fresh is None:
            error = quote_result.error or "No fresh rate available"
            logger.error(f"[Shipment] Re-quote failed: {error}")
            return ShipmentResult(success=False, error=f"Failed to generate shipment: {error}")

        try:
            tracking_number, label_url = await self._submit(
                fresh.id_rate, customer, items, total, destination
            )
        except EnvioclickAPIError as e:
            logger.error(f"[Shipment] Retry with rate {fresh.id_rate} failed: {e} {e.payload or ''}")
            return ShipmentResult(
                success=False,
                error=f"Failed to generate shipment after retry: {e}",
            )

        logger.info(f"[Shipment] Created {tracking_number} with fresh rate {fresh.id_rate} ({fresh.carrier})")
        return ShipmentResult(
            success=True,
            tracking_number=tracking_number,
            label_url=label_url,
            carrier=fresh.carrier,
        )
