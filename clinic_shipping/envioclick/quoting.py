"""
Rate quoting.
Asks Envioclick for every carrier's price to a destination.
"""

from typing import Any, Optional
from loguru import logger

from clinic_shipping.config import ShippingConfig
from clinic_shipping.envioclick.api import EnvioclickAPI
from clinic_shipping.envioclick.payloads import build_quotation_payload
from clinic_shipping.exceptions import CoverageError, EnvioclickAPIError
from clinic_shipping.geo import DaneResolver, get_resolver
from clinic_shipping.models import LineItem, QuoteResult, RateQuote


NO_QUOTES_ERROR = "No se encontraron cotizaciones."
QUOTE_FAILED_ERROR = "Error al cotizar con Envioclick."


def parse_rate(rate: dict[str, Any]) -> RateQuote:
    """Normalize one Envioclick rate offer."""
    return RateQuote(
        carrier=rate.get("carrier") or "",
        service=rate.get("product") or "",
        shipping_cost=rate.get("flete") or 0,
        delivery_days=rate.get("deliveryDays"),
        id_rate=rate["idRate"],
        id_product=rate.get("idProduct"),
    )


class RateQuoter:
    """
    Quotes shipping rates.

    No retry here: a failed quote is reported as-is. The shipment creator
    re-quotes when a rate has gone stale.
    """

    def __init__(
        self,
        api: EnvioclickAPI,
        config: ShippingConfig,
        resolver: Optional[DaneResolver] = None,
    ):
        self.api = api
        self.config = config
        self._resolver = resolver

    @property
    def resolver(self) -> DaneResolver:
        return self._resolver or get_resolver()

    async def quote(
        self,
        city: str,
        department: str,
        items: list[LineItem],
        total: float = 0.0,
    ) -> QuoteResult:
        """
        Quote shipping to a destination.

        Returns:
            QuoteResult with normalized quotes, or success=False and an error
            message for the buyer
        """
        try:
            return await self._quote(city, department, items, total)
        except Exception as e:
            logger.exception(f"[Quote] Unexpected error: {e}")
            return QuoteResult(success=False, error=QUOTE_FAILED_ERROR)

    async def _quote(
        self,
        city: str,
        department: str,
        items: list[LineItem],
        total: float,
    ) -> QuoteResult:
        logger.info(f"[Quote] Request: {city}, {department}, items={len(items)}, total={total}")

        destination = self.resolver.resolve(city, department)
        if destination is None:
            error = CoverageError(city, department)
            logger.error(f"[Quote] DANE code not found for: {city}, {department}")
            return QuoteResult(success=False, error=str(error))

        logger.debug(f"[Quote] DANE match: {destination.city_code}")
        payload = build_quotation_payload(items, total, destination, self.config)

        try:
            data = await self.api.quotation(payload)
        except EnvioclickAPIError as e:
            logger.error(f"[Quote] {e} - payload: {e.payload}")
            return QuoteResult(success=False, error=QUOTE_FAILED_ERROR)

        rates = data.get("rates") or []
        quotes = []
        for rate in rates:
            try:
                quotes.append(parse_rate(rate))
            except (KeyError, ValueError) as e:
                logger.warning(f"[Quote] Skipping unusable rate {rate}: {e}")

        if not quotes:
            return QuoteResult(success=False, error=NO_QUOTES_ERROR)

        logger.info(f"[Quote] {len(quotes)} rates for {destination.city_code}")
        return QuoteResult(success=True, quotes=quotes)
