"""
Envioclick tracking lookups.
"""

from loguru import logger

from clinic_shipping.envioclick.api import EnvioclickAPI
from clinic_shipping.exceptions import EnvioclickAPIError
from clinic_shipping.models import TrackingResult


class TrackingClient:
    """Single request/response status lookup, no retries."""

    def __init__(self, api: EnvioclickAPI):
        self.api = api

    async def track(self, tracking_code: str) -> TrackingResult:
        """
        Get the current carrier status for a tracking code.

        Returns:
            TrackingResult with the raw carrier status and detail, or
            success=False with the error
        """
        try:
            data = await self.api.track(tracking_code)
        except EnvioclickAPIError as e:
            logger.error(f"Envioclick track error for {tracking_code}: {e} {e.payload or ''}")
            return TrackingResult(success=False, tracking_code=tracking_code, error=str(e))
        except Exception as e:
            logger.error(f"Envioclick track error for {tracking_code}: {e}")
            return TrackingResult(success=False, tracking_code=tracking_code, error=str(e))

        if not data:
            return TrackingResult(success=False, tracking_code=tracking_code, error="Tracking not found")

        logger.debug(f"Tracking {tracking_code}: {data.get('status')}")
        return TrackingResult(
            success=True,
            tracking_code=tracking_code,
            status=data.get("status"),
            detail=data.get("statusDetail"),
        )
