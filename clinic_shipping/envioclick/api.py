"""
HTTP client for the Envioclick Pro API.
"""

import asyncio
from typing import Any, Optional
import aiohttp
import orjson
from loguru import logger

from clinic_shipping.config import ShippingConfig
from clinic_shipping.exceptions import EnvioclickAPIError


def _json_dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode()


class EnvioclickAPI:
    """
    Thin async wrapper over the Envioclick REST endpoints.

    Every response is expected as {"status": "OK", "data": {...}}; anything
    else raises EnvioclickAPIError. Each call is bounded by the configured
    request timeout.
    """

    def __init__(self, config: ShippingConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def base_url(self) -> str:
        return self.config.envioclick_api_url.rstrip("/")

    @property
    def shipment_path(self) -> str:
        return "/shipment_sandbox" if self.config.envioclick_sandbox else "/shipment"

    def _get_headers(self) -> dict[str, str]:
        # Envioclick takes the raw key, no "Bearer" prefix
        return {
            "Authorization": self.config.envioclick_api_key,
            "Content-Type": "application/json",
        }

    async def _ensure_session(self):
        """Ensure HTTP session is created."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
                json_serialize=_json_dumps,
            )

    async def close(self):
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "EnvioclickAPI":
        await self._ensure_session()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON payload and return the response's "data" object.

        Raises:
            EnvioclickAPIError: on transport errors, timeouts, HTTP errors
                or a non-OK status in the body
        """
        await self._ensure_session()
        url = f"{self.base_url}{path}"

        try:
            async with self._session.post(url, json=payload) as resp:
                status = resp.status
                raw = await resp.read()
        except asyncio.TimeoutError as e:
            raise EnvioclickAPIError(f"Envioclick {path} timed out") from e
        except aiohttp.ClientError as e:
            raise EnvioclickAPIError(f"Envioclick {path} connection error: {e}") from e

        try:
            body = orjson.loads(raw) if raw else {}
        except orjson.JSONDecodeError:
            body = raw.decode(errors="replace")[:500]

        if status >= 400 or not isinstance(body, dict) or body.get("status") != "OK":
            logger.debug(f"Envioclick {path} rejected (HTTP {status}): {body}")
            raise EnvioclickAPIError(
                f"Envioclick {path} failed (HTTP {status})",
                status=status,
                payload=body,
            )

        return body.get("data") or {}

    async def quotation(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.post("/quotation", payload)

    async def shipment(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.post(self.shipment_path, payload)

    async def track(self, tracking_code: str) -> dict[str, Any]:
        return await self.post("/track", {"trackingCode": tracking_code})
