"""
Order store.
Persistence boundary between the shipping core and the storefront's orders.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Optional, Union
import orjson
from loguru import logger
from pydantic import ValidationError

from clinic_shipping.exceptions import OrderNotFoundError
from clinic_shipping.models import CatalogProduct, Order, OrderStatus


class OrderStore(ABC):
    """Base class for order persistence backends."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, order_id: str) -> AsyncIterator[None]:
        """
        Per-order lock; hold it across a read-modify-write of one order.

        The lock is dropped once no task holds or waits for it.
        """
        order_lock = self._locks.setdefault(order_id, asyncio.Lock())
        self._lock_users[order_id] = self._lock_users.get(order_id, 0) + 1
        try:
            async with order_lock:
                yield
        finally:
            self._lock_users[order_id] -= 1
            if not self._lock_users[order_id]:
                del self._lock_users[order_id]
                del self._locks[order_id]

    @abstractmethod
    async def list_orders(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        """List orders, optionally filtered by status."""
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> Order:
        """Get one order. Raises OrderNotFoundError."""
        pass

    @abstractmethod
    async def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        """Apply a partial update (snake_case field names) and return the new order."""
        pass

    @abstractmethod
    async def get_catalog(self, product_ids: Iterable[str]) -> dict[str, CatalogProduct]:
        """Catalog records keyed by product id. Unknown ids are omitted."""
        pass


def _filter_status(orders: Iterable[Order], statuses: Optional[Iterable[OrderStatus]]) -> list[Order]:
    if statuses is None:
        return list(orders)
    wanted = {OrderStatus(s) for s in statuses}
    return [o for o in orders if OrderStatus(o.status) in wanted]


class InMemoryOrderStore(OrderStore):
    """Dict-backed store for tests and dry runs."""

    def __init__(
        self,
        orders: Optional[Iterable[Order]] = None,
        products: Optional[dict[str, Union[CatalogProduct, dict]]] = None,
    ):
        super().__init__()
        self._orders: dict[str, Order] = {o.id: o for o in orders or []}
        self._products: dict[str, CatalogProduct] = {
            pid: CatalogProduct.model_validate(product)
            for pid, product in (products or {}).items()
        }

    async def list_orders(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        return _filter_status(self._orders.values(), statuses)

    async def get_order(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise OrderNotFoundError(order_id) from None

    async def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        current = await self.get_order(order_id)
        updated = Order.model_validate({**current.model_dump(), **fields})
        self._orders[order_id] = updated
        return updated

    async def get_catalog(self, product_ids: Iterable[str]) -> dict[str, CatalogProduct]:
        return {pid: self._products[pid] for pid in product_ids if pid in self._products}


class JsonOrderStore(OrderStore):
    """
    Orders kept in a single JSON file shared with the storefront.

    File layout (camelCase, as the storefront writes it):
        {"orders": {"<id>": {...}}, "products": {"<id>": {"weight": 150}}}

    The file is read again on every call, so orders the storefront adds
    while the service runs are picked up. Writes only touch the fields
    being updated: keys this service does not model, and records it
    cannot parse, are written back as they were read.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._write_lock = asyncio.Lock()
        if not self.path.exists():
            logger.info(f"Order store {self.path} not found, starting empty")

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"orders": {}, "products": {}}

        data = orjson.loads(self.path.read_bytes())
        data.setdefault("orders", {})
        data.setdefault("products", {})
        return data

    def _write(self, data: dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        tmp_path.replace(self.path)

    @staticmethod
    def _parse(order_id: str, raw: dict[str, Any]) -> Order:
        return Order.model_validate({**raw, "id": order_id})

    async def list_orders(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        orders = []
        for order_id, raw in self._read()["orders"].items():
            try:
                orders.append(self._parse(order_id, raw))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping unreadable order {order_id}: {e}")
        return _filter_status(orders, statuses)

    async def get_order(self, order_id: str) -> Order:
        raw = self._read()["orders"].get(order_id)
        if raw is None:
            raise OrderNotFoundError(order_id)
        return self._parse(order_id, raw)

    async def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        async with self._write_lock:
            data = self._read()
            raw = data["orders"].get(order_id)
            if raw is None:
                raise OrderNotFoundError(order_id)

            current = self._parse(order_id, raw)
            updated = Order.model_validate({**current.model_dump(), **fields})

            raw.update(updated.model_dump(mode="json", by_alias=True, include=set(fields)))
            self._write(data)

        logger.debug(f"Order {order_id} updated: {', '.join(fields)}")
        return updated

    async def get_catalog(self, product_ids: Iterable[str]) -> dict[str, CatalogProduct]:
        products = self._read()["products"]
        catalog = {}

        for pid in product_ids:
            raw = products.get(pid)
            if raw is None:
                continue
            try:
                catalog[pid] = CatalogProduct.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Product {pid} has an unreadable catalog record: {e}")

        return catalog
