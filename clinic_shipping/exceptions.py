"""Exceptions raised inside the shipping core."""

from typing import Any, Optional


class ShippingError(Exception):
    """Base class for shipping errors."""


class CoverageError(ShippingError):
    """Destination could not be matched to a DANE code."""

    def __init__(self, city: str, department: str = ""):
        self.city = city
        self.department = department
        super().__init__(f"Ciudad no cubierta ({city}).")


class EnvioclickAPIError(ShippingError):
    """Envioclick rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Optional[Any] = None,
    ):
        self.status = status
        self.payload = payload
        super().__init__(message)


class OrderNotFoundError(ShippingError):
    """Order id not present in the store."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")
