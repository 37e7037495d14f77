"""
Carrier status text -> order status.

Envioclick reports free text ("Pendiente de Recolección", "En Tránsito",
"Entregado", ...). Rules are checked in order; the first keyword found wins.
"""

import unicodedata
from typing import Optional

from clinic_shipping.models import OrderStatus


STATUS_RULES: list[tuple[tuple[str, ...], OrderStatus]] = [
    (("entregado", "delivered"), OrderStatus.DELIVERED),
    (
        ("transito", "in transit", "recoleccion", "pickup", "picked up", "camino", "on the way"),
        OrderStatus.SHIPPED,
    ),
    (("cancelado", "cancelled", "canceled", "error"), OrderStatus.ERROR),
]


def _fold(text: str) -> str:
    """Lowercase and drop accents, so "Tránsito" matches "transito"."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def map_carrier_status(carrier_status: Optional[str]) -> Optional[OrderStatus]:
    """
    Map a carrier status string to an order status.

    Returns:
        The mapped OrderStatus, or None when no rule matches (leave the order alone)
    """
    if not carrier_status:
        return None

    folded = _fold(carrier_status)
    for keywords, status in STATUS_RULES:
        if any(keyword in folded for keyword in keywords):
            return status

    return None
