"""
Request payload builders for Envioclick.
"""

import re
import time
from typing import Any, Iterable, Optional, Union

from clinic_shipping.config import ShippingConfig
from clinic_shipping.models import Customer, GeoCode, LineItem


_NON_DIGIT = re.compile(r"\D")

# Placeholder street used when quoting, the real address is only known at shipment time
QUOTE_ADDRESS = "Calle Principal"


def package_weight(items: Iterable[LineItem]) -> float:
    """Sum of item weight x quantity; items without a weight count as 1."""
    return sum((item.weight or 1) * item.quantity for item in items)


def build_package(items: Iterable[LineItem], config: ShippingConfig) -> dict[str, float]:
    """Single aggregate package with the configured placeholder dimensions."""
    return {
        "weight": package_weight(items),
        "height": config.package_height,
        "width": config.package_width,
        "length": config.package_length,
    }


def content_value(total: float, config: ShippingConfig) -> float:
    """Declared value; never zero."""
    return total if total > 0 else config.min_content_value


def sanitize_phone(phone: Optional[str], default: str) -> str:
    """Digits only, last 10 digits (Colombian mobile format)."""
    digits = _NON_DIGIT.sub("", phone or "")[-10:]
    return digits or default


def truncate_address(address: Optional[str], max_length: int) -> str:
    return (address or QUOTE_ADDRESS)[:max_length]


_last_reference = 0


def shipment_reference() -> str:
    """Per-call shipment reference (epoch millis), strictly increasing within the process."""
    global _last_reference
    stamp = max(time.time_ns() // 1_000_000, _last_reference + 1)
    _last_reference = stamp
    return f"ORD-{stamp}"


def build_quotation_payload(
    items: list[LineItem],
    total: float,
    destination: GeoCode,
    config: ShippingConfig,
) -> dict[str, Any]:
    return {
        "packages": [build_package(items, config)],
        "description": config.content_description,
        "contentValue": content_value(total, config),
        "origin": {
            "daneCode": config.origin_dane_code,
            "address": config.origin_address,
        },
        "destination": {
            "daneCode": destination.city_code,
            "address": QUOTE_ADDRESS,
        },
    }


def build_shipment_payload(
    id_rate: Union[int, str],
    customer: Customer,
    items: list[LineItem],
    total: float,
    destination: GeoCode,
    config: ShippingConfig,
) -> dict[str, Any]:
    return {
        "idRate": id_rate,
        "myShipmentReference": shipment_reference(),
        "requestPickup": False,
        "insurance": True,
        "description": config.content_description,
        "contentValue": content_value(total, config),
        "packages": [build_package(items, config)],
        "origin": config.origin_contact,
        "destination": {
            "company": "",
            "firstName": customer.first_name,
            "lastName": customer.last_name,
            "email": customer.email,
            "phone": sanitize_phone(customer.phone, config.default_phone),
            "address": truncate_address(customer.address, config.max_address_length),
            "suburb": customer.neighborhood or "Centro",  # required by the API
            "crossStreet": "N/A",
            "reference": customer.notes or "Residencial",
            "daneCode": destination.city_code,
        },
    }
