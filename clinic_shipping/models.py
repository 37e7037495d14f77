"""
Data models for the Clinic Shipping Agent.
Defines orders, quotes, shipments and tracking results.

Flow:
1. Resolve the destination city/department to a DANE code
2. Quote rates with Envioclick
3. Generate the shipment label from the chosen rate (re-quoting once if stale)
4. Poll tracking and move orders through shipped/delivered
"""

from enum import Enum
from datetime import datetime
from typing import Any, Optional, Union
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    """Lifecycle status of a storefront order."""
    PENDING = "pending"
    PROCESSING = "processing"  # Payment approved
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    DECLINED = "declined"
    ERROR = "error"


# Orders the tracking sync looks at
ACTIVE_STATUSES = (OrderStatus.PROCESSING, OrderStatus.SHIPPED)


class StoreModel(BaseModel):
    """Base for records shared with the storefront (camelCase on the wire)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True


# ===== Geography =====

class GeoEntry(BaseModel):
    """One row of the DANE reference table."""

    department: str
    city: str
    city_code: str  # 8 digits, e.g. 44001000
    state_code: str  # 2-digit department code

    class Config:
        frozen = True


class GeoCode(BaseModel):
    """Resolved destination codes."""

    city_code: str
    state_code: str

    class Config:
        frozen = True


# ===== Orders =====

class LineItem(StoreModel):
    """A line item in an order or cart."""

    id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = 1
    weight: Optional[float] = None  # kg; missing counts as 1
    price: Optional[float] = None
    dimensions: Optional[dict[str, Any]] = None


class CatalogProduct(StoreModel):
    """Catalog record of a product, as the storefront keeps it."""

    weight: Optional[float] = None  # grams
    price: Optional[float] = None
    dimensions: Optional[dict[str, Any]] = None


class Customer(StoreModel):
    """Buyer contact and delivery address."""

    first_name: str = ""
    last_name: str = ""
    name: Optional[str] = None
    email: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    notes: Optional[str] = None
    city: str = ""
    department: str = ""


class ShippingOption(StoreModel):
    """The quote the buyer picked at checkout."""

    carrier: Optional[str] = None
    service: Optional[str] = None
    shipping_cost: Optional[float] = None
    id_rate: Optional[Union[int, str]] = None
    id_product: Optional[Union[int, str]] = None

    class Config:
        extra = "allow"


class Order(StoreModel):
    """Order record owned by the storefront."""

    id: str
    status: OrderStatus = OrderStatus.PENDING
    customer: Customer = Field(default_factory=Customer)
    items: list[LineItem] = Field(default_factory=list)
    total: float = 0.0
    shipping_option: Optional[ShippingOption] = None

    # Shipment record
    tracking_number: Optional[str] = None
    shipping_label_url: Optional[str] = None
    shipping_provider: Optional[str] = None
    tracking_status: Optional[str] = None
    shipping_generated_at: Optional[datetime] = None
    tracking_updated_at: Optional[datetime] = None


# ===== Quotes =====

class QuoteRequest(BaseModel):
    """Destination and contents of a quotation call."""

    city: str
    department: str
    items: list[LineItem] = Field(default_factory=list)
    total: float = 0.0


class RateQuote(StoreModel):
    """A single carrier offer, normalized."""

    carrier: str
    service: str = ""
    shipping_cost: float = 0.0  # flete
    delivery_days: Optional[int] = None
    id_rate: Union[int, str]
    id_product: Optional[Union[int, str]] = None

    @property
    def delivery_estimate(self) -> str:
        if self.delivery_days is None:
            return ""
        return f"{self.delivery_days} días hábiles"

    def as_checkout_option(self) -> dict[str, Any]:
        """Shape consumed by the checkout page."""
        data = self.model_dump(by_alias=True)
        data["deliveryCompany"] = {
            "companyName": self.carrier,
            "deliveryEstimate": self.delivery_estimate,
            "shippingCost": self.shipping_cost,
            "service": self.service,
        }
        return data


class QuoteResult(BaseModel):
    """Outcome of a quotation call."""

    success: bool
    quotes: list[RateQuote] = Field(default_factory=list)
    error: Optional[str] = None


# ===== Shipments and tracking =====

class ShipmentResult(BaseModel):
    """Outcome of a shipment creation."""

    success: bool
    tracking_number: Optional[str] = None
    label_url: Optional[str] = None
    carrier: Optional[str] = None
    error: Optional[str] = None


class TrackingResult(BaseModel):
    """Outcome of a tracking lookup."""

    success: bool
    tracking_code: Optional[str] = None
    status: Optional[str] = None
    detail: Optional[str] = None
    error: Optional[str] = None


class SyncReport(BaseModel):
    """Report of a tracking sync run."""

    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    orders_scanned: int = 0
    orders_updated: int = 0  # lifecycle status changed
    orders_unchanged: int = 0
    orders_failed: int = 0
    orders_skipped: int = 0  # no tracking number or cancelled run

    cancelled: bool = False
    errors: list[dict] = Field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[int]:
        if not self.completed_at:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)
