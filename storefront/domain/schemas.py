# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from storefront.domain.statuses import OrderStatus, FulfillmentStatus

# major units, rendered as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------- checkout --------

class CheckoutItemIn(CamelModel):
    """Linia koszyka wyslana przez storefront."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, description="Cena jednostkowa w walucie (major units)")
    quantity: int = Field(..., gt=0)
    image: str | None = ""
    color_variant: str | None = None
    slug: str | None = None


class ShippingAddressIn(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


class CheckoutSessionIn(CamelModel):
    # empty list is rejected by the service with a 400, not by validation
    items: List[CheckoutItemIn] = Field(default_factory=list)
    region: str = Field(..., min_length=1)
    currency: str = Field(..., min_length=3, max_length=3)
    shipping_address: ShippingAddressIn | None = None


class CheckoutSessionOut(CamelModel):
    session_id: str
    session_url: str | None = None


# -------- public order read --------

class OrderLookupIn(BaseModel):
    session_id: str | None = None


class OrderItemOut(CamelModel):
    name: str
    slug: str | None = None
    color_variant: str | None = None
    quantity: int
    unit_price: Money
    total_price: Money
    image_url: str | None = None


class OrderOut(CamelModel):
    """Zamowienie widoczne dla klienta po platnosci."""

    order_number: str
    customer_email: str
    customer_name: str
    shipping_address: Dict[str, Any]
    region: str
    currency: str
    subtotal: Money
    shipping: Money
    tax: Money
    total: Money
    status: str
    payment_status: str
    fulfillment_status: str
    tracking_number: str | None = None
    shipping_carrier: str | None = None
    created_at: datetime
    items: List[OrderItemOut]


# -------- admin --------

class AdminOrderSummary(BaseModel):
    id: int
    order_number: str
    customer_email: str
    customer_name: str
    region: str
    currency: str
    total: Money
    status: str
    payment_status: str
    fulfillment_status: str
    tracking_number: str | None = None
    shipping_carrier: str | None = None
    created_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AdminOrderList(BaseModel):
    orders: List[AdminOrderSummary]
    pagination: Pagination


class AdminOrderItem(BaseModel):
    id: int
    order_id: int
    product_id: str
    product_name: str
    product_slug: str | None = None
    color_variant: str | None = None
    quantity: int
    unit_price: Money
    total_price: Money
    image_url: str | None = None
    created_at: datetime


class AdminOrderDetail(BaseModel):
    id: int
    order_number: str
    stripe_session_id: str
    stripe_payment_intent: str | None = None
    customer_email: str
    customer_name: str
    customer_phone: str | None = None
    shipping_address: Dict[str, Any]
    region: str
    currency: str
    subtotal: Money
    shipping: Money
    tax: Money
    total: Money
    refunded_amount: Money | None = None
    status: str
    payment_status: str
    fulfillment_status: str
    tracking_number: str | None = None
    shipping_carrier: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    items: List[AdminOrderItem] = Field(default_factory=list)


class OrderUpdateIn(BaseModel):
    """Only these fields can be changed by an admin. Anything else in the body is dropped."""

    model_config = ConfigDict(extra="ignore")

    status: OrderStatus | None = None
    fulfillment_status: FulfillmentStatus | None = None
    tracking_number: str | None = None
    shipping_carrier: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    notes: str | None = None


class OrderUpdateOut(BaseModel):
    success: bool
    order: AdminOrderDetail


class RefundIn(BaseModel):
    amount: Decimal | None = Field(None, gt=0, description="Kwota zwrotu w major units, domyslnie calosc")
    reason: Literal["duplicate", "fraudulent", "requested_by_customer"] = "requested_by_customer"


class RefundOut(CamelModel):
    success: bool
    refund_id: str
    amount: Money


class ShipIn(CamelModel):
    # validated in the service so a missing field is a 400
    tracking_number: str | None = None
    shipping_carrier: str | None = None


class ShipOut(BaseModel):
    success: bool
    message: str
    order: AdminOrderDetail


# -------- inventory --------

class InventoryItemIn(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, gt=0)


class InventoryCheckIn(BaseModel):
    items: List[InventoryItemIn] = Field(default_factory=list)


class InventoryResult(CamelModel):
    product_id: str
    requested_quantity: int
    available_quantity: int
    is_available: bool
    is_tracked: bool
    product_name: str | None = None
    is_low_stock: bool | None = None
    low_stock_threshold: int | None = None
    message: str | None = None


class InventoryCheckOut(CamelModel):
    all_available: bool
    results: List[InventoryResult]
    unavailable_items: List[InventoryResult]
    message: str
