from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    # idempotency key for webhook re-deliveries
    stripe_session_id = Column(String(255), nullable=False, unique=True)
    stripe_payment_intent = Column(String(255), nullable=True)

    customer_email = Column(String(320), nullable=False, default="")
    customer_name = Column(String(255), nullable=False, default="")
    customer_phone = Column(String(64), nullable=True)
    shipping_address = Column(JSON, nullable=False, default=dict)

    region = Column(String(8), nullable=False)
    currency = Column(String(8), nullable=False)

    # minor units
    subtotal = Column(Integer, nullable=False, default=0)
    shipping = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)
    refunded_amount = Column(Integer, nullable=True)

    status = Column(String(32), nullable=False, default="pending")
    payment_status = Column(String(32), nullable=False, default="pending")
    fulfillment_status = Column(String(32), nullable=False, default="unfulfilled")

    tracking_number = Column(String(255), nullable=True)
    shipping_carrier = Column(String(255), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
