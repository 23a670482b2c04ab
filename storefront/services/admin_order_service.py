# storefront/services/admin_order_service.py
import math
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import OrderUpdateIn, RefundIn, ShipIn
from storefront.domain.statuses import OrderStatus, PaymentStatus, FulfillmentStatus
from storefront.repos.order_repo import OrderRepo, SORTABLE_COLUMNS
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.money import to_major_units, to_minor_units
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def present_order(order: OrderModel, with_items: bool = True) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "stripe_session_id": order.stripe_session_id,
        "stripe_payment_intent": order.stripe_payment_intent,
        "customer_email": order.customer_email,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "shipping_address": order.shipping_address or {},
        "region": order.region,
        "currency": order.currency,
        "subtotal": to_major_units(order.subtotal),
        "shipping": to_major_units(order.shipping),
        "tax": to_major_units(order.tax),
        "total": to_major_units(order.total),
        "refunded_amount": to_major_units(order.refunded_amount) if order.refunded_amount is not None else None,
        "status": order.status,
        "payment_status": order.payment_status,
        "fulfillment_status": order.fulfillment_status,
        "tracking_number": order.tracking_number,
        "shipping_carrier": order.shipping_carrier,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": [],
    }
    if with_items:
        data["items"] = [
            {
                "id": i.id,
                "order_id": i.order_id,
                "product_id": i.product_id,
                "product_name": i.product_name,
                "product_slug": i.product_slug,
                "color_variant": i.color_variant,
                "quantity": i.quantity,
                "unit_price": to_major_units(i.unit_price),
                "total_price": to_major_units(i.total_price),
                "image_url": i.image_url,
                "created_at": i.created_at,
            }
            for i in order.items
        ]
    return data


class AdminOrderService:
    """
    Use case'y panelu admina: lista, szczegoly, edycja, zwrot, wysylka.
    Autoryzacja jest sprawdzana wczesniej (AdminAuthService).
    """

    def __init__(self, db: Session, gateway: PaymentGateway, notifier: NotificationService):
        self.db = db
        self.repo = OrderRepo(db)
        self.gateway = gateway
        self.notifier = notifier

    #query
    def list_orders(
        self,
        page: int = 1,
        limit: int = 20,
        status: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort by {sort_by!r}")
        if sort_order not in ("asc", "desc"):
            raise ValueError("sortOrder must be 'asc' or 'desc'")

        orders, total = self.repo.list_orders(
            page=page,
            limit=limit,
            status=None if status in (None, "", "all") else status,
            search=search or None,
            sort_by=sort_by,
            ascending=sort_order == "asc",
        )

        return {
            "orders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "customer_email": o.customer_email,
                    "customer_name": o.customer_name,
                    "region": o.region,
                    "currency": o.currency,
                    "total": to_major_units(o.total),
                    "status": o.status,
                    "payment_status": o.payment_status,
                    "fulfillment_status": o.fulfillment_status,
                    "tracking_number": o.tracking_number,
                    "shipping_carrier": o.shipping_carrier,
                    "created_at": o.created_at,
                }
                for o in orders
            ],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def _get_or_404(self, order_id: int) -> OrderModel:
        order = self.repo.get_order_with_items(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_order(self, order_id: int) -> Dict[str, Any]:
        return present_order(self._get_or_404(order_id))

    #commands
    def update_order(self, order_id: int, payload: OrderUpdateIn) -> Dict[str, Any]:
        order = self._get_or_404(order_id)

        changes = payload.model_dump(exclude_unset=True, mode="python")
        for field in ("status", "fulfillment_status"):
            if field in changes and changes[field] is None:
                del changes[field]
            elif field in changes:
                changes[field] = changes[field].value

        now = datetime.now(timezone.utc)
        fulfillment = changes.get("fulfillment_status")
        if fulfillment == FulfillmentStatus.SHIPPED.value and not changes.get("shipped_at"):
            changes["shipped_at"] = now
        if fulfillment == FulfillmentStatus.DELIVERED.value and not changes.get("delivered_at"):
            changes["delivered_at"] = now

        updated = self.repo.update_order(order, changes)
        logger.info(f"Order {updated.order_number} updated: {sorted(changes)}")
        return present_order(updated)

    def refund(self, order_id: int, payload: RefundIn) -> Dict[str, Any]:
        order = self.repo.get_order_with_items(order_id)
        if not order or not order.stripe_payment_intent:
            raise NotFoundError("Order not found or no payment intent")

        already_refunded = order.refunded_amount or 0
        refundable = order.total - already_refunded
        if refundable <= 0:
            raise ValueError("Order has already been fully refunded")

        # bez kwoty zwracamy to, co jeszcze zostalo
        amount = to_minor_units(payload.amount) if payload.amount is not None else refundable
        if amount < 1:
            raise ValueError("Refund amount must be at least 0.01")
        if amount > refundable:
            raise ValueError(f"Refund amount exceeds the refundable total of {to_major_units(refundable)}")

        refund = self.gateway.create_refund(order.stripe_payment_intent, amount, payload.reason)
        refund_id = refund["id"]
        logger.info(f"Refund {refund_id} of {amount} processed for order {order.order_number}")

        note = f"Refund processed: {refund_id}"
        try:
            self.repo.update_order(
                order,
                {
                    "status": OrderStatus.REFUNDED.value,
                    "payment_status": PaymentStatus.REFUNDED.value,
                    "refunded_amount": already_refunded + amount,
                    "notes": f"{order.notes}\n{note}" if order.notes else note,
                },
            )
        except SQLAlchemyError:
            self.repo.rollback()
            logger.error(f"Refund {refund_id} went through but order {order_id} was not updated")
            raise

        # money already moved, email is best effort
        try:
            self.notifier.send_refund_confirmation(order, amount)
        except Exception as e:
            logger.error(f"Refund email for order {order.order_number} failed: {e}")

        return {"success": True, "refund_id": refund_id, "amount": to_major_units(amount)}

    def ship(self, order_id: int, payload: ShipIn) -> Dict[str, Any]:
        if not payload.tracking_number or not payload.shipping_carrier:
            raise ValueError("Missing required fields: trackingNumber, shippingCarrier")

        order = self._get_or_404(order_id)
        updated = self.repo.update_order(
            order,
            {
                "tracking_number": payload.tracking_number,
                "shipping_carrier": payload.shipping_carrier,
                "fulfillment_status": FulfillmentStatus.SHIPPED.value,
                "shipped_at": datetime.now(timezone.utc),
            },
        )
        logger.info(f"Order {updated.order_number} shipped via {payload.shipping_carrier}")

        try:
            sent = self.notifier.send_shipping_notification(updated)
        except Exception as e:
            logger.error(f"Shipping email for order {updated.order_number} failed: {e}")
            sent = False

        return {
            "success": True,
            "message": "Shipping notification queued" if sent else "Order updated, shipping notification not sent",
            "order": present_order(updated),
        }
