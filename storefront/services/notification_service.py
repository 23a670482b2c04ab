# storefront/services/notification_service.py
from typing import Any, Dict

from storefront.celery_worker import celery_app
from storefront.data.models.order import OrderModel
from storefront.services import emails
from storefront.services.email_client import EmailClient
from storefront.utils.settings import RESEND_API_KEY, ADMIN_EMAIL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def order_snapshot(order: OrderModel) -> Dict[str, Any]:
    """JSON-safe copy of the order for the task payload."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_email": order.customer_email,
        "customer_name": order.customer_name,
        "shipping_address": dict(order.shipping_address or {}),
        "region": order.region,
        "currency": order.currency,
        "total": order.total,
        "tracking_number": order.tracking_number,
        "shipping_carrier": order.shipping_carrier,
        "items": [
            {
                "product_name": i.product_name,
                "quantity": i.quantity,
                "total_price": i.total_price,
            }
            for i in order.items
        ],
    }


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    Kazda wysylka jest niezalezna - blad jednej nie blokuje pozostalych
    ani operacji, ktora ja wywolala.
    """

    def __init__(self, api_key: str | None = None, admin_email: str | None = None):
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.admin_email = admin_email if admin_email is not None else ADMIN_EMAIL

    def _enqueue(self, task, *args) -> bool:
        try:
            task.delay(*args)
            return True
        except Exception as e:
            logger.error(f"Failed to enqueue {task.name}: {e}")
            return False

    def send_order_created(self, order: OrderModel) -> Dict[str, bool]:
        result = {"customer": False, "admin": False}
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set, emails will not be sent")
            return result

        snapshot = order_snapshot(order)
        if order.customer_email:
            result["customer"] = self._enqueue(send_order_confirmation_task, snapshot)
        if self.admin_email:
            result["admin"] = self._enqueue(send_admin_order_task, snapshot, self.admin_email)
        return result

    def send_shipping_notification(self, order: OrderModel) -> bool:
        if not self.api_key or not order.customer_email:
            logger.warning(f"Shipping email skipped for order {order.order_number}")
            return False
        return self._enqueue(send_shipping_notification_task, order_snapshot(order), self.admin_email or None)

    def send_refund_confirmation(self, order: OrderModel, amount: int) -> bool:
        if not self.api_key or not order.customer_email:
            logger.warning(f"Refund email skipped for order {order.order_number}")
            return False
        return self._enqueue(send_refund_confirmation_task, order_snapshot(order), amount)


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order: Dict[str, Any]):
    subject, html = emails.order_confirmation(order)
    data = EmailClient().send([order["customer_email"]], subject, html)
    logger.info(f"[NOTIFICATION] Confirmation for {order['order_number']} sent to {order['customer_email']}")
    return {"order_number": order["order_number"], "email_id": data.get("id"), "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_admin_order_task")
def send_admin_order_task(order: Dict[str, Any], admin_email: str):
    subject, html = emails.admin_new_order(order)
    data = EmailClient().send([admin_email], subject, html)
    logger.info(f"[NOTIFICATION] Admin notified about {order['order_number']}")
    return {"order_number": order["order_number"], "email_id": data.get("id"), "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_shipping_notification_task")
def send_shipping_notification_task(order: Dict[str, Any], reply_to: str | None = None):
    subject, html = emails.shipping_notification(order)
    data = EmailClient().send([order["customer_email"]], subject, html, reply_to=reply_to)
    logger.info(f"[NOTIFICATION] Shipping notice for {order['order_number']} sent")
    return {"order_number": order["order_number"], "email_id": data.get("id"), "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_refund_confirmation_task")
def send_refund_confirmation_task(order: Dict[str, Any], amount: int):
    subject, html = emails.refund_confirmation(order, amount)
    data = EmailClient().send([order["customer_email"]], subject, html)
    logger.info(f"[NOTIFICATION] Refund confirmation for {order['order_number']} sent")
    return {"order_number": order["order_number"], "email_id": data.get("id"), "status": "sent"}
