# storefront/services/webhook_service.py
from typing import Any, Dict

from storefront.domain.errors import ConfigurationError
from storefront.services.order_service import OrderMaterializer
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.settings import STRIPE_WEBHOOK_SECRET
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"


class WebhookService:
    def __init__(
        self,
        gateway: PaymentGateway,
        materializer: OrderMaterializer,
        webhook_secret: str | None = None,
    ):
        self.gateway = gateway
        self.materializer = materializer
        self.webhook_secret = STRIPE_WEBHOOK_SECRET if webhook_secret is None else webhook_secret

    def handle(self, raw_body: str, signature: str | None) -> Dict[str, Any]:
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured")
            raise ConfigurationError("Webhook secret not configured")

        if not signature:
            raise ValueError("Missing stripe-signature header")

        event = self.gateway.verify_event(raw_body, signature, self.webhook_secret)
        event_type = event.get("type")
        logger.info(f"Received Stripe event: {event_type} ({event.get('id')})")

        if event_type == CHECKOUT_COMPLETED:
            session = (event.get("data") or {}).get("object") or {}
            session_id = session.get("id")
            if not session_id:
                raise ValueError("Event has no checkout session id")

            logger.info(f"Processing completed checkout session: {session_id}")
            result = self.materializer.materialize(session_id)

            response: Dict[str, Any] = {"received": True}
            if result["order_number"]:
                response["orderNumber"] = result["order_number"]
            return response

        if event_type == PAYMENT_FAILED:
            intent = (event.get("data") or {}).get("object") or {}
            logger.info(f"Payment failed: {intent.get('id')}")

        return {"received": True}
