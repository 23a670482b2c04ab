# storefront/services/payment_gateway.py
import json
from typing import Any, Dict, List

import stripe

from storefront.domain.errors import ConfigurationError, GatewayError, InvalidSignatureError
from storefront.utils.settings import STRIPE_SECRET_KEY, WEBHOOK_TOLERANCE_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_EXPAND = ["line_items", "line_items.data.price.product", "payment_intent"]


def _to_dict(obj) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class PaymentGateway:
    """
    Cienka warstwa nad stripe SDK.
    Zwraca zwykle dicty, zeby reszta kodu nie zalezala od StripeObject.
    """

    def __init__(self, api_key: str | None = None, tolerance: int = WEBHOOK_TOLERANCE_SECONDS):
        self.api_key = api_key if api_key is not None else STRIPE_SECRET_KEY
        self.tolerance = tolerance

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY not configured")
        return self.api_key

    def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        api_key = self._require_key()
        logger.info(f"Stripe create checkout session ({len(params.get('line_items', []))} line items)")
        try:
            session = stripe.checkout.Session.create(api_key=api_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed: {e}")
            raise GatewayError(str(e)) from e
        return _to_dict(session)

    def retrieve_session(self, session_id: str, expand: List[str] | None = None) -> Dict[str, Any]:
        api_key = self._require_key()
        logger.info(f"Stripe retrieve session {session_id}")
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                expand=expand or SESSION_EXPAND,
                api_key=api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe retrieve session {session_id} failed: {e}")
            raise GatewayError(str(e)) from e
        return _to_dict(session)

    def create_refund(self, payment_intent: str, amount: int, reason: str) -> Dict[str, Any]:
        api_key = self._require_key()
        logger.info(f"Stripe refund {amount} on {payment_intent} ({reason})")
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent,
                amount=amount,
                reason=reason,
                api_key=api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund on {payment_intent} failed: {e}")
            raise GatewayError(str(e)) from e
        return _to_dict(refund)

    def verify_event(self, raw_body: str, signature_header: str, secret: str) -> Dict[str, Any]:
        """
        Checks the `t=...,v1=...` header (HMAC-SHA256 over "{t}.{body}")
        and the timestamp tolerance, then parses the event JSON.
        """
        try:
            stripe.WebhookSignature.verify_header(raw_body, signature_header, secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(str(e)) from e

        try:
            event = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise ValueError("Invalid JSON") from e
        if not isinstance(event, dict):
            raise ValueError("Invalid JSON")
        return event
