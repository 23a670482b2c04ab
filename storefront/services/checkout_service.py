# storefront/services/checkout_service.py
import json
from typing import Any, Dict, List

from storefront.domain.schemas import CheckoutItemIn, CheckoutSessionIn
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.money import to_minor_units
from storefront.utils.settings import SITE_URL, ALLOWED_SHIPPING_COUNTRIES
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# stripe metadata values are capped at 500 characters
METADATA_VALUE_LIMIT = 500


class CheckoutService:
    def __init__(
        self,
        gateway: PaymentGateway,
        site_url: str | None = None,
        allowed_countries: List[str] | None = None,
    ):
        self.gateway = gateway
        self.site_url = (site_url or SITE_URL).rstrip("/")
        self.allowed_countries = allowed_countries or ALLOWED_SHIPPING_COUNTRIES

    def _absolute_image(self, image: str | None) -> str | None:
        if image and image.startswith("/"):
            return f"{self.site_url}{image}"
        return image or None

    def _line_item(self, item: CheckoutItemIn, currency: str) -> Dict[str, Any]:
        image = self._absolute_image(item.image)
        product_data: Dict[str, Any] = {
            "name": item.name,
            "images": [image] if image else [],
            # echo the storefront identity back so the webhook can match items by key
            "metadata": {
                "product_id": item.id,
                "color_variant": item.color_variant or "",
                "slug": item.slug or "",
            },
        }
        return {
            "price_data": {
                "currency": currency.lower(),
                "product_data": product_data,
                "unit_amount": to_minor_units(item.price),
            },
            "quantity": item.quantity,
        }

    def build_session_params(self, payload: CheckoutSessionIn) -> Dict[str, Any]:
        if not payload.items:
            raise ValueError("No items in cart")

        region = payload.region
        metadata: Dict[str, str] = {"region": region}

        items_json = json.dumps(
            [
                {
                    "id": i.id,
                    "name": i.name,
                    "price": float(i.price),
                    "quantity": i.quantity,
                    "colorVariant": i.color_variant,
                    "slug": i.slug,
                    "image": i.image,
                }
                for i in payload.items
            ],
            separators=(",", ":"),
        )
        if len(items_json) <= METADATA_VALUE_LIMIT:
            metadata["items_json"] = items_json
        else:
            logger.info(f"items_json is {len(items_json)} chars, relying on line item metadata only")

        address = payload.shipping_address
        metadata["shipping_address_json"] = (
            json.dumps(address.model_dump(by_alias=True, exclude={"email"}), separators=(",", ":"))
            if address else ""
        )

        params: Dict[str, Any] = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [self._line_item(i, payload.currency) for i in payload.items],
            "success_url": f"{self.site_url}/{region}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.site_url}/{region}/checkout/cancel",
            "metadata": metadata,
            "shipping_address_collection": {"allowed_countries": list(self.allowed_countries)},
        }
        if address and address.email:
            params["customer_email"] = address.email
        return params

    def create_session(self, payload: CheckoutSessionIn) -> Dict[str, Any]:
        params = self.build_session_params(payload)
        session = self.gateway.create_checkout_session(params)

        logger.info(f"Created Stripe session {session.get('id')} for region {payload.region}")

        return {
            "session_id": session["id"],
            "session_url": session.get("url"),
        }
