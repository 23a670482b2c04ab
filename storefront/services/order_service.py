# storefront/services/order_service.py
import json
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import NotFoundError
from storefront.domain.statuses import OrderStatus, PaymentStatus, FulfillmentStatus
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.money import to_major_units
from storefront.utils.order_numbers import generate_order_number
from storefront.utils.settings import DEFAULT_REGION, DEFAULT_CURRENCY, USE_GATEWAY_SHIPPING_TAX
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 3
ADDRESS_KEYS = ("firstName", "lastName", "address", "city", "state", "postalCode", "country")


def _split_name(name: str | None) -> Tuple[str, str]:
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _from_stripe_address(address: Dict[str, Any], name: str) -> Dict[str, str]:
    first, last = _split_name(name)
    street = " ".join(p for p in (address.get("line1"), address.get("line2")) if p)
    return {
        "firstName": first,
        "lastName": last,
        "address": street,
        "city": address.get("city") or "",
        "state": address.get("state") or "",
        "postalCode": address.get("postal_code") or "",
        "country": address.get("country") or "",
    }


def _gateway_address(session: Dict[str, Any], customer_name: str) -> Dict[str, str] | None:
    collected = session.get("collected_information") or {}
    for details in (session.get("shipping_details"), collected.get("shipping_details")):
        if details and details.get("address"):
            return _from_stripe_address(details["address"], details.get("name") or customer_name)

    customer_address = (session.get("customer_details") or {}).get("address") or {}
    if customer_address.get("line1"):
        return _from_stripe_address(customer_address, customer_name)
    return None


def resolve_shipping_address(session: Dict[str, Any], customer_name: str, region: str) -> Dict[str, str]:
    """
    1. JSON stashed in session metadata by our checkout form
    2. whatever the gateway collected
    3. placeholder built from the customer name
    """
    raw = (session.get("metadata") or {}).get("shipping_address_json")
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning(f"Unparseable shipping_address_json on session {session.get('id')}")
            parsed = None
        if isinstance(parsed, dict):
            address = {k: str(parsed.get(k) or "") for k in ADDRESS_KEYS}
            if parsed.get("phone"):
                address["phone"] = str(parsed["phone"])
            return address

    address = _gateway_address(session, customer_name)
    if address:
        return address

    first, last = _split_name(customer_name)
    return {
        "firstName": first,
        "lastName": last,
        "address": "",
        "city": "",
        "state": "",
        "postalCode": "",
        "country": region.upper(),
    }


def _metadata_items(session: Dict[str, Any]) -> List[Dict[str, Any]]:
    raw = (session.get("metadata") or {}).get("items_json")
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        logger.warning("Failed to parse items_json from metadata")
        return []
    return [i for i in items if isinstance(i, dict)] if isinstance(items, list) else []


def _line_item_product(line_item: Dict[str, Any]) -> Dict[str, Any] | str | None:
    return (line_item.get("price") or {}).get("product")


def match_line_items(
    line_items: List[Dict[str, Any]],
    meta_items: List[Dict[str, Any]],
) -> List[Tuple[Dict[str, Any], Dict[str, Any] | None]]:
    """
    Pairs gateway line items with the storefront cart snapshot.
    Keyed on product_id/color_variant echoed through product metadata,
    position is only used for line items that carry no key.
    """
    unused = list(range(len(meta_items)))
    pairs = []

    for index, line_item in enumerate(line_items):
        product = _line_item_product(line_item)
        product_meta = (product.get("metadata") or {}) if isinstance(product, dict) else {}
        product_id = product_meta.get("product_id")
        match = None

        if product_id:
            variant = product_meta.get("color_variant") or None
            for j in unused:
                candidate = meta_items[j]
                if str(candidate.get("id")) == product_id and (candidate.get("colorVariant") or None) == variant:
                    match = candidate
                    break
            if match is not None:
                unused.remove(j)
            else:
                images = product.get("images") or []
                match = {
                    "id": product_id,
                    "name": product.get("name"),
                    "colorVariant": variant,
                    "slug": product_meta.get("slug") or None,
                    "image": images[0] if images else None,
                }
        elif index in unused:
            match = meta_items[index]
            unused.remove(index)

        pairs.append((line_item, match))
    return pairs


def build_order_items(order_id: int, session: Dict[str, Any]) -> List[OrderItemModel]:
    line_items = (session.get("line_items") or {}).get("data") or []
    items = []
    for line_item, meta in match_line_items(line_items, _metadata_items(session)):
        meta = meta or {}
        product = _line_item_product(line_item)
        gateway_product_id = product.get("id") if isinstance(product, dict) else product
        price = line_item.get("price") or {}
        items.append(
            OrderItemModel(
                order_id=order_id,
                product_id=str(meta.get("id") or gateway_product_id or "unknown"),
                product_name=meta.get("name") or line_item.get("description") or "Product",
                product_slug=meta.get("slug") or None,
                color_variant=meta.get("colorVariant") or None,
                quantity=line_item.get("quantity") or 1,
                unit_price=price.get("unit_amount") or 0,
                total_price=line_item.get("amount_total") or 0,
                image_url=meta.get("image") or None,
            )
        )
    return items


class OrderMaterializer:
    """
    Turns a paid checkout session into exactly one order.

    The unique constraint on stripe_session_id decides races between
    concurrent webhook deliveries, the lookup up front only saves a
    gateway call on plain re-deliveries.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        notifier: NotificationService,
        use_gateway_shipping_tax: bool | None = None,
        default_region: str | None = None,
        default_currency: str | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.gateway = gateway
        self.notifier = notifier
        self.use_gateway_shipping_tax = (
            USE_GATEWAY_SHIPPING_TAX if use_gateway_shipping_tax is None else use_gateway_shipping_tax
        )
        self.default_region = default_region or DEFAULT_REGION
        self.default_currency = default_currency or DEFAULT_CURRENCY

    def materialize(self, session_id: str) -> Dict[str, Any]:
        existing = self.repo.get_by_session_id(session_id)
        if existing:
            logger.info(f"Order already exists for session {session_id}: {existing.order_number}")
            return {"order_number": existing.order_number, "created": False}

        session = self.gateway.retrieve_session(session_id)

        # authenticated pull, independent of the signed push
        if session.get("payment_status") != "paid":
            logger.warning(
                f"Session {session_id} has payment_status={session.get('payment_status')!r}, no order created"
            )
            return {"order_number": None, "created": False}

        order, created = self._insert_order(session_id, session)
        if not created:
            return {"order_number": order.order_number, "created": False}

        self._insert_items(order, session)

        try:
            self.notifier.send_order_created(order)
        except Exception as e:
            logger.error(f"Order {order.order_number} notifications failed: {e}")

        return {"order_number": order.order_number, "created": True}

    def _order_fields(self, session_id: str, session: Dict[str, Any]) -> Dict[str, Any]:
        customer = session.get("customer_details") or {}
        metadata = session.get("metadata") or {}

        customer_email = customer.get("email") or session.get("customer_email") or ""
        customer_name = customer.get("name") or "Customer"
        region = metadata.get("region") or self.default_region

        payment_intent = session.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")

        shipping = tax = 0
        if self.use_gateway_shipping_tax:
            totals = session.get("total_details") or {}
            shipping = totals.get("amount_shipping") or 0
            tax = totals.get("amount_tax") or 0

        return {
            "stripe_session_id": session_id,
            "stripe_payment_intent": payment_intent or None,
            "customer_email": customer_email,
            "customer_name": customer_name,
            "customer_phone": customer.get("phone") or None,
            "shipping_address": resolve_shipping_address(session, customer_name, region),
            "region": region,
            "currency": (session.get("currency") or self.default_currency).upper(),
            "subtotal": session.get("amount_subtotal") or 0,
            "shipping": shipping,
            "tax": tax,
            "total": session.get("amount_total") or 0,
            "status": OrderStatus.PAID.value,
            "payment_status": PaymentStatus.PAID.value,
            "fulfillment_status": FulfillmentStatus.UNFULFILLED.value,
        }

    def _insert_order(self, session_id: str, session: Dict[str, Any]) -> Tuple[OrderModel, bool]:
        fields = self._order_fields(session_id, session)

        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order = OrderModel(order_number=generate_order_number(), **fields)
            try:
                created = self.repo.create_order(order)
            except IntegrityError:
                self.repo.rollback()
                existing = self.repo.get_by_session_id(session_id)
                if existing:
                    logger.info(f"Concurrent delivery for session {session_id}, keeping {existing.order_number}")
                    return existing, False
                logger.warning(f"Order number {order.order_number} collided (attempt {attempt})")
                continue

            logger.info(f"Order {created.order_number} created for session {session_id}")
            return created, True

        raise RuntimeError("Could not allocate a unique order number")

    def _insert_items(self, order: OrderModel, session: Dict[str, Any]) -> None:
        items = build_order_items(order.id, session)
        if not items:
            return
        try:
            self.repo.add_items(order, items)
            logger.info(f"Created {len(items)} order items for {order.order_number}")
        except SQLAlchemyError as e:
            # order stays valid without items
            self.repo.rollback()
            logger.error(f"Failed to create order items for {order.order_number}: {e}")


class OrderService:
    """Odczyt zamowienia po platnosci (strona success)."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)

    def get_order_by_session(self, session_id: str | None) -> Dict[str, Any]:
        if not session_id:
            raise ValueError("Missing session_id parameter")

        order = self.repo.get_by_session_id(session_id)
        if not order:
            logger.info(f"Order not found for session: {session_id}")
            raise NotFoundError("Order not found")

        return {
            "order_number": order.order_number,
            "customer_email": order.customer_email,
            "customer_name": order.customer_name,
            "shipping_address": order.shipping_address or {},
            "region": order.region,
            "currency": order.currency,
            "subtotal": to_major_units(order.subtotal),
            "shipping": to_major_units(order.shipping),
            "tax": to_major_units(order.tax),
            "total": to_major_units(order.total),
            "status": order.status,
            "payment_status": order.payment_status,
            "fulfillment_status": order.fulfillment_status,
            "tracking_number": order.tracking_number,
            "shipping_carrier": order.shipping_carrier,
            "created_at": order.created_at,
            "items": [
                {
                    "name": i.product_name,
                    "slug": i.product_slug,
                    "color_variant": i.color_variant,
                    "quantity": i.quantity,
                    "unit_price": to_major_units(i.unit_price),
                    "total_price": to_major_units(i.total_price),
                    "image_url": i.image_url,
                }
                for i in order.items
            ],
        }
