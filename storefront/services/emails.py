# storefront/services/emails.py
"""
Transactional email bodies, rendered from Jinja2 templates in storefront/templates/emails.

Every builder takes a plain dict snapshot of the order (amounts in minor units)
so it can be passed through a Celery task unchanged.
"""
from pathlib import Path
from typing import Any, Dict, Tuple
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront.utils.money import format_currency
from storefront.utils.settings import SUPPORT_EMAIL

BRAND = "LuxeHome"
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_TRACKING_URLS = {
    "NZ Post": "https://www.nzpost.co.nz/tools/tracking?trackingReference={}",
    "CourierPost": "https://www.courierpost.co.nz/track/{}",
    "Australia Post": "https://auspost.com.au/mypost/track/#/details/{}",
    "DHL": "https://www.dhl.com/en/express/tracking.html?AWB={}",
    "FedEx": "https://www.fedex.com/fedextrack/?trknbr={}",
    "UPS": "https://www.ups.com/track?tracknum={}",
    "USPS": "https://tools.usps.com/go/TrackConfirmAction?tLabels={}",
}


def tracking_url(carrier: str, tracking_number: str) -> str:
    template = _TRACKING_URLS.get(carrier)
    if not template:
        return "#"
    return template.format(quote(tracking_number, safe=""))


env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)
env.filters["currency"] = format_currency
env.globals.update(brand=BRAND, support_email=SUPPORT_EMAIL, tracking_url=tracking_url)


def _render(name: str, title: str, **context) -> str:
    return env.get_template(f"emails/{name}.html").render(title=title, **context)


def order_confirmation(order: Dict[str, Any]) -> Tuple[str, str]:
    subject = f"Order Confirmation - {order['order_number']}"
    return subject, _render("order_confirmation", "Order Confirmation", order=order)


def admin_new_order(order: Dict[str, Any]) -> Tuple[str, str]:
    subject = f"New Order: {order['order_number']}"
    return subject, _render("admin_new_order", "New Order", order=order)


def shipping_notification(order: Dict[str, Any]) -> Tuple[str, str]:
    subject = f"Your {BRAND} Order Has Shipped! - {order['order_number']}"
    html = _render(
        "shipping_notification",
        "Order Shipped",
        order=order,
        carrier=order.get("shipping_carrier") or "",
        tracking_number=order.get("tracking_number") or "",
    )
    return subject, html


def refund_confirmation(order: Dict[str, Any], amount: int) -> Tuple[str, str]:
    subject = f"Refund Processed - {order['order_number']}"
    return subject, _render("refund_confirmation", "Refund Processed", order=order, amount=amount)
