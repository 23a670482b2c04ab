import json
from decimal import Decimal

from storefront.domain.errors import GatewayError
from storefront.domain.schemas import CheckoutSessionIn, CheckoutItemIn
from storefront.services.checkout_service import CheckoutService


def _payload(**overrides):
    body = {
        "items": [
            {"id": "velvet-armchair", "name": "Velvet Armchair", "price": 12.5, "quantity": 2,
             "image": "/img/armchair.jpg", "colorVariant": "Emerald", "slug": "velvet-armchair"},
        ],
        "region": "nz",
        "currency": "NZD",
    }
    body.update(overrides)
    return body


def test_empty_cart_is_rejected(client, gateway):
    resp = client.post("/checkout/sessions", json=_payload(items=[]))

    assert resp.status_code == 400
    assert resp.json()["detail"] == "No items in cart"
    assert gateway.created_sessions == []


def test_missing_items_is_rejected(client, gateway):
    resp = client.post("/checkout/sessions", json={"region": "nz", "currency": "NZD"})

    assert resp.status_code == 400
    assert gateway.created_sessions == []


def test_create_session_returns_redirect(client, gateway):
    resp = client.post("/checkout/sessions", json=_payload())

    assert resp.status_code == 200
    data = resp.json()
    assert data["sessionId"] == "cs_test_1"
    assert data["sessionUrl"] == "https://checkout.stripe.com/c/pay/cs_test_1"

    params = gateway.created_sessions[0]
    line = params["line_items"][0]
    assert line["price_data"]["unit_amount"] == 1250
    assert line["price_data"]["currency"] == "nzd"
    assert line["quantity"] == 2
    assert line["price_data"]["product_data"]["images"] == ["https://shop.example.com/img/armchair.jpg"]
    assert line["price_data"]["product_data"]["metadata"]["product_id"] == "velvet-armchair"
    assert line["price_data"]["product_data"]["metadata"]["color_variant"] == "Emerald"

    assert params["mode"] == "payment"
    assert params["success_url"] == "https://shop.example.com/nz/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert params["cancel_url"] == "https://shop.example.com/nz/checkout/cancel"
    assert params["metadata"]["region"] == "nz"
    assert params["metadata"]["shipping_address_json"] == ""
    assert json.loads(params["metadata"]["items_json"])[0]["id"] == "velvet-armchair"
    assert "customer_email" not in params


def test_shipping_address_is_stashed_in_metadata(client, gateway):
    address = {
        "firstName": "Ana", "lastName": "Lopez", "email": "ana@example.com", "phone": "+6421000000",
        "address": "12 Queen St", "city": "Auckland", "state": "Auckland", "postalCode": "1010", "country": "NZ",
    }
    resp = client.post("/checkout/sessions", json=_payload(shippingAddress=address))

    assert resp.status_code == 200
    params = gateway.created_sessions[0]
    assert params["customer_email"] == "ana@example.com"
    stored = json.loads(params["metadata"]["shipping_address_json"])
    assert stored["firstName"] == "Ana"
    assert stored["postalCode"] == "1010"
    assert "email" not in stored


def test_gateway_error_surfaces_as_500(client, gateway):
    gateway.fail_with = GatewayError("Invalid currency: xyz")

    resp = client.post("/checkout/sessions", json=_payload())

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Invalid currency: xyz"


def test_unit_amounts_round_half_up(gateway):
    payload = CheckoutSessionIn(
        region="au",
        currency="AUD",
        items=[
            CheckoutItemIn(id="a", name="A", price=Decimal("19.995"), quantity=1),
            CheckoutItemIn(id="b", name="B", price=Decimal("19.994"), quantity=1),
        ],
    )

    params = CheckoutService(gateway, site_url="https://shop.example.com").build_session_params(payload)

    amounts = [li["price_data"]["unit_amount"] for li in params["line_items"]]
    assert amounts == [2000, 1999]


def test_large_cart_skips_items_json(gateway):
    items = [
        CheckoutItemIn(id=f"product-{n}", name=f"A rather long product name {n}", price=Decimal("10"),
                       quantity=1, image=f"/img/product-{n}.jpg", slug=f"product-{n}")
        for n in range(10)
    ]
    payload = CheckoutSessionIn(region="nz", currency="NZD", items=items)

    params = CheckoutService(gateway).build_session_params(payload)

    assert "items_json" not in params["metadata"]
    assert all(li["price_data"]["product_data"]["metadata"]["product_id"] for li in params["line_items"])
