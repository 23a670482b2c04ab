import pytest
import requests

from storefront.domain.errors import ConfigurationError
from storefront.services import emails, notification_service
from storefront.services.email_client import EmailClient
from storefront.services.notification_service import NotificationService, order_snapshot


class FakeTask:
    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.calls = []

    def delay(self, *args):
        if self.fail:
            raise ConnectionError("broker down")
        self.calls.append(args)


@pytest.fixture
def tasks(monkeypatch):
    fakes = {
        name: FakeTask(name)
        for name in (
            "send_order_confirmation_task",
            "send_admin_order_task",
            "send_shipping_notification_task",
            "send_refund_confirmation_task",
        )
    }
    for name, fake in fakes.items():
        monkeypatch.setattr(notification_service, name, fake)
    return fakes


def test_nothing_sent_without_api_key(tasks, make_order):
    result = NotificationService(api_key="", admin_email="admin@example.com").send_order_created(make_order())

    assert result == {"customer": False, "admin": False}
    assert all(not t.calls for t in tasks.values())


def test_order_created_enqueues_customer_and_admin(tasks, make_order):
    order = make_order()

    result = NotificationService(api_key="re_key", admin_email="admin@example.com").send_order_created(order)

    assert result == {"customer": True, "admin": True}
    (snapshot,), = tasks["send_order_confirmation_task"].calls
    assert snapshot["order_number"] == order.order_number
    assert snapshot["items"] == [{"product_name": "Velvet Armchair", "quantity": 1, "total_price": 10000}]
    assert tasks["send_admin_order_task"].calls[0][1] == "admin@example.com"


def test_admin_email_still_sent_when_customer_email_fails(tasks, make_order):
    tasks["send_order_confirmation_task"].fail = True

    result = NotificationService(api_key="re_key", admin_email="admin@example.com").send_order_created(make_order())

    assert result == {"customer": False, "admin": True}
    assert len(tasks["send_admin_order_task"].calls) == 1


def test_no_admin_email_configured(tasks, make_order):
    result = NotificationService(api_key="re_key", admin_email="").send_order_created(make_order())

    assert result == {"customer": True, "admin": False}


def test_shipping_notification_needs_customer_email(tasks, make_order):
    order = make_order(customer_email="")

    assert NotificationService(api_key="re_key").send_shipping_notification(order) is False
    assert not tasks["send_shipping_notification_task"].calls


def test_refund_confirmation_enqueued(tasks, make_order):
    order = make_order()

    assert NotificationService(api_key="re_key").send_refund_confirmation(order, 2500) is True
    assert tasks["send_refund_confirmation_task"].calls[0][1] == 2500


@pytest.mark.parametrize(
    "carrier, expected",
    [
        ("NZ Post", "https://www.nzpost.co.nz/tools/tracking?trackingReference=AB%20123"),
        ("UPS", "https://www.ups.com/track?tracknum=AB%20123"),
        ("Pigeon", "#"),
    ],
)
def test_tracking_url(carrier, expected):
    assert emails.tracking_url(carrier, "AB 123") == expected


def test_email_bodies_escape_customer_input(make_order):
    order = make_order(customer_name="<script>x</script>", tracking_number="NZ1", shipping_carrier="NZ Post")
    snapshot = order_snapshot(order)

    subject, html = emails.order_confirmation(snapshot)
    assert order.order_number in subject
    assert "NZD $100.00" in html

    _, admin_html = emails.admin_new_order(snapshot)
    assert "<script>" not in admin_html
    assert "&lt;script&gt;" in admin_html

    _, shipped = emails.shipping_notification(snapshot)
    assert "trackingReference=NZ1" in shipped


def test_confirmation_task_sends_through_client(monkeypatch, make_order):
    sent = []

    def fake_send(self, to, subject, html, reply_to=None):
        sent.append((to, subject))
        return {"id": "email_1"}

    monkeypatch.setattr(EmailClient, "send", fake_send)
    snapshot = order_snapshot(make_order())

    result = notification_service.send_order_confirmation_task.run(snapshot)

    assert result == {"order_number": snapshot["order_number"], "email_id": "email_1", "status": "sent"}
    assert sent[0][0] == [snapshot["customer_email"]]


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        return self.payload


def test_email_client_posts_to_resend(monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers)
        return FakeResponse({"id": "email_9"})

    monkeypatch.setattr(requests, "post", fake_post)
    client = EmailClient(api_key="re_key", api_url="https://api.resend.test/emails", sender="Shop <orders@shop.test>")

    data = client.send(["ana@example.com"], "Hi", "<p>Hi</p>", reply_to="help@shop.test")

    assert data == {"id": "email_9"}
    assert captured["headers"] == {"Authorization": "Bearer re_key"}
    assert captured["json"]["from"] == "Shop <orders@shop.test>"
    assert captured["json"]["reply_to"] == "help@shop.test"


def test_email_client_without_key():
    with pytest.raises(ConfigurationError):
        EmailClient(api_key="").send(["ana@example.com"], "Hi", "<p>Hi</p>")


def test_refund_email_shows_amount(make_order):
    snapshot = order_snapshot(make_order())

    subject, html = emails.refund_confirmation(snapshot, 2550)

    assert subject == f"Refund Processed - {snapshot['order_number']}"
    assert "NZD $25.50" in html
    assert "LuxeHome" in html
