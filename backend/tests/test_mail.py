import smtplib

import httpx
import pytest

from jersey_orders.config import Settings
from jersey_orders.errors import MailRelayError, ValidationFailed
from jersey_orders.main import app
from jersey_orders.services.mailer import Mailer, get_mailer, validate_mail_form
from jersey_orders.services.relay_client import MailRelayClient, classify_non_json, get_relay_client

FORM = {
    "name": "Ops Desk",
    "email": "ops@jersey.example",
    "to": "supplier@fabric.example",
    "subject": "March orders",
    "message": "Line one\nLine two",
}


class FakeSMTP:
    sent = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.tls = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.tls = True

    def login(self, username, password):
        self.credentials = (username, password)

    def send_message(self, msg):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        FakeSMTP.sent.append((self, msg))


@pytest.fixture(autouse=True)
def reset_fake_smtp():
    FakeSMTP.sent = []
    FakeSMTP.fail_with = None
    yield
    app.dependency_overrides.pop(get_mailer, None)
    app.dependency_overrides.pop(get_relay_client, None)


def _mailer(**overrides):
    values = {"smtp_username": "relay@jersey.example", "smtp_password": "app-password", "mail_admin_cc": "admin@jersey.example"}
    values.update(overrides)
    return Mailer(Settings(**values), smtp_factory=FakeSMTP)


def test_validate_mail_form():
    request = validate_mail_form(**{**FORM, "name": "  Ops Desk "})
    assert request.name == "Ops Desk"

    with pytest.raises(ValidationFailed, match="All fields are required"):
        validate_mail_form(**{**FORM, "subject": ""})
    with pytest.raises(ValidationFailed, match="Invalid email address"):
        validate_mail_form(**{**FORM, "to": "supplier@nowhere"})


def test_mailer_builds_multipart_message_with_reply_to_and_cc():
    message = _mailer().send(validate_mail_form(**FORM))

    assert message == "Email sent successfully to supplier@fabric.example"
    server, msg = FakeSMTP.sent[0]
    assert server.tls is True
    assert msg["To"] == "supplier@fabric.example"
    assert msg["Reply-To"] == "Ops Desk <ops@jersey.example>"
    assert msg["Cc"] == "admin@jersey.example"
    plain, html_part = msg.get_payload()
    assert plain.get_content_type() == "text/plain"
    assert html_part.get_content_type() == "text/html"
    assert "Line one<br>" in html_part.get_payload(decode=True).decode("utf-8")


def test_mailer_reports_missing_credentials_and_smtp_failures():
    with pytest.raises(MailRelayError) as missing:
        _mailer(smtp_password="").send(validate_mail_form(**FORM))
    assert missing.value.kind == "configuration"

    FakeSMTP.fail_with = smtplib.SMTPRecipientsRefused({"supplier@fabric.example": (550, b"no")})
    with pytest.raises(MailRelayError) as refused:
        _mailer().send(validate_mail_form(**FORM))
    assert refused.value.kind == "delivery"
    assert refused.value.message.startswith("Email sending failed")


def test_sendmail_endpoint_contract(client):
    app.dependency_overrides[get_mailer] = lambda: _mailer()

    ok = client.post("/sendmail", data=FORM)
    assert ok.status_code == 200
    assert ok.json() == {"success": True, "message": "Email sent successfully to supplier@fabric.example"}

    invalid = client.post("/sendmail", data={**FORM, "email": "nope"})
    assert invalid.status_code == 400
    assert invalid.json() == {"success": False, "message": "Invalid email address"}

    FakeSMTP.fail_with = smtplib.SMTPException("relay down")
    failed = client.post("/sendmail", data=FORM)
    assert failed.status_code == 500
    assert failed.json()["success"] is False


@pytest.mark.parametrize(
    "body,hint",
    [
        ("<html><h1>404 Not Found</h1></html>", "File not found"),
        ("<html>500 Internal Server Error</html>", "Server error"),
        ("Fatal error: something broke", "Script error"),
        ("<!DOCTYPE html><?php echo 1; ?>", "Relay is not executing"),
        ("hello", "Unexpected response format"),
    ],
)
def test_classify_non_json(body, hint):
    assert classify_non_json(body).startswith(hint)


def _relay(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://relay")
    return MailRelayClient("http://relay/sendmail", client=client)


def test_relay_client_posts_form_and_reads_success():
    seen = {}

    def handler(request):
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True, "message": "Email sent successfully to x"})

    result = _relay(handler).send(**FORM)

    assert result == "Email sent successfully to x"
    assert "to=supplier%40fabric.example" in seen["body"]


def test_relay_client_failure_kinds():
    refused = _relay(lambda request: httpx.Response(500, json={"success": False, "message": "SMTP down"}))
    with pytest.raises(MailRelayError) as delivery:
        refused.send(**FORM)
    assert (delivery.value.kind, delivery.value.message) == ("delivery", "SMTP down")

    html = _relay(lambda request: httpx.Response(404, text="<html>404 Not Found</html>"))
    with pytest.raises(MailRelayError) as configuration:
        html.send(**FORM)
    assert configuration.value.kind == "configuration"
    assert "File not found" in configuration.value.message

    def unreachable(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MailRelayError) as transport:
        _relay(unreachable).send(**FORM)
    assert transport.value.kind == "transport"


def test_relay_client_validates_before_sending():
    def handler(request):
        raise AssertionError("should not be called")

    with pytest.raises(ValidationFailed):
        _relay(handler).send(**{**FORM, "message": " "})
    with pytest.raises(ValidationFailed):
        _relay(handler).send(**{**FORM, "email": "bad"})


def test_supplier_email_flow(client):
    supplier = client.post(
        "/suppliers/",
        json={"name": "Fabric Co", "email": "supplier@fabric.example", "location": "Manila"},
    ).json()
    order = client.post(
        "/orders/",
        json={"customer": "Harbor City FC", "mobile": "1", "material": "Mesh", "supplierId": supplier["id"]},
    ).json()

    draft = client.get(f"/suppliers/{supplier['id']}/email-draft").json()
    assert draft["to"] == "supplier@fabric.example"
    assert draft["orderCount"] == 1
    assert draft["message"].startswith("Dear Fabric Co,")
    assert f"Order ID: {order['id']}" in draft["message"]
    assert "Quantity: 0" in draft["message"]
    assert draft["message"].endswith("Best regards,\nJersey Orders Team")

    sent = {}

    def handler(request):
        sent["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True, "message": "Email sent successfully to supplier@fabric.example"})

    app.dependency_overrides[get_relay_client] = lambda: _relay(handler)
    response = client.post(
        f"/suppliers/{supplier['id']}/email",
        json={"fromName": "Ops Desk", "fromEmail": "ops@jersey.example", "subject": "Orders"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "Dear+Fabric+Co" in sent["body"]

    app.dependency_overrides[get_relay_client] = lambda: _relay(lambda request: httpx.Response(200, text="<html></html>"))
    failed = client.post(
        f"/suppliers/{supplier['id']}/email",
        json={"fromName": "Ops Desk", "fromEmail": "ops@jersey.example", "subject": "Orders"},
    )
    assert failed.status_code == 502


def test_sendmail_without_credentials_keeps_json_contract(anonymous_client):
    app.dependency_overrides[get_mailer] = lambda: _mailer()

    response = anonymous_client.post("/sendmail", data=FORM)
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authenticated"}

    wrong = anonymous_client.post("/sendmail", data=FORM, auth=("admin", "wrong"))
    assert wrong.status_code == 401
    assert wrong.json()["success"] is False
    assert FakeSMTP.sent == []


def test_relay_client_reports_rejected_credentials_as_configuration():
    relay = _relay(lambda request: httpx.Response(401, json={"success": False, "message": "Not authenticated"}))

    with pytest.raises(MailRelayError) as rejected:
        relay.send(**FORM)

    assert rejected.value.kind == "configuration"
    assert "credentials" in rejected.value.message


@pytest.mark.parametrize("body", [["success", True], "sent", 1])
def test_relay_client_rejects_non_object_json(body):
    relay = _relay(lambda request: httpx.Response(200, json=body))

    with pytest.raises(MailRelayError) as unexpected:
        relay.send(**FORM)

    assert unexpected.value.kind == "configuration"
