"""Caller side of the mail relay, used by the supplier email flow."""

import logging
from typing import Iterator, Optional, Tuple

import httpx

from ..config import Settings, get_settings
from ..errors import MailRelayError, ValidationFailed
from ..schemas import is_valid_email

log = logging.getLogger("jersey_orders.relay_client")


def classify_non_json(body: str) -> str:
    """Best-effort hint for a relay answer that was not JSON."""
    if "404" in body:
        return "File not found. Check that the mail relay endpoint exists."
    if "500" in body:
        return "Server error. Check the relay server logs."
    if any(marker in body for marker in ("Fatal error", "Parse error", "Traceback")):
        return "Script error. Check the mail relay for errors."
    if "<!DOCTYPE" in body or "<html" in body:
        return "Relay is not executing. The server may be serving it as a static file."
    return "Unexpected response format."


class MailRelayClient:
    def __init__(
        self,
        url: str,
        client: httpx.Client = None,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 15.0,
    ):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._auth = auth

    @classmethod
    def from_settings(cls, settings: Settings = None, client: httpx.Client = None) -> "MailRelayClient":
        settings = settings or get_settings()
        return cls(
            settings.mail_relay_url,
            client=client,
            auth=(settings.admin_username, settings.admin_password),
        )

    def send(self, name: str, email: str, to: str, subject: str, message: str) -> str:
        fields = {
            "name": (name or "").strip(),
            "email": (email or "").strip(),
            "to": (to or "").strip(),
            "subject": (subject or "").strip(),
            "message": (message or "").strip(),
        }
        if not all(fields.values()):
            raise ValidationFailed("Please fill in all required fields")
        if not is_valid_email(fields["to"]) or not is_valid_email(fields["email"]):
            raise ValidationFailed("Please enter valid email addresses")

        request_kwargs = {"data": fields}
        if self._auth:
            request_kwargs["auth"] = self._auth
        try:
            response = self._client.post(self.url, **request_kwargs)
        except httpx.TransportError as exc:
            log.error("Mail relay unreachable at %s: %s", self.url, exc)
            raise MailRelayError(
                "Cannot connect to the mail relay. Please check that it is running.",
                kind="transport",
            ) from exc

        if response.status_code in (401, 403):
            log.error("Mail relay refused credentials (%s)", response.status_code)
            raise MailRelayError(
                "Mail relay rejected the admin credentials. Check ADMIN_USERNAME/ADMIN_PASSWORD.",
                kind="configuration",
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            hint = classify_non_json(response.text)
            log.error("Mail relay answered %s with %r", response.status_code, response.text[:200])
            raise MailRelayError(
                f"Server configuration issue: {hint} Please ensure the mail relay is running and reachable.",
                kind="configuration",
            )
        try:
            result = response.json()
        except ValueError as exc:
            raise MailRelayError(
                "Server returned invalid JSON. Response: " + response.text[:200],
                kind="configuration",
            ) from exc
        if not isinstance(result, dict):
            raise MailRelayError(
                "Server returned an unexpected JSON body. Response: " + response.text[:200],
                kind="configuration",
            )

        if response.is_success and result.get("success"):
            return result.get("message") or f"Email sent successfully to {fields['to']}"
        log.warning("Mail relay refused message to %s: %s", fields["to"], result.get("message"))
        raise MailRelayError(result.get("message") or "Failed to send email", kind="delivery")

    def close(self) -> None:
        self._client.close()


def get_relay_client() -> Iterator[MailRelayClient]:
    relay = MailRelayClient.from_settings()
    try:
        yield relay
    finally:
        relay.close()
