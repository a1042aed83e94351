"""SMTP delivery behind the ``/sendmail`` relay endpoint."""

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Callable, Optional

from ..config import Settings, get_settings
from ..errors import MailRelayError, ValidationFailed
from ..schemas import is_valid_email

log = logging.getLogger("jersey_orders.mailer")


@dataclass
class MailRequest:
    name: str
    email: str
    to: str
    subject: str
    message: str


def validate_mail_form(
    name: Optional[str],
    email: Optional[str],
    to: Optional[str],
    subject: Optional[str],
    message: Optional[str],
) -> MailRequest:
    values = [(value or "").strip() for value in (name, email, to, subject, message)]
    if not all(values):
        raise ValidationFailed("All fields are required")
    request = MailRequest(*values)
    if not is_valid_email(request.email) or not is_valid_email(request.to):
        raise ValidationFailed("Invalid email address")
    return request


def render_html(request: MailRequest, footer: str) -> str:
    body = html.escape(request.message).replace("\n", "<br>\n")
    subject = html.escape(request.subject)
    sender = f"{html.escape(request.name)} &lt;{html.escape(request.email)}&gt;"
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #FF003C;">{subject}</h2>
            <p><strong>From:</strong> {sender}</p>
            <hr style="border: 1px solid #ddd; margin: 20px 0;">
            <div style="background: #f5f5f5; padding: 15px; border-radius: 5px;">{body}</div>
            <hr style="border: 1px solid #ddd; margin: 20px 0;">
            <p style="font-size: 12px; color: #666;">This email was sent from {html.escape(footer)}</p>
        </div>
    </body>
    </html>
    """


class Mailer:
    def __init__(self, settings: Settings = None, smtp_factory: Callable = smtplib.SMTP):
        self.settings = settings or get_settings()
        self._smtp_factory = smtp_factory

    def build_message(self, request: MailRequest) -> MIMEMultipart:
        settings = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = request.subject
        msg["From"] = formataddr((settings.smtp_from_name, settings.smtp_username))
        msg["To"] = request.to
        msg["Reply-To"] = formataddr((request.name, request.email))
        if settings.mail_admin_cc and is_valid_email(settings.mail_admin_cc):
            msg["Cc"] = settings.mail_admin_cc

        # plain part first so clients prefer the HTML one
        msg.attach(MIMEText(request.message, "plain", "utf-8"))
        msg.attach(MIMEText(render_html(request, settings.smtp_from_name), "html", "utf-8"))
        return msg

    def send(self, request: MailRequest) -> str:
        settings = self.settings
        if not settings.smtp_username or not settings.smtp_password:
            raise MailRelayError("SMTP credentials are not configured", kind="configuration")

        msg = self.build_message(request)
        try:
            with self._smtp_factory(settings.smtp_host, settings.smtp_port, timeout=10) as server:
                if settings.smtp_use_tls:
                    server.starttls()
                server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            log.error("Email to %s failed: %s", request.to, exc)
            raise MailRelayError(f"Email sending failed: {exc}", kind="delivery") from exc

        log.info("Email sent to %s (reply-to %s)", request.to, request.email)
        return f"Email sent successfully to {request.to}"


def get_mailer() -> Mailer:
    return Mailer()
