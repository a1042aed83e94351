"""Customer link issuance and the portal's token gate."""

import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import InvalidLink
from ..models import Order

log = logging.getLogger("jersey_orders.links")

# 24 random bytes -> 192 bits; the token is a bearer credential with no expiry
TOKEN_BYTES = 24
PORTAL_PATH = "/customer"


def mint_link_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def build_customer_link(base_url: str, order_id: str, token: str) -> str:
    query = urlencode({"orderId": order_id, "token": token})
    return f"{base_url.rstrip('/')}{PORTAL_PATH}?{query}"


def issue_link(order: Order, base_url: str) -> str:
    """Mint a token for ``order`` and store it with the constructed link."""
    token = mint_link_token()
    order.link_token = token
    order.customer_link = build_customer_link(base_url, order.id, token)
    return order.customer_link


def verify_portal_access(db: Session, order_id: Optional[str], token: Optional[str]) -> Order:
    """Return the order the link grants access to.

    Unknown orders and wrong tokens raise the same error so a caller cannot
    probe which order ids exist.
    """
    if not order_id or not token:
        raise InvalidLink(status_code=400)

    order = db.get(Order, order_id)
    if order is None or not order.link_token:
        log.warning("Portal access refused: unknown order")
        raise InvalidLink()
    if not secrets.compare_digest(order.link_token.encode(), token.encode()):
        log.warning("Portal access refused: token mismatch for order %s", order_id)
        raise InvalidLink()
    return order


def resolve_base_url(request_base_url: str) -> str:
    """Origin for new customer links: the configured public URL, else the request's."""
    return get_settings().public_base_url or str(request_base_url)
