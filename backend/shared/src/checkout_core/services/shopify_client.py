"""Shopify adapters: order materialization and cart clearing.

Both adapters read the store credentials from the config document on every
call and talk to Shopify over httpx with a short timeout. Neither raises on
downstream failure: the order materializer returns None, the cart clearer
logs and returns.
"""

import logging
import re

import httpx
from pydantic import BaseModel

from checkout_core.models import CartSession, OrderResult, ShopifySettings
from checkout_core.storage import ConfigStore

logger = logging.getLogger(__name__)

_GID_NUMERIC = re.compile(r"(\d+)$")

CART_LINES_QUERY = """
query cartLines($cartId: ID!) {
  cart(id: $cartId) {
    lines(first: 100) {
      edges { node { id } }
    }
  }
}
"""

CART_LINES_REMOVE_MUTATION = """
mutation cartLinesRemove($cartId: ID!, $lineIds: [ID!]!) {
  cartLinesRemove(cartId: $cartId, lineIds: $lineIds) {
    cart { id }
    userErrors { field message }
  }
}
"""


class OrderRequest(BaseModel):
    """Everything needed to turn a paid session into a storefront order."""

    session: CartSession
    payment_amount_cents: int
    payment_reference: str
    account_label: str


def format_minor_units(cents: int) -> str:
    """1234 -> "12.34"."""
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def numeric_id(value: str | None) -> int | None:
    """Numeric id from a plain id or a gid://shopify/... global id."""
    if not value:
        return None
    match = _GID_NUMERIC.search(str(value))
    return int(match.group(1)) if match else None


def build_order_payload(request: OrderRequest) -> dict:
    """Admin REST `orders.json` body for a paid session."""
    session = request.session
    customer = session.customer
    currency = (session.currency or "eur").upper()

    line_items = []
    for item in session.items:
        line: dict = {"quantity": item.quantity, "price": format_minor_units(item.price_cents)}
        variant_id = numeric_id(item.variant_id)
        if variant_id is not None:
            line["variant_id"] = variant_id
        else:
            line["title"] = item.title or "Item"
        line_items.append(line)

    order: dict = {
        "line_items": line_items,
        "currency": currency,
        "financial_status": "paid",
        "send_receipt": False,
        "tags": "custom-checkout",
        "note": f"Stripe {request.payment_reference} via {request.account_label}",
        "note_attributes": [
            {"name": "session_id", "value": session.session_id},
            {"name": "stripe_account", "value": request.account_label},
            {"name": "payment_intent", "value": request.payment_reference},
        ],
        "transactions": [
            {
                "kind": "sale",
                "status": "success",
                "amount": format_minor_units(request.payment_amount_cents),
                "gateway": "stripe",
                "authorization": request.payment_reference,
            }
        ],
    }

    shipping = session.shipping_cents or 0
    if shipping > 0:
        order["shipping_lines"] = [
            {"title": "Shipping", "price": format_minor_units(shipping), "code": "STANDARD"}
        ]
    if session.discount_cents > 0:
        order["discount_codes"] = [
            {
                "code": "CHECKOUT",
                "amount": format_minor_units(session.discount_cents),
                "type": "fixed_amount",
            }
        ]

    if customer is not None:
        if customer.email:
            order["email"] = customer.email
        if customer.phone:
            order["phone"] = customer.phone
        first_name = customer.first_name or customer.display_name.split(" ")[0]
        last_name = customer.last_name or " ".join(customer.display_name.split(" ")[1:])
        if customer.email:
            order["customer"] = {
                "first_name": first_name,
                "last_name": last_name,
                "email": customer.email,
            }
        if customer.address1:
            address = {
                "first_name": first_name,
                "last_name": last_name,
                "address1": customer.address1,
                "address2": customer.address2,
                "city": customer.city,
                "zip": customer.postal_code,
                "province": customer.province,
                "country_code": customer.country_code,
                "phone": customer.phone,
            }
            order["shipping_address"] = address
            order["billing_address"] = address

    return {"order": order}


class ShopifyOrderMaterializer:
    """Creates paid orders through the Shopify Admin REST API."""

    def __init__(
        self,
        config_store: ConfigStore,
        timeout_seconds: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config_store = config_store
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _settings(self) -> ShopifySettings | None:
        shopify = self.config_store.read().shopify
        if not shopify.shop_domain or not shopify.admin_token:
            return None
        return shopify

    def create_order(self, request: OrderRequest) -> OrderResult | None:
        """Create the order for a paid session.

        Returns:
            OrderResult, or None if the store is not configured or the call
            failed for any reason.
        """
        shopify = self._settings()
        if shopify is None:
            logger.error("Shopify admin credentials missing, cannot create order")
            return None

        url = f"https://{shopify.shop_domain}/admin/api/{shopify.api_version}/orders.json"
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    url,
                    json=build_order_payload(request),
                    headers={"X-Shopify-Access-Token": shopify.admin_token},
                )
                response.raise_for_status()
                order = response.json().get("order") or {}
        except httpx.TimeoutException as e:
            logger.error(
                "Shopify order creation timed out for session %s: %s",
                request.session.session_id,
                e,
            )
            return None
        except httpx.HTTPStatusError as e:
            logger.error(
                "Shopify order creation failed for session %s: %d %s",
                request.session.session_id,
                e.response.status_code,
                e.response.text[:500],
            )
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Shopify order creation failed for session %s: %s",
                request.session.session_id,
                e,
            )
            return None

        if not order.get("id"):
            logger.error("Shopify returned no order id for session %s", request.session.session_id)
            return None

        result = OrderResult(order_id=str(order["id"]), order_number=order.get("name"))
        logger.info(
            "Created Shopify order %s (%s) for session %s",
            result.order_id,
            result.order_number,
            request.session.session_id,
        )
        return result


class ShopifyCartClearer:
    """Empties a storefront cart once its order exists."""

    def __init__(
        self,
        config_store: ConfigStore,
        timeout_seconds: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config_store = config_store
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def clear_cart(self, cart_id: str) -> None:
        """Remove every line from a cart. Never raises."""
        shopify = self.config_store.read().shopify
        if not shopify.shop_domain or not shopify.storefront_token:
            logger.warning("Shopify storefront credentials missing, cart %s not cleared", cart_id)
            return

        url = f"https://{shopify.shop_domain}/api/{shopify.api_version}/graphql.json"
        headers = {"X-Shopify-Storefront-Access-Token": shopify.storefront_token}

        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    url,
                    json={"query": CART_LINES_QUERY, "variables": {"cartId": cart_id}},
                    headers=headers,
                )
                response.raise_for_status()
                cart = (response.json().get("data") or {}).get("cart") or {}
                line_ids = [
                    edge["node"]["id"] for edge in (cart.get("lines") or {}).get("edges", [])
                ]
                if not line_ids:
                    logger.info("Cart %s already empty", cart_id)
                    return

                response = client.post(
                    url,
                    json={
                        "query": CART_LINES_REMOVE_MUTATION,
                        "variables": {"cartId": cart_id, "lineIds": line_ids},
                    },
                    headers=headers,
                )
                response.raise_for_status()
                payload = (response.json().get("data") or {}).get("cartLinesRemove") or {}
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Failed to clear cart %s: %s", cart_id, e)
            return

        user_errors = payload.get("userErrors") or []
        if user_errors:
            logger.warning("Cart %s clear returned errors: %s", cart_id, user_errors)
        else:
            logger.info("Cleared %d lines from cart %s", len(line_ids), cart_id)
