"""Shopify API client for looking up the customer side of an order."""

import os

import requests
from dotenv import load_dotenv

from dropship_routing.models import Address, OrderContext

load_dotenv()

API_VERSION = "2024-07"


class ShopifyClient:
    """Client for the Shopify Admin REST API."""

    def __init__(
        self,
        store_url: str | None = None,
        access_token: str | None = None,
        timeout: float = 30.0,
    ):
        self.store_url = (store_url or os.getenv("SHOPIFY_STORE_URL", "")).rstrip("/")
        self.access_token = access_token or os.getenv("SHOPIFY_ACCESS_TOKEN", "")
        if not self.store_url or not self.access_token:
            raise ValueError(
                "SHOPIFY_STORE_URL and SHOPIFY_ACCESS_TOKEN must be set "
                "either as arguments or in a .env file."
            )
        self.timeout = timeout
        self.base_url = f"https://{self.store_url}/admin/api/{API_VERSION}"
        self.session = requests.Session()
        self.session.headers.update(
            {
                "X-Shopify-Access-Token": self.access_token,
                "Content-Type": "application/json",
            }
        )

    def _get(self, endpoint: str, params: dict | None = None) -> dict:
        url = f"{self.base_url}/{endpoint}.json"
        resp = self.session.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def get_order(self, order_id: str) -> dict:
        """Fetch a single order.

        Args:
            order_id: Numeric Shopify order id.

        Returns:
            The order dict from the Shopify API.
        """
        data = self._get(
            f"orders/{order_id}",
            {"fields": "id,name,email,contact_email,shipping_address"},
        )
        return data.get("order", {})

    def order_context(self, order_id: str) -> OrderContext:
        """Return the shipping address and customer email of an order."""
        order = self.get_order(order_id)
        shipping = order.get("shipping_address")

        address = None
        if shipping:
            name = shipping.get("name") or (
                f'{shipping.get("first_name", "")} {shipping.get("last_name", "")}'.strip()
            )
            address = Address(
                address1=shipping.get("address1") or "",
                address2=shipping.get("address2") or "",
                city=shipping.get("city") or "",
                province=shipping.get("province") or "",
                country=shipping.get("country") or "",
                zip_code=shipping.get("zip") or "",
                name=name,
                phone=shipping.get("phone") or "",
            )

        return OrderContext(
            order_id=str(order_id),
            shipping_address=address,
            customer_email=order.get("email") or order.get("contact_email") or "",
        )
