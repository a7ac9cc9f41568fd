"""Supplier transport for suppliers that accept orders as JSON over HTTP."""

import uuid

import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from dropship_routing.base_transport import SupplierTransport
from dropship_routing.exceptions import ConfigurationError, SupplierTransportError
from dropship_routing.models import SupplierOrderRequest, SupplierOrderResult

logger = structlog.get_logger(__name__)

# Statuses worth retrying: rate limiting and transient upstream failures.
_RETRY_STATUSES = (429, 500, 502, 503, 504)


def backoff_budget(retries: int, backoff_factor: float) -> float:
    """Upper bound on the seconds spent sleeping between ``retries`` retries."""
    return sum(backoff_factor * 2 ** i for i in range(retries))


class HttpSupplierTransport(SupplierTransport):
    """Posts supplier orders to ``{api_url}/orders``.

    Retries with bounded exponential backoff live in the session adapter,
    so a single ``submit`` call covers every attempt. ``timeout`` bounds the
    whole call: the backoff sleeps come off the top and what is left is
    split evenly across the attempts, half for connecting and half for
    reading.

    Read timeouts are never retried, since the supplier may already be
    processing the order. Every submit carries one ``Idempotency-Key``
    shared by all of its attempts.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        retries: int = 3,
        backoff_factor: float = 0.5,
        timeout: float = 30.0,
    ):
        self.api_url = (api_url or "").rstrip("/")
        if not self.api_url:
            raise ValueError("SUPPLIER_API_URL must be set to use the HTTP supplier transport.")

        per_attempt = (timeout - backoff_budget(retries, backoff_factor)) / (retries + 1)
        if per_attempt <= 0:
            raise ValueError(
                f"{retries} retries with backoff factor {backoff_factor} "
                f"do not fit in a {timeout}s timeout."
            )
        self.timeout = timeout
        self.attempt_timeout = (per_attempt / 2, per_attempt / 2)

        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

        retry = Retry(
            total=retries,
            read=0,
            backoff_factor=backoff_factor,
            status_forcelist=_RETRY_STATUSES,
            allowed_methods=frozenset({"POST"}),
            respect_retry_after_header=False,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_settings(cls, settings) -> "HttpSupplierTransport":
        try:
            return cls(
                api_url=settings.supplier_api_url,
                api_key=settings.supplier_api_key,
                retries=settings.supplier_api_retries,
                backoff_factor=settings.supplier_api_backoff,
                timeout=settings.dispatch_timeout,
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def _post(self, endpoint: str, payload: dict, idempotency_key: str) -> dict:
        url = f"{self.api_url}/{endpoint}"
        resp = self.session.post(
            url,
            json=payload,
            headers={"Idempotency-Key": idempotency_key},
            timeout=self.attempt_timeout,
        )
        if resp.status_code >= 500:
            raise SupplierTransportError(f"Supplier API returned HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError:
            raise SupplierTransportError(
                f"Supplier API returned a non-JSON body (HTTP {resp.status_code})"
            ) from None

    def submit(self, order: SupplierOrderRequest) -> SupplierOrderResult:
        idempotency_key = uuid.uuid4().hex
        logger.info(
            "Submitting order to supplier",
            supplier_id=order.supplier_id,
            location_id=order.supplier_location_id,
            item_count=len(order.items),
            idempotency_key=idempotency_key,
        )
        data = self._post("orders", order.to_dict(), idempotency_key)

        if data.get("success"):
            return SupplierOrderResult(
                success=True,
                tracking_number=data.get("trackingNumber") or data.get("tracking_number"),
            )
        return SupplierOrderResult(
            success=False,
            error=data.get("error") or "Unknown supplier error",
        )
