"""Fake supplier transport - deterministic supplier for testing and development.

Generates tracking numbers from a counter and records every submitted
order. Failure, exceptions and latency can be configured per supplier.
"""

import itertools
import threading
import time

from dropship_routing.base_transport import SupplierTransport
from dropship_routing.models import SupplierOrderRequest, SupplierOrderResult


class FakeSupplierTransport(SupplierTransport):
    """Fake supplier that always succeeds by default."""

    def __init__(self, tracking_prefix: str = "TRK"):
        self.tracking_prefix = tracking_prefix
        self.submitted: list[SupplierOrderRequest] = []
        self.failures: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.tracking_numbers: dict[str, str] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def configure(
        self,
        supplier_id: str,
        should_succeed: bool = True,
        failure_reason: str = "Supplier API temporarily unavailable",
        raises: Exception | None = None,
        delay: float = 0.0,
        tracking_number: str | None = None,
    ) -> None:
        """Configure how one supplier answers."""
        if should_succeed:
            self.failures.pop(supplier_id, None)
        else:
            self.failures[supplier_id] = failure_reason
        if raises is None:
            self.errors.pop(supplier_id, None)
        else:
            self.errors[supplier_id] = raises
        self.delays[supplier_id] = delay
        if tracking_number is None:
            self.tracking_numbers.pop(supplier_id, None)
        else:
            self.tracking_numbers[supplier_id] = tracking_number

    def submit(self, order: SupplierOrderRequest) -> SupplierOrderResult:
        with self._lock:
            self.submitted.append(order)
            sequence = next(self._counter)

        delay = self.delays.get(order.supplier_id, 0.0)
        if delay:
            time.sleep(delay)

        if order.supplier_id in self.errors:
            raise self.errors[order.supplier_id]
        if order.supplier_id in self.failures:
            return SupplierOrderResult(success=False, error=self.failures[order.supplier_id])

        tracking_number = self.tracking_numbers.get(
            order.supplier_id, f"{self.tracking_prefix}{sequence:09d}"
        )
        return SupplierOrderResult(success=True, tracking_number=tracking_number)
