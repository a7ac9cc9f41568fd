"""Submit one supplier order per partition and collect the outcomes."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError

import structlog

from dropship_routing.base_transport import SupplierTransport
from dropship_routing.exceptions import TransportNotConfiguredError
from dropship_routing.models import (
    OrderContext,
    Partition,
    ResolvedLineItem,
    SupplierLocation,
    SupplierOrderItem,
    SupplierOrderRequest,
    SupplierOrderResult,
)

logger = structlog.get_logger(__name__)

TIMEOUT_ERROR = "timeout"


def build_supplier_order(
    location: SupplierLocation,
    items: list[ResolvedLineItem],
    context: OrderContext,
) -> SupplierOrderRequest:
    """Build the outbound payload for one supplier location."""
    return SupplierOrderRequest(
        supplier_id=location.supplier_id,
        supplier_location_id=location.id,
        items=[
            SupplierOrderItem(
                supplier_product_id=item.mapping.supplier_product_id,
                supplier_variant_id=item.mapping.supplier_variant_id,
                quantity=item.line_item.quantity,
                cost=item.mapping.cost,
                currency=item.mapping.currency,
            )
            for item in items
        ],
        shipping_address=context.shipping_address,
        customer_email=context.customer_email,
        order_notes=context.order_notes,
    )


class SupplierDispatcher:
    """Sends partitions to their suppliers' transports.

    Transports are looked up by supplier id, falling back to
    ``default_transport``. The dispatcher never retries; that is the
    transport's business.
    """

    def __init__(
        self,
        transports: dict[str, SupplierTransport] | None = None,
        default_transport: SupplierTransport | None = None,
        timeout: float = 30.0,
    ):
        self.transports = dict(transports or {})
        self.default_transport = default_transport
        self.timeout = timeout

    def register(self, supplier_id: str, transport: SupplierTransport) -> None:
        self.transports[supplier_id] = transport

    def transport_for(self, supplier_id: str) -> SupplierTransport:
        transport = self.transports.get(supplier_id, self.default_transport)
        if transport is None:
            raise TransportNotConfiguredError(supplier_id)
        return transport

    def dispatch(
        self,
        location: SupplierLocation,
        items: list[ResolvedLineItem],
        context: OrderContext,
    ) -> SupplierOrderResult:
        """Submit one partition. Never raises; faults become failed results."""
        log = logger.bind(
            order_id=context.order_id,
            supplier_id=location.supplier_id,
            location_id=location.id,
        )
        try:
            order = build_supplier_order(location, items, context)
            response = self.transport_for(location.supplier_id).submit(order)
        except Exception as exc:
            log.error("Failed to process supplier fulfillment", error=str(exc), exc_info=True)
            return SupplierOrderResult(
                success=False,
                error=str(exc) or exc.__class__.__name__,
                location_id=location.id,
                supplier_id=location.supplier_id,
            )

        if response.success:
            log.info(
                "Successfully submitted order to supplier",
                tracking_number=response.tracking_number,
            )
            return SupplierOrderResult(
                success=True,
                tracking_number=response.tracking_number,
                location_id=location.id,
                supplier_id=location.supplier_id,
            )

        log.warning("Supplier rejected order", error=response.error)
        return SupplierOrderResult(
            success=False,
            error=response.error or "Unknown supplier error",
            location_id=location.id,
            supplier_id=location.supplier_id,
        )

    def dispatch_all(
        self,
        partitions: list[Partition],
        context: OrderContext,
    ) -> list[SupplierOrderResult]:
        """Dispatch every partition concurrently and wait for all of them.

        Every partition gets its own worker thread, so none waits in a
        queue. Each dispatch gets ``timeout`` seconds counted from the moment
        its worker picks it up. A dispatch that runs over becomes a failed
        result with error ``"timeout"``; its worker is left to finish on its
        own and siblings are not cancelled.

        Returns:
            One result per partition, in the order of ``partitions``.
        """
        if not partitions:
            return []

        started_at: list[float | None] = [None] * len(partitions)
        started = [threading.Event() for _ in partitions]

        def run(index: int, partition: Partition) -> SupplierOrderResult:
            started_at[index] = time.monotonic()
            started[index].set()
            return self.dispatch(partition.location, partition.items, context)

        executor = ThreadPoolExecutor(
            max_workers=len(partitions),
            thread_name_prefix="supplier-dispatch",
        )
        try:
            futures = [
                executor.submit(run, index, partition)
                for index, partition in enumerate(partitions)
            ]

            results: list[SupplierOrderResult] = []
            for index, (partition, future) in enumerate(zip(partitions, futures)):
                try:
                    if not started[index].wait(self.timeout):
                        raise FuturesTimeoutError()
                    remaining = max(0.0, started_at[index] + self.timeout - time.monotonic())
                    results.append(future.result(timeout=remaining))
                except FuturesTimeoutError:
                    future.cancel()
                    logger.error(
                        "Supplier dispatch timed out",
                        order_id=context.order_id,
                        supplier_id=partition.location.supplier_id,
                        location_id=partition.location.id,
                        timeout=self.timeout,
                    )
                    results.append(
                        SupplierOrderResult(
                            success=False,
                            error=TIMEOUT_ERROR,
                            location_id=partition.location.id,
                            supplier_id=partition.location.supplier_id,
                        )
                    )
            return results
        finally:
            executor.shutdown(wait=False)
