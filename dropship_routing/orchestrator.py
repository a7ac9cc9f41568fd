"""End-to-end processing of a storefront fulfillment request."""

import copy
import random
from datetime import datetime, timezone

import structlog

from dropship_routing.aggregator import aggregate
from dropship_routing.config import Settings
from dropship_routing.directory import MappingDirectory
from dropship_routing.dispatcher import SupplierDispatcher
from dropship_routing.models import (
    STAGE_AGGREGATED,
    STAGE_DISPATCHING,
    STAGE_FAILED,
    STAGE_PARTITIONED,
    STAGE_RECEIVED,
    STAGE_RESPONDED,
    STATUS_ERROR,
    STATUS_SUCCESS,
    Address,
    AggregateOutcome,
    LineItem,
    OrderContext,
)
from dropship_routing.partitioner import partition_order

logger = structlog.get_logger(__name__)

MSG_SUCCESS = "Fulfillment processed successfully"
MSG_PARTIAL_FAILURE = "Some fulfillments failed"
MSG_NO_MAPPINGS = "No supplier mappings found"
MSG_INVALID_REQUEST = "Invalid fulfillment request"
MSG_UNEXPECTED = "Unexpected error while processing fulfillment"


class FulfillmentOrchestrator:
    """Routes a fulfillment request to suppliers and reports one outcome.

    ``process`` always returns a response dict; nothing raised inside
    escapes it. The orchestrator keeps no state between calls, so one
    instance can serve concurrent requests.

    Args:
        directory: Locations and mappings used to route line items.
        dispatcher: Sends each partition to its supplier.
        settings: Tracking host and label.
        order_source: Optional object with ``order_context(order_id)``,
            e.g. :class:`ShopifyClient`, used to fill in a customer email
            or shipping address missing from the request.
    """

    def __init__(
        self,
        directory: MappingDirectory,
        dispatcher: SupplierDispatcher,
        settings: Settings | None = None,
        order_source=None,
    ):
        self.directory = directory
        self.dispatcher = dispatcher
        self.settings = settings or Settings()
        self.order_source = order_source

    def process(self, request: dict) -> dict:
        fulfillment = request.get("fulfillment") if isinstance(request, dict) else None
        if not isinstance(fulfillment, dict):
            logger.warning("Rejected fulfillment request without a fulfillment object")
            return self._response({}, STATUS_ERROR, MSG_INVALID_REQUEST, STAGE_FAILED)

        order_id = str(fulfillment.get("order_id", ""))
        log = logger.bind(order_id=order_id, fulfillment_id=fulfillment.get("id"))
        stage = STAGE_RECEIVED
        unmapped: list[str] = []

        try:
            line_items = [LineItem.from_dict(item) for item in fulfillment.get("line_items") or []]
            log.info("Processing fulfillment request", line_item_count=len(line_items))

            partitioned = partition_order(self.directory, line_items)
            unmapped = partitioned.unmapped_variant_ids
            stage = STAGE_PARTITIONED

            if not partitioned.partitions:
                log.warning("No supplier mappings found for order items", variant_ids=unmapped)
                return self._response(
                    fulfillment, STATUS_ERROR, MSG_NO_MAPPINGS, STAGE_FAILED, unmapped=unmapped
                )

            stage = STAGE_DISPATCHING
            context = self._order_context(fulfillment, order_id)
            results = self.dispatcher.dispatch_all(list(partitioned.partitions.values()), context)

            outcome = aggregate(
                results,
                tracking_base_url=self.settings.tracking_base_url,
                tracking_company=self.settings.tracking_company,
            )
            stage = STAGE_AGGREGATED
        except Exception:
            log.exception("Failed to process fulfillment request", stage=stage)
            return self._response(
                fulfillment, STATUS_ERROR, MSG_UNEXPECTED, STAGE_FAILED, unmapped=unmapped
            )

        message = MSG_SUCCESS if outcome.status == STATUS_SUCCESS else MSG_PARTIAL_FAILURE
        log.info(
            "Fulfillment request processed",
            status=outcome.status,
            partition_count=len(results),
            failed_count=len(outcome.failures),
            tracking_number=outcome.tracking_number,
        )
        return self._response(
            fulfillment, outcome.status, message, STAGE_RESPONDED, outcome=outcome, unmapped=unmapped
        )

    def _order_context(self, fulfillment: dict, order_id: str) -> OrderContext:
        destination = fulfillment.get("destination_address")
        context = OrderContext(
            order_id=order_id,
            shipping_address=Address.from_dict(destination) if destination else None,
            customer_email=fulfillment.get("email") or "",
        )
        if self.order_source is not None and (
            context.shipping_address is None or not context.customer_email
        ):
            try:
                looked_up = self.order_source.order_context(order_id)
            except Exception as exc:
                logger.warning(
                    "Order lookup failed, continuing with request details",
                    order_id=order_id,
                    error=str(exc),
                    exc_info=True,
                )
                return context
            context.shipping_address = context.shipping_address or looked_up.shipping_address
            context.customer_email = context.customer_email or looked_up.customer_email
        return context

    def _response(
        self,
        fulfillment: dict,
        status: str,
        message: str,
        stage: str,
        outcome: AggregateOutcome | None = None,
        unmapped: list[str] | None = None,
    ) -> dict:
        outcome = outcome or AggregateOutcome(status=status)
        body = copy.deepcopy(fulfillment)
        body.update(
            {
                "status": status,
                "tracking_company": outcome.tracking_company or self.settings.tracking_company,
                "tracking_number": outcome.tracking_number,
                "tracking_url": outcome.tracking_url,
            }
        )
        return {
            "fulfillment": body,
            "meta": {
                "message": message,
                "stage": stage,
                "unmapped_variant_ids": list(unmapped or []),
                "dispatch_failures": [f.to_dict() for f in outcome.failures],
                "tracking": [t.to_dict() for t in outcome.tracking],
            },
        }


def build_test_request(line_items: list[dict], order_id: int | None = None) -> dict:
    """Wrap bare line items in a complete mock fulfillment request."""
    return {
        "fulfillment": {
            "id": random.randint(1, 999999),
            "order_id": order_id if order_id is not None else random.randint(1, 999999),
            "status": "pending",
            "created_at": datetime.now(timezone.utc).isoformat(),
            "service": {
                "id": 1,
                "name": "Dropship Service",
                "service_name": "dropship_service",
            },
            "tracking_company": None,
            "tracking_number": None,
            "tracking_url": None,
            "line_items": line_items,
            "location_id": 1,
            "origin_address": {
                "id": 1,
                "address1": "123 Test Street",
                "address2": None,
                "city": "Test City",
                "province": "Test Province",
                "country": "Test Country",
                "zip": "12345",
                "country_code": "TC",
            },
            "destination_address": {
                "id": 2,
                "address1": "456 Customer Street",
                "address2": None,
                "city": "Customer City",
                "province": "Customer Province",
                "country": "Customer Country",
                "zip": "54321",
                "name": "Test Customer",
                "country_code": "CC",
            },
            "line_items_by_fulfillment_order": [],
            "fulfillment_orders": [],
        }
    }
