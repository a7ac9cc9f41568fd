"""Merge per-supplier dispatch results into one fulfillment outcome."""

from dropship_routing.config import DEFAULT_TRACKING_BASE_URL, DEFAULT_TRACKING_COMPANY
from dropship_routing.models import (
    STATUS_ERROR,
    STATUS_SUCCESS,
    AggregateOutcome,
    DispatchFailure,
    SupplierOrderResult,
    TrackingEntry,
)

TRACKING_SEPARATOR = ","


def tracking_url(base_url: str, tracking_number: str) -> str:
    return f"{base_url.rstrip('/')}/{tracking_number}"


def combined_tracking_url(base_url: str, tracking_numbers: list[str]) -> str:
    return f"{base_url.rstrip('/')}/combined/{TRACKING_SEPARATOR.join(tracking_numbers)}"


def aggregate(
    results: list[SupplierOrderResult],
    tracking_base_url: str = DEFAULT_TRACKING_BASE_URL,
    tracking_company: str = DEFAULT_TRACKING_COMPANY,
) -> AggregateOutcome:
    """Combine dispatch results, keeping their order.

    The status is success only when every result succeeded. Tracking
    numbers of successful results are surfaced as-is when there is one and
    joined with commas under a "(Multiple)" company label when there are
    several, since the platform stores a single number per fulfillment.

    Args:
        results: One result per dispatched partition.
        tracking_base_url: Host that serves tracking pages.
        tracking_company: Label used for single-supplier tracking.

    Returns:
        The aggregate outcome, including the per-location failures and the
        per-location tracking entries behind the combined fields.
    """
    status = STATUS_SUCCESS if all(r.success for r in results) else STATUS_ERROR

    failures = [
        DispatchFailure(
            location_id=r.location_id,
            supplier_id=r.supplier_id,
            error=r.error or "Unknown supplier error",
        )
        for r in results
        if not r.success
    ]
    tracking = [
        TrackingEntry(
            location_id=r.location_id,
            supplier_id=r.supplier_id,
            tracking_number=r.tracking_number,
            tracking_url=tracking_url(tracking_base_url, r.tracking_number),
        )
        for r in results
        if r.success and r.tracking_number
    ]

    outcome = AggregateOutcome(status=status, failures=failures, tracking=tracking)
    if len(tracking) == 1:
        outcome.tracking_company = tracking_company
        outcome.tracking_number = tracking[0].tracking_number
        outcome.tracking_url = tracking[0].tracking_url
    elif len(tracking) > 1:
        numbers = [entry.tracking_number for entry in tracking]
        outcome.tracking_company = f"{tracking_company} (Multiple)"
        outcome.tracking_number = TRACKING_SEPARATOR.join(numbers)
        outcome.tracking_url = combined_tracking_url(tracking_base_url, numbers)
    return outcome
