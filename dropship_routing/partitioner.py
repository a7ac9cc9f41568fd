"""Split an order's line items into one partition per supplier location."""

import structlog

from dropship_routing.directory import MappingDirectory
from dropship_routing.models import LineItem, Partition, PartitionResult, ResolvedLineItem

logger = structlog.get_logger(__name__)


def partition_order(directory: MappingDirectory, line_items: list[LineItem]) -> PartitionResult:
    """Group line items by the supplier location that ships them.

    Items are grouped by location id rather than supplier id, since one
    supplier may run several warehouses. Partitions keep the order in which
    their first item appears in the order.

    Args:
        directory: Where mappings and locations are resolved.
        line_items: The order's line items.

    Returns:
        The partitions plus the variant ids that could not be routed, in
        line-item order.
    """
    result = PartitionResult()

    for item in line_items:
        mapping = directory.get_mapping_for_variant(item.variant_id)
        location = directory.get_location(mapping.supplier_location_id) if mapping else None
        if location is None or not location.is_active:
            result.unmapped_variant_ids.append(item.variant_id)
            continue

        partition = result.partitions.get(location.id)
        if partition is None:
            partition = result.partitions[location.id] = Partition(location=location)
        partition.items.append(ResolvedLineItem(line_item=item, mapping=mapping))

    if result.unmapped_variant_ids:
        logger.warning(
            "Line items without an active supplier mapping were left out",
            variant_ids=result.unmapped_variant_ids,
        )
    logger.debug(
        "Order partitioned",
        partition_count=len(result.partitions),
        location_ids=list(result.partitions),
    )
    return result
