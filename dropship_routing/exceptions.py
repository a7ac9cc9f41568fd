"""Exceptions raised by the dropship routing package."""


class DropshipRoutingError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(DropshipRoutingError, ValueError):
    """An environment setting is missing or malformed."""


class DirectoryError(DropshipRoutingError):
    """The mapping directory rejected a read or a write."""


class InvalidRecordError(DirectoryError):
    """A location or mapping lacks a field it cannot exist without."""


class DuplicateActiveMappingError(DirectoryError):
    """More than one active mapping exists for the same variant."""

    def __init__(self, variant_id: str, mapping_ids: list[str]):
        self.variant_id = variant_id
        self.mapping_ids = mapping_ids
        super().__init__(
            f"Variant {variant_id} has {len(mapping_ids)} active supplier mappings: "
            f"{', '.join(mapping_ids)}"
        )


class DispatchError(DropshipRoutingError):
    """A supplier order could not be submitted."""


class TransportNotConfiguredError(DispatchError):
    """No transport is registered for the supplier of a partition."""

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"No transport configured for supplier {supplier_id}")


class SupplierTransportError(DispatchError):
    """The supplier API answered with something we cannot use."""
