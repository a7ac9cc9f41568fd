"""Directory of supplier locations and product-to-supplier mappings."""

import json
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path

import structlog

from dropship_routing.exceptions import DuplicateActiveMappingError, InvalidRecordError
from dropship_routing.models import Address, ProductSupplierMapping, SupplierLocation, utcnow

logger = structlog.get_logger(__name__)


class MappingDirectory(ABC):
    """Storage for locations and mappings that every directory must implement.

    Implementations must replace whole records atomically and keep at most
    one active mapping per storefront variant.
    """

    @abstractmethod
    def upsert_location(self, location: SupplierLocation) -> SupplierLocation:
        """Create or replace a supplier location.

        The location is matched by its ``id`` when one is given, otherwise
        by supplier and address. ``created_at`` of an existing record is
        preserved and ``updated_at`` is refreshed.

        Returns:
            The stored location.
        """

    @abstractmethod
    def get_location(self, location_id: str) -> SupplierLocation | None:
        """Return the location with the given id, or None."""

    @abstractmethod
    def list_locations(self) -> list[SupplierLocation]:
        """Return every stored location, active or not."""

    @abstractmethod
    def list_locations_by_supplier(self, supplier_id: str) -> list[SupplierLocation]:
        """Return the active locations operated by a supplier."""

    @abstractmethod
    def upsert_mapping(self, mapping: ProductSupplierMapping) -> ProductSupplierMapping:
        """Create or replace a product mapping.

        When the stored mapping is active, every other active mapping for
        the same variant is deactivated in the same write.

        Returns:
            The stored mapping.
        """

    @abstractmethod
    def list_mappings(self, active_only: bool = False) -> list[ProductSupplierMapping]:
        """Return stored mappings."""

    @abstractmethod
    def get_mapping_for_variant(self, variant_id: str) -> ProductSupplierMapping | None:
        """Return the single active mapping for a variant, or None.

        Raises:
            DuplicateActiveMappingError: The store holds more than one
                active mapping for the variant.
        """

    def get_location_for_variant(self, variant_id: str) -> SupplierLocation | None:
        """Return the active location that ships a variant, or None."""
        mapping = self.get_mapping_for_variant(variant_id)
        if mapping is None:
            logger.warning("No supplier mapping found for variant", variant_id=variant_id)
            return None

        location = self.get_location(mapping.supplier_location_id)
        if location is None:
            logger.warning(
                "Supplier location not found",
                variant_id=variant_id,
                location_id=mapping.supplier_location_id,
            )
            return None
        if not location.is_active:
            logger.warning(
                "Supplier location is inactive",
                variant_id=variant_id,
                location_id=location.id,
            )
            return None
        return location


class InMemoryMappingDirectory(MappingDirectory):
    """Process-local directory guarded by a single lock.

    Records are frozen dataclasses, so readers only ever see a complete
    old or new record.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._locations: dict[str, SupplierLocation] = {}
        self._location_keys: dict[tuple[str, str], str] = {}
        self._mappings: dict[str, ProductSupplierMapping] = {}
        self._mapping_keys: dict[tuple[str, str], str] = {}

    def upsert_location(self, location: SupplierLocation) -> SupplierLocation:
        if not location.supplier_id:
            raise InvalidRecordError("Supplier location requires a supplier_id")

        key = (location.supplier_id, location.address.identity_key)
        now = utcnow()

        with self._lock:
            location_id = location.id or self._location_keys.get(key) or f"loc_{uuid.uuid4().hex}"
            existing = self._locations.get(location_id)

            claimed_by = self._location_keys.get(key)
            if claimed_by is not None and claimed_by != location_id:
                raise InvalidRecordError(
                    f"Location {claimed_by} already exists for supplier "
                    f"{location.supplier_id} at {location.address.full_address}"
                )

            stored = replace(
                location,
                id=location_id,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            if existing is not None:
                self._location_keys.pop(
                    (existing.supplier_id, existing.address.identity_key), None
                )
            self._locations[location_id] = stored
            self._location_keys[key] = location_id

        logger.info(
            "Supplier location created/updated",
            location_id=location_id,
            supplier_id=location.supplier_id,
            created=existing is None,
        )
        return stored

    def get_location(self, location_id: str) -> SupplierLocation | None:
        return self._locations.get(location_id)

    def list_locations(self) -> list[SupplierLocation]:
        with self._lock:
            return list(self._locations.values())

    def list_locations_by_supplier(self, supplier_id: str) -> list[SupplierLocation]:
        with self._lock:
            return [
                location
                for location in self._locations.values()
                if location.supplier_id == supplier_id and location.is_active
            ]

    def upsert_mapping(self, mapping: ProductSupplierMapping) -> ProductSupplierMapping:
        if not mapping.variant_id or not mapping.supplier_id:
            raise InvalidRecordError("Product mapping requires a variant_id and a supplier_id")
        if not mapping.supplier_location_id:
            raise InvalidRecordError("Product mapping requires a supplier_location_id")

        key = (mapping.variant_id, mapping.supplier_id)
        now = utcnow()
        deactivated: list[str] = []

        with self._lock:
            mapping_id = mapping.id or self._mapping_keys.get(key) or f"map_{uuid.uuid4().hex}"
            existing = self._mappings.get(mapping_id)

            claimed_by = self._mapping_keys.get(key)
            if claimed_by is not None and claimed_by != mapping_id:
                raise InvalidRecordError(
                    f"Mapping {claimed_by} already maps variant {mapping.variant_id} "
                    f"to supplier {mapping.supplier_id}"
                )

            stored = replace(
                mapping,
                id=mapping_id,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )

            if stored.is_active:
                for other in list(self._mappings.values()):
                    if (
                        other.id != mapping_id
                        and other.variant_id == stored.variant_id
                        and other.is_active
                    ):
                        self._mappings[other.id] = replace(other, is_active=False, updated_at=now)
                        deactivated.append(other.id)

            if existing is not None:
                old_key = (existing.variant_id, existing.supplier_id)
                if self._mapping_keys.get(old_key) == mapping_id:
                    del self._mapping_keys[old_key]
            self._mappings[mapping_id] = stored
            self._mapping_keys[key] = mapping_id

        if deactivated:
            logger.info(
                "Deactivated superseded supplier mappings",
                variant_id=mapping.variant_id,
                mapping_ids=deactivated,
            )
        logger.info(
            "Product mapped to supplier",
            mapping_id=mapping_id,
            variant_id=mapping.variant_id,
            supplier_id=mapping.supplier_id,
        )
        return stored

    def list_mappings(self, active_only: bool = False) -> list[ProductSupplierMapping]:
        with self._lock:
            return [m for m in self._mappings.values() if m.is_active or not active_only]

    def get_mapping_for_variant(self, variant_id: str) -> ProductSupplierMapping | None:
        variant_id = str(variant_id)
        with self._lock:
            matches = [
                m for m in self._mappings.values() if m.variant_id == variant_id and m.is_active
            ]
        if len(matches) > 1:
            raise DuplicateActiveMappingError(variant_id, [m.id for m in matches])
        return matches[0] if matches else None


def load_directory(directory: MappingDirectory, data: dict) -> MappingDirectory:
    """Seed a directory from a ``{"locations": [...], "mappings": [...]}`` document.

    Locations are stored first so mappings may refer to their ids.
    """
    for entry in data.get("locations", []):
        directory.upsert_location(SupplierLocation.from_dict(entry))
    for entry in data.get("mappings", []):
        directory.upsert_mapping(ProductSupplierMapping.from_dict(entry))
    return directory


def load_directory_file(directory: MappingDirectory, path: str | Path) -> MappingDirectory:
    with open(path) as f:
        return load_directory(directory, json.load(f))


SAMPLE_LOCATIONS = [
    SupplierLocation(
        id="aliexpress_china_shenzhen",
        supplier_id="aliexpress_china",
        name="AliExpress China Warehouse",
        address=Address(
            address1="123 Supplier Street",
            city="Shenzhen",
            province="Guangdong",
            country="China",
            zip_code="518000",
        ),
        phone="+86-755-12345678",
        email="warehouse@aliexpress.com",
    ),
    SupplierLocation(
        id="alibaba_china_guangzhou",
        supplier_id="alibaba_china",
        name="Alibaba China Hub",
        address=Address(
            address1="456 Factory Road",
            city="Guangzhou",
            province="Guangdong",
            country="China",
            zip_code="510000",
        ),
        phone="+86-20-87654321",
        email="orders@alibaba.com",
    ),
    SupplierLocation(
        id="aliexpress_us_los_angeles",
        supplier_id="aliexpress_us",
        name="AliExpress US Warehouse",
        address=Address(
            address1="789 Distribution Blvd",
            city="Los Angeles",
            province="California",
            country="United States",
            zip_code="90001",
        ),
        phone="+1-323-555-0123",
        email="us-warehouse@aliexpress.com",
    ),
]


def seed_sample_data(directory: MappingDirectory) -> MappingDirectory:
    """Store the demo supplier warehouses."""
    for location in SAMPLE_LOCATIONS:
        directory.upsert_location(location)
    logger.info("Sample supplier locations initialized", count=len(SAMPLE_LOCATIONS))
    return directory
