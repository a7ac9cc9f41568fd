import pytest

from dropship_routing.config import Settings
from dropship_routing.directory import InMemoryMappingDirectory
from dropship_routing.dispatcher import SupplierDispatcher
from dropship_routing.fake_transport import FakeSupplierTransport
from dropship_routing.models import Address, ProductSupplierMapping, SupplierLocation
from dropship_routing.orchestrator import FulfillmentOrchestrator


def make_location(supplier_id="acme", city="Shenzhen", location_id="", **overrides):
    fields = dict(
        id=location_id,
        supplier_id=supplier_id,
        name=f"{supplier_id} {city}",
        address=Address(
            address1="1 Warehouse Road",
            city=city,
            province="Guangdong",
            country="China",
            zip_code="518000",
        ),
    )
    fields.update(overrides)
    return SupplierLocation(**fields)


def make_mapping(variant_id, location_id, supplier_id="acme", **overrides):
    fields = dict(
        product_id=f"prod-{variant_id}",
        variant_id=str(variant_id),
        supplier_id=supplier_id,
        supplier_product_id=f"sp-{variant_id}",
        supplier_variant_id=f"sv-{variant_id}",
        supplier_location_id=location_id,
        cost=4.5,
        currency="USD",
    )
    fields.update(overrides)
    return ProductSupplierMapping(**fields)


def line_item(variant_id, quantity=1, item_id=None):
    return {
        "id": item_id if item_id is not None else int(variant_id) * 10,
        "variant_id": int(variant_id),
        "quantity": quantity,
        "title": f"Product {variant_id}",
        "sku": f"SKU-{variant_id}",
        "price": "19.99",
    }


def fulfillment_request(*items, order_id=1001):
    return {
        "fulfillment": {
            "id": 555,
            "order_id": order_id,
            "status": "pending",
            "email": "buyer@example.com",
            "service": {"id": 1, "name": "Dropship Service", "service_name": "dropship_service"},
            "tracking_company": None,
            "tracking_number": None,
            "tracking_url": None,
            "line_items": list(items),
            "destination_address": {
                "address1": "456 Customer Street",
                "city": "Springfield",
                "province": "Oregon",
                "country": "United States",
                "zip": "97477",
                "name": "Pat Buyer",
            },
        }
    }


@pytest.fixture
def directory():
    directory = InMemoryMappingDirectory()
    directory.upsert_location(make_location("acme", "Shenzhen", "loc-sz"))
    directory.upsert_location(make_location("globex", "Los Angeles", "loc-la"))
    directory.upsert_mapping(make_mapping(1, "loc-sz", "acme"))
    directory.upsert_mapping(make_mapping(2, "loc-sz", "acme"))
    directory.upsert_mapping(make_mapping(3, "loc-la", "globex"))
    return directory


@pytest.fixture
def transport():
    transport = FakeSupplierTransport()
    transport.configure("acme", tracking_number="TRK1")
    transport.configure("globex", tracking_number="TRK2")
    return transport


@pytest.fixture
def settings():
    return Settings(dispatch_timeout=2.0)


@pytest.fixture
def dispatcher(transport, settings):
    return SupplierDispatcher(
        default_transport=transport,
        timeout=settings.dispatch_timeout,
    )


@pytest.fixture
def orchestrator(directory, dispatcher, settings):
    return FulfillmentOrchestrator(directory, dispatcher, settings)
