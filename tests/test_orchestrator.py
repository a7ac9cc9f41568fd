"""End-to-end tests for fulfillment processing."""

from unittest.mock import MagicMock

import requests

from conftest import fulfillment_request, line_item
from dropship_routing.base_transport import SupplierTransport
from dropship_routing.directory import InMemoryMappingDirectory
from dropship_routing.dispatcher import SupplierDispatcher
from dropship_routing.models import Address, OrderContext, SupplierOrderResult
from dropship_routing.orchestrator import (
    MSG_INVALID_REQUEST,
    MSG_NO_MAPPINGS,
    MSG_PARTIAL_FAILURE,
    MSG_SUCCESS,
    MSG_UNEXPECTED,
    FulfillmentOrchestrator,
    build_test_request,
)


class TestScenarios:
    def test_two_items_same_location_single_dispatch(self, orchestrator, transport):
        response = orchestrator.process(fulfillment_request(line_item(1), line_item(2)))

        assert len(transport.submitted) == 1
        assert [i.supplier_product_id for i in transport.submitted[0].items] == ["sp-1", "sp-2"]
        assert response["fulfillment"]["status"] == "success"
        assert response["fulfillment"]["tracking_number"] == "TRK1"
        assert response["fulfillment"]["tracking_url"] == "https://tracking.example.com/TRK1"
        assert response["meta"]["message"] == MSG_SUCCESS

    def test_two_locations_both_succeed(self, orchestrator, transport):
        response = orchestrator.process(fulfillment_request(line_item(1), line_item(3)))

        fulfillment = response["fulfillment"]
        assert len(transport.submitted) == 2
        assert fulfillment["status"] == "success"
        assert fulfillment["tracking_number"] == "TRK1,TRK2"
        assert fulfillment["tracking_company"] == "Dropship Service (Multiple)"
        assert fulfillment["tracking_url"] == "https://tracking.example.com/combined/TRK1,TRK2"
        assert [t["location_id"] for t in response["meta"]["tracking"]] == ["loc-sz", "loc-la"]

    def test_second_location_fails(self, orchestrator, transport):
        transport.configure("globex", should_succeed=False, failure_reason="Out of stock")
        response = orchestrator.process(fulfillment_request(line_item(1), line_item(3)))

        assert response["fulfillment"]["status"] == "error"
        assert response["fulfillment"]["tracking_number"] == "TRK1"
        assert response["meta"]["message"] == MSG_PARTIAL_FAILURE
        assert response["meta"]["dispatch_failures"] == [
            {"location_id": "loc-la", "supplier_id": "globex", "error": "Out of stock"}
        ]

    def test_unmapped_variant_only(self, orchestrator, transport):
        response = orchestrator.process(fulfillment_request(line_item(99)))

        assert response["fulfillment"]["status"] == "error"
        assert response["meta"]["message"] == MSG_NO_MAPPINGS
        assert response["meta"]["unmapped_variant_ids"] == ["99"]
        assert transport.submitted == []


class TestResponse:
    def test_unmapped_items_are_warned_about_on_success(self, orchestrator):
        response = orchestrator.process(fulfillment_request(line_item(1), line_item(99)))
        assert response["fulfillment"]["status"] == "success"
        assert response["meta"]["unmapped_variant_ids"] == ["99"]

    def test_passthrough_fields_are_kept(self, orchestrator):
        request = fulfillment_request(line_item(1))
        response = orchestrator.process(request)

        assert response["fulfillment"]["id"] == 555
        assert response["fulfillment"]["service"]["service_name"] == "dropship_service"
        assert response["fulfillment"]["line_items"][0]["sku"] == "SKU-1"
        # The request itself is left untouched.
        assert request["fulfillment"]["status"] == "pending"

    def test_no_tracking_keeps_default_company(self, directory, settings):
        class UntrackedTransport(SupplierTransport):
            def submit(self, order):
                return SupplierOrderResult(success=True)

        dispatcher = SupplierDispatcher(default_transport=UntrackedTransport())
        orchestrator = FulfillmentOrchestrator(directory, dispatcher, settings)
        response = orchestrator.process(fulfillment_request(line_item(1)))

        assert response["fulfillment"]["status"] == "success"
        assert response["fulfillment"]["tracking_company"] == "Dropship Service"
        assert response["fulfillment"]["tracking_number"] is None
        assert response["fulfillment"]["tracking_url"] is None

    def test_shipping_context_comes_from_destination_address(self, orchestrator, transport):
        orchestrator.process(fulfillment_request(line_item(1), order_id=42))
        order = transport.submitted[0]
        assert order.shipping_address.name == "Pat Buyer"
        assert order.customer_email == "buyer@example.com"
        assert order.order_notes == "Shopify Order #42"

    def test_order_source_fills_missing_details(self, directory, dispatcher, settings, transport):
        source = MagicMock()
        source.order_context.return_value = OrderContext(
            order_id="1001",
            shipping_address=Address(
                address1="9 Elm", city="Salem", province="OR", country="US", zip_code="97301"
            ),
            customer_email="lookup@example.com",
        )
        orchestrator = FulfillmentOrchestrator(directory, dispatcher, settings, order_source=source)

        request = fulfillment_request(line_item(1))
        del request["fulfillment"]["email"]
        orchestrator.process(request)

        source.order_context.assert_called_once_with("1001")
        order = transport.submitted[0]
        assert order.customer_email == "lookup@example.com"
        assert order.shipping_address.city == "Springfield"

    def test_failed_order_lookup_still_dispatches(self, directory, dispatcher, settings, transport):
        source = MagicMock()
        source.order_context.side_effect = requests.ConnectionError("store unreachable")
        orchestrator = FulfillmentOrchestrator(directory, dispatcher, settings, order_source=source)

        request = fulfillment_request(line_item(1))
        del request["fulfillment"]["email"]
        response = orchestrator.process(request)

        assert response["fulfillment"]["status"] == "success"
        assert response["fulfillment"]["tracking_number"] == "TRK1"
        assert response["meta"]["message"] == MSG_SUCCESS
        order = transport.submitted[0]
        assert order.customer_email == ""
        assert order.shipping_address.city == "Springfield"


class TestFailureBoundary:
    def test_missing_fulfillment_object(self, orchestrator):
        response = orchestrator.process({"order": {}})
        assert response["fulfillment"]["status"] == "error"
        assert response["meta"]["message"] == MSG_INVALID_REQUEST

    def test_not_a_dict(self, orchestrator):
        assert orchestrator.process(None)["fulfillment"]["status"] == "error"

    def test_malformed_line_item_is_unexpected_fault(self, orchestrator, transport):
        response = orchestrator.process(fulfillment_request({"id": 1, "quantity": 1}))
        assert response["fulfillment"]["status"] == "error"
        assert response["meta"]["message"] == MSG_UNEXPECTED
        assert transport.submitted == []

    def test_directory_fault_does_not_escape(self, dispatcher, settings):
        directory = InMemoryMappingDirectory()
        directory.get_mapping_for_variant = MagicMock(side_effect=RuntimeError("db down"))
        orchestrator = FulfillmentOrchestrator(directory, dispatcher, settings)

        response = orchestrator.process(fulfillment_request(line_item(1)))
        assert response["fulfillment"]["status"] == "error"
        assert response["meta"]["message"] == MSG_UNEXPECTED
        assert response["meta"]["stage"] == "failed"

    def test_supplier_without_transport(self, directory, settings):
        orchestrator = FulfillmentOrchestrator(directory, SupplierDispatcher(), settings)
        response = orchestrator.process(fulfillment_request(line_item(1)))
        assert response["fulfillment"]["status"] == "error"
        assert response["meta"]["dispatch_failures"][0]["supplier_id"] == "acme"


class TestBuildTestRequest:
    def test_wraps_line_items(self, orchestrator):
        request = build_test_request([line_item(3)], order_id=77)
        assert request["fulfillment"]["order_id"] == 77
        assert request["fulfillment"]["destination_address"]["name"] == "Test Customer"

        response = orchestrator.process(request)
        assert response["fulfillment"]["tracking_number"] == "TRK2"
