#!/usr/bin/env python3
"""CLI entry point for routing storefront orders to supplier warehouses."""

import argparse
import csv
import json
import sys

from dropship_routing.base_transport import SupplierTransport
from dropship_routing.config import Settings
from dropship_routing.directory import (
    InMemoryMappingDirectory,
    MappingDirectory,
    load_directory_file,
    seed_sample_data,
)
from dropship_routing.dispatcher import SupplierDispatcher
from dropship_routing.exceptions import DropshipRoutingError
from dropship_routing.logging_config import configure_logging
from dropship_routing.orchestrator import FulfillmentOrchestrator, build_test_request


def _print_outcome(response):
    """Print a summary of a fulfillment response to stderr."""
    fulfillment = response["fulfillment"]
    meta = response["meta"]
    out = sys.stderr
    print(f"\n{'=' * 70}", file=out)
    print("  FULFILLMENT RESULT", file=out)
    print(f"  Order {fulfillment.get('order_id')} | status: {fulfillment['status']}", file=out)
    print(f"  {meta['message']}", file=out)
    print(f"{'=' * 70}\n", file=out)

    for entry in meta["tracking"]:
        print(f"  Shipped from {entry['location_id']} ({entry['supplier_id']})", file=out)
        print(f"    Tracking: {entry['tracking_number']}", file=out)
        print(f"    URL:      {entry['tracking_url']}", file=out)
    for failure in meta["dispatch_failures"]:
        print(f"  FAILED at {failure['location_id']} ({failure['supplier_id']})", file=out)
        print(f"    Error:    {failure['error']}", file=out)
    if meta["unmapped_variant_ids"]:
        print(
            f"\n  Warning: no supplier mapping for variant(s) "
            f"{', '.join(meta['unmapped_variant_ids'])}",
            file=out,
        )
    print(file=out)


def _export_csv(response, path):
    """Export the per-location dispatch outcomes to a CSV file."""
    meta = response["meta"]
    order_id = response["fulfillment"].get("order_id", "")
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([
            "order_id", "location_id", "supplier_id", "success",
            "tracking_number", "tracking_url", "error",
        ])
        for entry in meta["tracking"]:
            writer.writerow([
                order_id, entry["location_id"], entry["supplier_id"], True,
                entry["tracking_number"], entry["tracking_url"], "",
            ])
        for failure in meta["dispatch_failures"]:
            writer.writerow([
                order_id, failure["location_id"], failure["supplier_id"], False,
                "", "", failure["error"],
            ])
        for variant_id in meta["unmapped_variant_ids"]:
            writer.writerow([order_id, "", "", False, "", "", f"unmapped variant {variant_id}"])
    print(f"Dispatch report exported to {path}", file=sys.stderr)


def _build_transport(args, settings: Settings) -> SupplierTransport:
    """Instantiate the supplier transport chosen on the command line.

    Args:
        args: Parsed argparse namespace.
        settings: Environment settings.

    Returns:
        A SupplierTransport used for every supplier.
    """
    transport = args.transport.lower()

    if transport == "fake":
        from dropship_routing.fake_transport import FakeSupplierTransport
        fake = FakeSupplierTransport()
        for supplier_id in args.fail_supplier or []:
            fake.configure(supplier_id, should_succeed=False)
        return fake

    if transport == "http":
        from dropship_routing.http_transport import HttpSupplierTransport
        return HttpSupplierTransport.from_settings(settings)

    raise ValueError(f"Unsupported transport: {transport}")


def _build_directory(args) -> MappingDirectory:
    directory = InMemoryMappingDirectory()
    if args.directory:
        return load_directory_file(directory, args.directory)
    return seed_sample_data(directory)


def _build_orchestrator(args, settings: Settings, directory: MappingDirectory):
    dispatcher = SupplierDispatcher(
        default_transport=_build_transport(args, settings),
        timeout=settings.dispatch_timeout,
    )
    order_source = None
    if settings.shopify_store_url and settings.shopify_access_token:
        from dropship_routing.shopify_client import ShopifyClient
        order_source = ShopifyClient(
            store_url=settings.shopify_store_url,
            access_token=settings.shopify_access_token,
            timeout=settings.dispatch_timeout,
        )
    return FulfillmentOrchestrator(directory, dispatcher, settings, order_source=order_source)


def _read_json(path):
    if path == "-":
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def _print_json(data):
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def _run_request(args, settings, directory, request) -> int:
    orchestrator = _build_orchestrator(args, settings, directory)
    response = orchestrator.process(request)
    _print_outcome(response)
    _print_json(response)
    if args.csv:
        _export_csv(response, args.csv)
    return 0 if response["fulfillment"]["status"] == "success" else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Route storefront orders to supplier warehouses and report one fulfillment status.",
    )
    parser.add_argument(
        "--directory",
        metavar="FILE",
        help="JSON file with supplier locations and mappings (default: built-in sample warehouses).",
    )
    parser.add_argument(
        "--transport",
        default="fake",
        choices=["fake", "http"],
        help='Supplier transport to submit orders with (default: "fake").',
    )
    parser.add_argument(
        "--fail-supplier",
        action="append",
        metavar="SUPPLIER_ID",
        help="Make the fake transport reject orders for this supplier (repeatable).",
    )
    parser.add_argument(
        "--csv",
        metavar="FILE",
        help="Export the per-location dispatch report to a CSV file.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Process a fulfillment request JSON file.")
    process_parser.add_argument("file", help='Fulfillment request JSON ("-" for stdin).')

    test_parser = subparsers.add_parser(
        "test-order", help="Process a JSON list of line items wrapped in a mock request."
    )
    test_parser.add_argument("file", help='Line items JSON ("-" for stdin).')

    variant_parser = subparsers.add_parser(
        "location-for-variant", help="Show the supplier location that ships a variant."
    )
    variant_parser.add_argument("variant_id")

    locations_parser = subparsers.add_parser("locations", help="List supplier locations.")
    locations_parser.add_argument("--supplier-id", help="Only active locations of this supplier.")

    mappings_parser = subparsers.add_parser("mappings", help="List product mappings.")
    mappings_parser.add_argument("--variant-id", help="Only the active mapping of this variant.")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        configure_logging(settings.log_level, settings.environment)
        directory = _build_directory(args)

        if args.command == "process":
            return _run_request(args, settings, directory, _read_json(args.file))

        if args.command == "test-order":
            line_items = _read_json(args.file)
            if not isinstance(line_items, list):
                print("Error: line items file must contain a JSON array", file=sys.stderr)
                return 1
            return _run_request(args, settings, directory, build_test_request(line_items))

        if args.command == "location-for-variant":
            location = directory.get_location_for_variant(args.variant_id)
            if location is None:
                print("No supplier location found for this variant", file=sys.stderr)
                return 1
            _print_json({"location": location.to_dict()})
            return 0

        if args.command == "locations":
            if args.supplier_id:
                locations = directory.list_locations_by_supplier(args.supplier_id)
            else:
                locations = directory.list_locations()
            _print_json({"locations": [loc.to_dict() for loc in locations]})
            return 0

        if args.command == "mappings":
            if args.variant_id:
                mapping = directory.get_mapping_for_variant(args.variant_id)
                _print_json({"mapping": mapping.to_dict() if mapping else None})
            else:
                _print_json({"mappings": [m.to_dict() for m in directory.list_mappings()]})
            return 0
    except (DropshipRoutingError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
