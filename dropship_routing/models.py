"""Shared data models for routing orders to supplier warehouses."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

# Fulfillment statuses the storefront platform understands. Only SUCCESS and
# ERROR are ever set by the orchestrator; the rest pass through untouched.
STATUS_PENDING = "pending"
STATUS_OPEN = "open"
STATUS_SUCCESS = "success"
STATUS_CANCELLED = "cancelled"
STATUS_ERROR = "error"
STATUS_FAILURE = "failure"

# Processing stages of a single fulfillment request.
STAGE_RECEIVED = "received"
STAGE_PARTITIONED = "partitioned"
STAGE_DISPATCHING = "dispatching"
STAGE_AGGREGATED = "aggregated"
STAGE_RESPONDED = "responded"
STAGE_FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Address:
    """A postal address for a warehouse or a customer."""

    address1: str
    city: str
    province: str
    country: str
    zip_code: str
    address2: str = ""
    name: str = ""
    phone: str = ""

    @property
    def full_address(self) -> str:
        parts = [self.address1]
        if self.address2:
            parts.append(self.address2)
        parts.extend([self.city, self.province, self.zip_code, self.country])
        return ", ".join(p for p in parts if p)

    @property
    def identity_key(self) -> str:
        """Case and whitespace insensitive form used to detect duplicates."""
        parts = [self.address1, self.address2, self.city, self.province, self.zip_code, self.country]
        return "|".join(" ".join(str(p).split()).lower() for p in parts)

    @classmethod
    def from_dict(cls, data: dict) -> "Address":
        return cls(
            address1=data.get("address1") or "",
            address2=data.get("address2") or "",
            city=data.get("city") or "",
            province=data.get("province") or "",
            country=data.get("country") or "",
            zip_code=data.get("zip") or data.get("zip_code") or "",
            name=data.get("name") or "",
            phone=data.get("phone") or "",
        )

    def to_dict(self) -> dict:
        data = {
            "address1": self.address1,
            "address2": self.address2 or None,
            "city": self.city,
            "province": self.province,
            "country": self.country,
            "zip": self.zip_code,
        }
        if self.name:
            data["name"] = self.name
        if self.phone:
            data["phone"] = self.phone
        return data


@dataclass(frozen=True)
class SupplierLocation:
    """A warehouse operated by one supplier; the unit of dispatch."""

    supplier_id: str
    name: str
    address: Address
    id: str = ""
    phone: str = ""
    email: str = ""
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "SupplierLocation":
        return cls(
            id=str(data.get("id") or ""),
            supplier_id=str(data.get("supplierId") or data.get("supplier_id") or ""),
            name=data.get("name") or "",
            address=Address.from_dict(data.get("address") or {}),
            phone=data.get("phone") or "",
            email=data.get("email") or "",
            is_active=bool(data.get("isActive", data.get("is_active", True))),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplierId": self.supplier_id,
            "name": self.name,
            "address": self.address.to_dict(),
            "phone": self.phone or None,
            "email": self.email or None,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ProductSupplierMapping:
    """Binds one storefront variant to one supplier's sellable unit."""

    product_id: str
    variant_id: str
    supplier_id: str
    supplier_product_id: str
    supplier_location_id: str
    cost: float
    currency: str
    supplier_variant_id: str = ""
    id: str = ""
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProductSupplierMapping":
        return cls(
            id=str(data.get("id") or ""),
            product_id=str(data.get("shopifyProductId") or data.get("product_id") or ""),
            variant_id=str(data.get("shopifyVariantId") or data.get("variant_id") or ""),
            supplier_id=str(data.get("supplierId") or data.get("supplier_id") or ""),
            supplier_product_id=str(data.get("supplierProductId") or data.get("supplier_product_id") or ""),
            supplier_variant_id=str(data.get("supplierVariantId") or data.get("supplier_variant_id") or ""),
            supplier_location_id=str(
                data.get("supplierLocationId") or data.get("supplier_location_id") or ""
            ),
            cost=float(data.get("cost") or 0),
            currency=data.get("currency") or "USD",
            is_active=bool(data.get("isActive", data.get("is_active", True))),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopifyProductId": self.product_id,
            "shopifyVariantId": self.variant_id,
            "supplierId": self.supplier_id,
            "supplierProductId": self.supplier_product_id,
            "supplierVariantId": self.supplier_variant_id or None,
            "supplierLocationId": self.supplier_location_id,
            "cost": self.cost,
            "currency": self.currency,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class LineItem:
    """One ordered variant. ``raw`` keeps the platform fields we don't read."""

    id: str
    variant_id: str
    quantity: int
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            id=str(data.get("id", "")),
            variant_id=str(data["variant_id"]),
            quantity=int(data.get("quantity", 1)),
            raw=dict(data),
        )


@dataclass
class ResolvedLineItem:
    """A line item decorated with the mapping that routes it."""

    line_item: LineItem
    mapping: ProductSupplierMapping


@dataclass
class Partition:
    """The line items of one order destined for one supplier location."""

    location: SupplierLocation
    items: list[ResolvedLineItem] = field(default_factory=list)


@dataclass
class PartitionResult:
    partitions: dict[str, Partition] = field(default_factory=dict)
    unmapped_variant_ids: list[str] = field(default_factory=list)


@dataclass
class OrderContext:
    """Shipping and customer details shared by every supplier order."""

    order_id: str
    shipping_address: Address | None = None
    customer_email: str = ""

    @property
    def order_notes(self) -> str:
        return f"Shopify Order #{self.order_id}"


@dataclass
class SupplierOrderItem:
    supplier_product_id: str
    quantity: int
    cost: float
    currency: str
    supplier_variant_id: str = ""


@dataclass
class SupplierOrderRequest:
    """The outbound payload sent to one supplier for one partition."""

    supplier_id: str
    supplier_location_id: str
    items: list[SupplierOrderItem]
    shipping_address: Address | None
    customer_email: str
    order_notes: str = ""

    def to_dict(self) -> dict:
        return {
            "supplierId": self.supplier_id,
            "supplierLocationId": self.supplier_location_id,
            "items": [
                {
                    "supplierProductId": item.supplier_product_id,
                    "supplierVariantId": item.supplier_variant_id or None,
                    "quantity": item.quantity,
                    "cost": item.cost,
                    "currency": item.currency,
                }
                for item in self.items
            ],
            "shippingAddress": self.shipping_address.to_dict() if self.shipping_address else None,
            "customerEmail": self.customer_email,
            "orderNotes": self.order_notes,
        }


@dataclass
class SupplierOrderResult:
    """Outcome of one dispatch."""

    success: bool
    tracking_number: str | None = None
    error: str | None = None
    location_id: str = ""
    supplier_id: str = ""


@dataclass
class DispatchFailure:
    location_id: str
    supplier_id: str
    error: str

    def to_dict(self) -> dict:
        return {"location_id": self.location_id, "supplier_id": self.supplier_id, "error": self.error}


@dataclass
class TrackingEntry:
    location_id: str
    supplier_id: str
    tracking_number: str
    tracking_url: str

    def to_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "supplier_id": self.supplier_id,
            "tracking_number": self.tracking_number,
            "tracking_url": self.tracking_url,
        }


@dataclass
class AggregateOutcome:
    """Merged status and tracking across every partition of an order."""

    status: str
    tracking_company: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    failures: list[DispatchFailure] = field(default_factory=list)
    tracking: list[TrackingEntry] = field(default_factory=list)
