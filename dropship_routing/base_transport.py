"""Abstract base class for supplier order transports."""

from abc import ABC, abstractmethod

from dropship_routing.models import SupplierOrderRequest, SupplierOrderResult


class SupplierTransport(ABC):
    """Base class that all supplier integrations must implement."""

    @abstractmethod
    def submit(self, order: SupplierOrderRequest) -> SupplierOrderResult:
        """Submit one supplier order.

        Args:
            order: The items, shipping address and customer details for a
                single supplier location.

        Returns:
            The supplier's answer. Transports may raise on faults; the
            dispatcher turns any exception into a failed result.
        """
