"""
Infrastructure layer: persistence boundary for farm and order state.

The engine never reaches into global state: the application service is
given a repository and round-trips entities through it. The in-memory
implementation stores deep copies so callers cannot mutate stored state
by holding on to a returned object.
"""
from typing import Dict, List, Optional, Protocol

from farm_engine.domain.errors import NotFoundError
from farm_engine.domain.models import FarmRecord, OrderLifecycle


class FarmRepository(Protocol):
    """Load/save interface for farm sessions and produce orders."""

    def get_farm(self, farmer_id: str) -> FarmRecord: ...

    def save_farm(self, farm: FarmRecord) -> None: ...

    def list_farms(self) -> List[FarmRecord]: ...

    def get_order(self, order_id: str) -> OrderLifecycle: ...

    def save_order(self, order: OrderLifecycle) -> None: ...

    def list_orders(
        self,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
    ) -> List[OrderLifecycle]: ...


class InMemoryFarmRepository:
    """Process-local repository with no durability guarantees."""

    def __init__(self):
        self._farms: Dict[str, FarmRecord] = {}
        self._orders: Dict[str, OrderLifecycle] = {}

    def get_farm(self, farmer_id: str) -> FarmRecord:
        try:
            return self._farms[farmer_id].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(f"Farmer '{farmer_id}' not found") from None

    def save_farm(self, farm: FarmRecord) -> None:
        self._farms[farm.farmer_id] = farm.model_copy(deep=True)

    def list_farms(self) -> List[FarmRecord]:
        return [farm.model_copy(deep=True) for farm in self._farms.values()]

    def get_order(self, order_id: str) -> OrderLifecycle:
        try:
            return self._orders[order_id].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(f"Order '{order_id}' not found") from None

    def save_order(self, order: OrderLifecycle) -> None:
        self._orders[order.order_id] = order.model_copy(deep=True)

    def list_orders(
        self,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
    ) -> List[OrderLifecycle]:
        """Orders matching the filters, most recent first."""
        orders = [
            order for order in self._orders.values()
            if (farmer_id is None or order.farmer_id == farmer_id)
            and (buyer_id is None or order.buyer_id == buyer_id)
        ]
        orders.sort(key=lambda o: o.ordered_at, reverse=True)
        return [order.model_copy(deep=True) for order in orders]
