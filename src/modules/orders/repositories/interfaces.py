"""Order repository interface.

Extends ``IRepository[Order]`` with the aggregate creation (order + item
snapshots + first timeline entry), timeline appends and the look-ups by
public order number.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderTimelineEntry


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem snapshots and the append-only
    OrderTimelineEntry records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(
        self,
        data: Dict[str, Any],
        items: List[Dict[str, Any]],
        timeline_message: str,
    ) -> Order:
        """Create the order, its item snapshots and its first timeline entry."""

    @abstractmethod
    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Order with prefetched items and timeline, ``None`` when absent."""

    @abstractmethod
    def get_for_update(self, order_number: str) -> Optional[Order]:
        """Same as ``get_by_number`` but row-locked (SELECT FOR UPDATE)."""

    @abstractmethod
    def add_timeline_entry(
        self,
        order: Order,
        status: str,
        message: str,
        actor_id: Optional[Any] = None,
    ) -> OrderTimelineEntry:
        """Append an entry to the order timeline."""

    @abstractmethod
    def list_for_user(self, user_id: Any) -> "models.QuerySet[Order]":
        """Orders placed by ``user_id``, newest first."""

    @abstractmethod
    def list_all(self) -> "models.QuerySet[Order]":
        """Every order, newest first."""

    @abstractmethod
    def has_delivered_item(self, order_id: Any, user_id: Any, product_id: Any) -> bool:
        """``True`` when ``order_id`` is a delivered order of ``user_id``
        containing ``product_id``."""
