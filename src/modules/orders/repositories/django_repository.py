"""Django ORM implementation of the Order repository.

All write operations run inside ``transaction.atomic()`` so the aggregate
(Order + OrderItems + timeline) and its outbox rows commit together.

Concurrency control on status updates uses ``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Prefetch, QuerySet

from modules.core.outbox import record_events
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderTimelineEntry
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    @staticmethod
    def _with_relations(queryset: QuerySet[Order]) -> QuerySet[Order]:
        return queryset.prefetch_related(
            "items",
            Prefetch(
                "timeline",
                queryset=OrderTimelineEntry.objects.select_related("actor"),
            ),
        )

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        data: Dict[str, Any],
        items: List[Dict[str, Any]],
        timeline_message: str,
    ) -> Order:
        order = Order(**data)
        order.save()

        for item_data in items:
            OrderItem(order=order, **item_data).save()

        OrderTimelineEntry(
            order=order,
            status=order.status,
            message=timeline_message,
            actor_id=order.user_id,
        ).save()

        logger.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return self._with_relations(Order.objects.filter(pk=id)).first()
        except (ValueError, ValidationError):
            return None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return self._with_relations(
            Order.objects.filter(order_number=order_number)
        ).first()

    def get_for_update(self, order_number: str) -> Optional[Order]:
        return (
            Order.objects.select_for_update()
            .filter(order_number=order_number)
            .first()
        )

    def list_for_user(self, user_id: Any) -> QuerySet[Order]:
        return self._with_relations(Order.objects.filter(user_id=user_id))

    def list_all(self) -> QuerySet[Order]:
        return self._with_relations(Order.objects.all())

    def has_delivered_item(self, order_id: Any, user_id: Any, product_id: Any) -> bool:
        try:
            return Order.objects.filter(
                pk=order_id,
                user_id=user_id,
                status=OrderStatus.DELIVERED,
                items__product_id=product_id,
            ).exists()
        except (ValueError, ValidationError):
            return False

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_timeline_entry(
        self,
        order: Order,
        status: str,
        message: str,
        actor_id: Optional[Any] = None,
    ) -> OrderTimelineEntry:
        entry = OrderTimelineEntry(
            order=order, status=status, message=message, actor_id=actor_id
        )
        entry.save()
        logger.info(
            "order.timeline_appended",
            order_number=order.order_number,
            status=status,
        )
        return entry

    @transaction.atomic
    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist the order and write its pending events to the outbox."""
        entity.save(update_fields=update_fields)
        events = record_events(entity, topic="orders")
        logger.info(
            "order.saved",
            order_number=entity.order_number,
            event_count=len(events),
        )
        return entity
