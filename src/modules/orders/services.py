"""Order service layer (Use Cases).

Orchestrates order placement, status management, payment verification
and return requests.  Write operations are atomic; the service defines
the unit-of-work boundary.

Business rules enforced:
- Every referenced product must exist; the cumulative quantity per
  product must not exceed its stock.
- Stock is taken with one conditional UPDATE per line (sorted by product
  id); a lost race raises ``InsufficientStock`` and rolls back the order.
- ``total = subtotal + shipping_cost - discount`` computed with Decimal.
- Every status change appends a timeline entry.
- ``returned`` is only reachable from ``delivered``.
- Cancellation does not restore stock.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import (
    INITIAL_TIMELINE_MESSAGE,
    NOTIFIABLE_STATUSES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReturnStatus,
)
from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidStatusTransition,
    OrderAccessDenied,
    OrderNotFound,
    ReturnAlreadyRequested,
    ReturnNotAllowed,
)
from modules.orders.pricing import compute_totals, estimated_delivery
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import (
        CreateOrderDTO,
        ReturnRequestDTO,
        UpdateStatusDTO,
        VerifyPaymentDTO,
    )
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place an order.

        Steps:
        1. Load every referenced product; unknown ids raise ``ProductNotFound``.
        2. Check cumulative quantity per product against stock.
        3. Snapshot price, title, image and variant per line.
        4. Price the order (subtotal, regional shipping, discount, total).
        5. Persist order + items + first timeline entry.
        6. Take stock per line with a conditional UPDATE.
        7. Record ``OrderPlaced`` in the outbox.

        Raises:
            ProductNotFound: an item references an unknown product.
            InsufficientStock: not enough stock, before or during the write.
        """
        products = self._product_repo.get_many(
            str(item.product_id) for item in dto.items
        )

        requested: Dict[str, int] = defaultdict(int)
        for item in dto.items:
            product_id = str(item.product_id)
            if product_id not in products:
                raise ProductNotFound(f"Product not found: {product_id}")
            requested[product_id] += item.quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.stock < quantity:
                raise InsufficientStock(f"Insufficient stock for {product.title}")

        lines: List[Dict[str, Any]] = []
        for item in dto.items:
            product = products[str(item.product_id)]
            lines.append(
                {
                    "product_id": product.id,
                    "title": product.title,
                    "slug": product.slug,
                    "image": product.primary_image or "",
                    "variant_name": item.variant.name if item.variant else "",
                    "variant_value": item.variant.value if item.variant else "",
                    "unit_price": product.price,
                    "quantity": item.quantity,
                }
            )

        region = dto.shipping_address.region
        totals = compute_totals(
            ((line["unit_price"], line["quantity"]) for line in lines), region
        )
        now = timezone.now()
        address = dto.shipping_address

        order = self._order_repo.create(
            data={
                "user_id": dto.user_id,
                "customer_name": dto.customer.name,
                "customer_email": dto.customer.email,
                "customer_phone": dto.customer.phone,
                "shipping_full_name": address.full_name,
                "shipping_phone": address.phone,
                "shipping_region": region,
                "shipping_city": address.city,
                "shipping_area": address.area,
                "shipping_address": address.address,
                "shipping_landmark": address.landmark,
                "shipping_notes": address.notes,
                "subtotal": totals.subtotal,
                "shipping_cost": totals.shipping_cost,
                "discount": totals.discount,
                "discount_code": dto.discount_code,
                "total": totals.total,
                "payment_method": dto.payment_method,
                "payment_status": (
                    PaymentStatus.UNPAID
                    if dto.payment_method == PaymentMethod.COD
                    else PaymentStatus.PENDING
                ),
                "status": OrderStatus.PENDING,
                "estimated_delivery": estimated_delivery(region, now),
                "source": dto.source,
                "ip_address": dto.ip_address,
                "user_agent": dto.user_agent[:500],
            },
            items=lines,
            timeline_message=INITIAL_TIMELINE_MESSAGE,
        )

        for line in sorted(lines, key=lambda line: str(line["product_id"])):
            if not self._product_repo.decrement_stock(
                str(line["product_id"]), line["quantity"]
            ):
                logger.warning(
                    "order.stock_race_lost",
                    order_number=order.order_number,
                    product_id=str(line["product_id"]),
                )
                raise InsufficientStock(f"Insufficient stock for {line['title']}")

        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                customer_phone=order.customer_phone,
                total=str(order.total),
            )
        )
        self._order_repo.save(order)

        logger.info(
            "order.placed",
            order_number=order.order_number,
            total=str(order.total),
            guest=dto.user_id is None,
        )
        return self._order_repo.get_by_number(order.order_number)

    @transaction.atomic
    def update_status(
        self, order_number: str, dto: UpdateStatusDTO, actor_id: Optional[Any] = None
    ) -> Order:
        """Move the order to ``dto.status`` and append a timeline entry.

        Courier details are overwritten only when provided.  Moving to
        ``delivered`` stamps ``delivered_at``.

        Raises:
            OrderNotFound: unknown order number.
            InvalidStatusTransition: e.g. ``returned`` from anything but
                ``delivered``.
        """
        order = self._get_for_update(order_number)
        new_status = dto.status
        if not order.can_transition_to(new_status):
            raise InvalidStatusTransition(
                f"Cannot change order status from {order.status} to {new_status}"
            )

        old_status = order.status
        order.status = new_status
        update_fields = ["status"]
        if new_status == OrderStatus.DELIVERED:
            order.delivered_at = timezone.now()
            update_fields.append("delivered_at")
        for field, value in (
            ("courier_name", dto.courier_name),
            ("courier_tracking_number", dto.tracking_number),
            ("courier_tracking_url", dto.tracking_url),
        ):
            if value:
                setattr(order, field, value)
                update_fields.append(field)

        self._order_repo.add_timeline_entry(
            order,
            status=new_status,
            message=dto.message or f"Order {new_status}",
            actor_id=actor_id,
        )

        if new_status in NOTIFIABLE_STATUSES:
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    customer_phone=order.customer_phone,
                    old_status=old_status,
                    new_status=new_status,
                )
            )
        self._order_repo.save(order, update_fields=update_fields)

        logger.info(
            "order.status_changed",
            order_number=order_number,
            old_status=old_status,
            new_status=new_status,
        )
        return self._order_repo.get_by_number(order_number)

    @transaction.atomic
    def verify_payment(
        self, order_number: str, dto: VerifyPaymentDTO, actor_id: Optional[Any] = None
    ) -> Order:
        """Mark the payment as paid and record who verified it."""
        order = self._get_for_update(order_number)
        order.payment_status = PaymentStatus.PAID
        order.payment_transaction_id = dto.transaction_id or order.payment_transaction_id
        order.payment_sender_number = dto.sender_number or order.payment_sender_number
        if dto.amount is not None:
            order.payment_amount = dto.amount
        order.payment_verified_at = timezone.now()
        order.payment_verified_by_id = actor_id
        self._order_repo.save(
            order,
            update_fields=[
                "payment_status",
                "payment_transaction_id",
                "payment_sender_number",
                "payment_amount",
                "payment_verified_at",
                "payment_verified_by",
            ],
        )
        logger.info("order.payment_verified", order_number=order_number)
        return self._order_repo.get_by_number(order_number)

    @transaction.atomic
    def request_return(
        self, order_number: str, user_id: Any, dto: ReturnRequestDTO
    ) -> Order:
        """Open a return request on a delivered order owned by ``user_id``.

        Orders of other users are reported as not found.

        Raises:
            OrderNotFound, ReturnNotAllowed, ReturnAlreadyRequested.
        """
        order = self._get_for_update(order_number)
        if order.user_id is None or str(order.user_id) != str(user_id):
            raise OrderNotFound()
        if order.status != OrderStatus.DELIVERED:
            raise ReturnNotAllowed()
        if order.return_requested:
            raise ReturnAlreadyRequested()

        order.return_requested = True
        order.return_reason = dto.reason
        order.return_status = ReturnStatus.PENDING
        order.return_requested_at = timezone.now()
        self._order_repo.save(
            order,
            update_fields=[
                "return_requested",
                "return_reason",
                "return_status",
                "return_requested_at",
            ],
        )
        logger.info("order.return_requested", order_number=order_number)
        return self._order_repo.get_by_number(order_number)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_number: str, viewer: Any = None) -> Order:
        """Full order for its owner, an admin, or anyone for guest orders.

        Raises:
            OrderNotFound: unknown order number.
            OrderAccessDenied: the order belongs to another user.
        """
        order = self._order_repo.get_by_number(order_number)
        if order is None:
            raise OrderNotFound()
        if order.user_id is None:
            return order
        if getattr(viewer, "is_authenticated", False) and (
            viewer.is_admin or viewer.pk == order.user_id
        ):
            return order
        raise OrderAccessDenied()

    def track(self, order_number: str) -> Order:
        """Public tracking look-up; callers expose a redacted view only."""
        order = self._order_repo.get_by_number(order_number)
        if order is None:
            raise OrderNotFound()
        return order

    def list_user_orders(self, user_id: Any) -> QuerySet[Order]:
        return self._order_repo.list_for_user(user_id)

    def list_all(self) -> QuerySet[Order]:
        return self._order_repo.list_all()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_for_update(self, order_number: str) -> Order:
        order = self._order_repo.get_for_update(order_number)
        if order is None:
            raise OrderNotFound()
        return order
