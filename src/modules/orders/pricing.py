"""Order pricing and delivery estimates.

Pure functions over ``Decimal``; the tables default to the settings
``SHIPPING_RATES`` / ``DELIVERY_DAYS`` so deployments can override them.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple

from django.conf import settings

from modules.orders.constants import ORDER_NUMBER_ALPHABET

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal


def shipping_cost(
    region: str,
    item_count: int,
    rates: Optional[Mapping[str, Decimal]] = None,
) -> Decimal:
    """Region base rate plus a fee for every item beyond the free threshold."""
    rates = settings.SHIPPING_RATES if rates is None else rates
    base = Decimal(rates.get(region, settings.DEFAULT_SHIPPING_RATE))
    extra_items = max(0, item_count - settings.SHIPPING_FREE_ITEM_THRESHOLD)
    return base + extra_items * settings.SHIPPING_EXTRA_ITEM_FEE


def compute_totals(
    lines: Iterable[Tuple[Decimal, int]],
    region: str,
    discount: Decimal = ZERO,
) -> OrderTotals:
    """``lines`` are ``(unit_price, quantity)`` pairs.

    ``total = subtotal + shipping_cost - discount`` with exact Decimal
    arithmetic.
    """
    lines = list(lines)
    subtotal = sum((price * quantity for price, quantity in lines), ZERO)
    item_count = sum(quantity for _, quantity in lines)
    shipping = shipping_cost(region, item_count)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping,
        discount=discount,
        total=subtotal + shipping - discount,
    )


def estimated_delivery(region: str, placed_at: datetime) -> datetime:
    days = settings.DELIVERY_DAYS.get(region, settings.DEFAULT_DELIVERY_DAYS)
    return placed_at + timedelta(days=days)


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """``<PREFIX>-<last 8 digits of epoch ms>-<5 random base36 chars>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(5))
    return f"{settings.ORDER_NUMBER_PREFIX}-{str(now_ms)[-8:]}-{suffix}"
