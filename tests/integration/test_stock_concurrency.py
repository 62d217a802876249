"""Stock never goes negative under competing orders."""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from django.db import connection, connections

from modules.orders.exceptions import InsufficientStock
from modules.orders.models import Order
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


def test_conditional_decrement_refuses_oversell(product):
    repo = ProductDjangoRepository()

    assert repo.decrement_stock(str(product.id), 10) is True
    assert repo.decrement_stock(str(product.id), 1) is False

    product.refresh_from_db()
    assert product.stock == 0
    assert product.sales_count == 10


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    connection.vendor == "sqlite", reason="needs row level locking (PostgreSQL)"
)
def test_parallel_orders_for_last_units(order_service, create_dto):
    product = Product.objects.create(
        title="Limited Panjabi", category="panjabi", price=Decimal("1500.00"), stock=3
    )
    outcomes = []
    lock = threading.Lock()
    barrier = threading.Barrier(6)

    def place():
        try:
            barrier.wait()
            order_service.create_order(create_dto((product, 1)))
            result = "placed"
        except InsufficientStock:
            result = "rejected"
        finally:
            connections.close_all()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=place) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    product.refresh_from_db()
    assert outcomes.count("placed") == 3
    assert outcomes.count("rejected") == 3
    assert product.stock == 0
    assert Order.objects.count() == 3
