import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from storefront.dependencies import get_order_service
from storefront.exceptions import InsufficientStock, ProductNotFound, StorageFault
from storefront.validation import parse_order_request

from tests.helpers import items_of, order_count, order_item_count, set_price, stock_of


@pytest.fixture
def order_service():
    return get_order_service()


def _request(user_id, *pairs):
    return parse_order_request({
        "user_id": user_id,
        "items": [{"product_id": p, "quantity": q} for p, q in pairs],
    })


def test_place_order(order_service, user, make_product):
    p1 = make_product(price="10.00", stock=5)

    result = order_service.place_order(_request(user, (p1, 2)))

    assert result.total_amount == Decimal("20.00")
    assert result.status == "pending"
    assert stock_of(p1) == 3
    assert items_of(result.order_id) == [(p1, 2, Decimal("10.00"))]


def test_total_matches_items(order_service, user, make_product):
    p1 = make_product(price="19.99", stock=10)
    p2 = make_product(price="0.35", stock=10)
    p3 = make_product(price="100.00", stock=10)

    result = order_service.place_order(_request(user, (p1, 3), (p2, 7), (p3, 1)))

    items = items_of(result.order_id)
    assert [product_id for product_id, _, _ in items] == [p1, p2, p3]
    assert result.total_amount == sum(price * qty for _, qty, price in items)
    assert result.total_amount == Decimal("162.42")


def test_same_product_twice_in_one_order(order_service, user, make_product):
    product_id = make_product(price="1.00", stock=3)

    order_service.place_order(_request(user, (product_id, 2), (product_id, 1)))
    assert stock_of(product_id) == 0

    with pytest.raises(InsufficientStock):
        order_service.place_order(_request(user, (product_id, 1), (product_id, 1)))
    assert stock_of(product_id) == 0


def test_price_at_purchase_is_frozen(order_service, user, make_product):
    product_id = make_product(price="10.00", stock=5)
    result = order_service.place_order(_request(user, (product_id, 1)))

    set_price(product_id, "99.00")

    assert items_of(result.order_id) == [(product_id, 1, Decimal("10.00"))]


def test_failed_item_writes_nothing(order_service, user, make_product):
    p1 = make_product(stock=5)
    p2 = make_product(stock=5)

    with pytest.raises(ProductNotFound) as exc_info:
        order_service.place_order(_request(user, (p1, 2), (p2, 1), (999, 1)))

    assert exc_info.value.product_id == 999
    assert stock_of(p1) == 5
    assert stock_of(p2) == 5
    assert order_count() == 0
    assert order_item_count() == 0


def test_insufficient_stock_writes_nothing(order_service, user, make_product):
    p1 = make_product(stock=5)
    p2 = make_product(stock=1)

    with pytest.raises(InsufficientStock):
        order_service.place_order(_request(user, (p1, 5), (p2, 2)))

    assert stock_of(p1) == 5
    assert stock_of(p2) == 1
    assert order_count() == 0


def test_resubmission_creates_a_second_order(order_service, user, make_product):
    product_id = make_product(price="10.00", stock=5)
    request = _request(user, (product_id, 2))

    first = order_service.place_order(request)
    second = order_service.place_order(request)

    assert first.order_id != second.order_id
    assert stock_of(product_id) == 1
    assert order_count() == 2


def test_storage_fault_rolls_back(order_service, make_product):
    product_id = make_product(stock=5)

    # No such user: the foreign key rejects the order insert after the
    # reservation already decremented stock
    with pytest.raises(StorageFault):
        order_service.place_order(_request(12345, (product_id, 2)))

    assert stock_of(product_id) == 5
    assert order_count() == 0


def _race(order_service, request, contenders):
    barrier = threading.Barrier(contenders)

    def attempt():
        barrier.wait()
        try:
            order_service.place_order(request)
            return "created"
        except InsufficientStock:
            return "insufficient"

    with ThreadPoolExecutor(max_workers=contenders) as pool:
        futures = [pool.submit(attempt) for _ in range(contenders)]
        return [future.result() for future in futures]


def test_concurrent_orders_for_last_unit(order_service, user, make_product):
    product_id = make_product(stock=1)

    outcomes = _race(order_service, _request(user, (product_id, 1)), 2)

    assert sorted(outcomes) == ["created", "insufficient"]
    assert stock_of(product_id) == 0
    assert order_count() == 1


def test_stock_never_goes_negative_under_contention(order_service, user, make_product):
    product_id = make_product(stock=5)

    outcomes = _race(order_service, _request(user, (product_id, 2)), 6)

    assert outcomes.count("created") == 2
    assert outcomes.count("insufficient") == 4
    assert stock_of(product_id) == 1
