from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from storefront.exceptions import InsufficientStock, StorageFault
from storefront.models import Product
from storefront.transaction import TransactionScope

from tests.helpers import stock_of


def _fake_session_factory():
    session = MagicMock()
    return session, MagicMock(return_value=session)


def test_commits_and_releases_on_success():
    session, factory = _fake_session_factory()

    with TransactionScope(factory) as db:
        assert db is session

    session.begin.assert_called_once()
    session.commit.assert_called_once()
    session.rollback.assert_not_called()
    session.close.assert_called_once()


def test_rolls_back_and_propagates_domain_errors():
    session, factory = _fake_session_factory()

    with pytest.raises(InsufficientStock):
        with TransactionScope(factory):
            raise InsufficientStock(3)

    session.commit.assert_not_called()
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_database_errors_become_storage_faults():
    session, factory = _fake_session_factory()
    original = OperationalError("UPDATE products", {}, Exception("disk I/O error"))

    with pytest.raises(StorageFault) as exc_info:
        with TransactionScope(factory):
            raise original

    assert exc_info.value.__cause__ is original
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_failed_commit_rolls_back():
    session, factory = _fake_session_factory()
    session.commit.side_effect = OperationalError("COMMIT", {}, Exception("database is locked"))

    with pytest.raises(StorageFault):
        with TransactionScope(factory):
            pass

    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_interrupts_roll_back():
    session, factory = _fake_session_factory()

    with pytest.raises(KeyboardInterrupt):
        with TransactionScope(factory):
            raise KeyboardInterrupt

    session.commit.assert_not_called()
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_release_happens_once_even_if_rollback_fails():
    session, factory = _fake_session_factory()
    session.rollback.side_effect = OperationalError("ROLLBACK", {}, Exception("gone"))

    with pytest.raises(ValueError):
        with TransactionScope(factory):
            raise ValueError("boom")

    session.close.assert_called_once()


def test_rollback_discards_writes(make_product):
    product_id = make_product(stock=5)

    with pytest.raises(RuntimeError):
        with TransactionScope() as db:
            db.get(Product, product_id).stock_quantity = 1
            db.add(Product(name="Ghost", price=Decimal("1.00"), stock_quantity=1))
            db.flush()
            raise RuntimeError("abort")

    assert stock_of(product_id) == 5


def test_commit_persists_writes(make_product):
    product_id = make_product(stock=5)

    with TransactionScope() as db:
        db.get(Product, product_id).stock_quantity = 2

    assert stock_of(product_id) == 2
