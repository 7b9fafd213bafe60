"""Database helpers for assertions.

Each helper opens and closes its own session: an open SQLite transaction
holds the write lock and would block the code under test.
"""
from decimal import Decimal

from sqlalchemy import func, select

from storefront.database import SessionLocal
from storefront.models import Order, OrderItem, Product


def stock_of(product_id):
    with SessionLocal() as db:
        return db.scalar(select(Product.stock_quantity).where(Product.id == product_id))


def set_price(product_id, price):
    with SessionLocal() as db:
        db.get(Product, product_id).price = Decimal(price)
        db.commit()


def order_count():
    with SessionLocal() as db:
        return db.scalar(select(func.count()).select_from(Order))


def order_item_count():
    with SessionLocal() as db:
        return db.scalar(select(func.count()).select_from(OrderItem))


def items_of(order_id):
    with SessionLocal() as db:
        items = db.scalars(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        ).all()
        return [(item.product_id, item.quantity, item.price_at_purchase) for item in items]
