"""Inventory reservation service."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from opentelemetry import trace

from storefront.exceptions import InsufficientStock, ProductNotFound, ValidationError
from storefront.models import Product
from storefront.monitoring import inventory_reservation_failures_counter
from storefront.schemas import OrderItemRequest

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ReservedItem:
    """A line item whose stock has been decremented."""
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass
class Reservation:
    """Reserved line items, in request order, and their running total."""
    items: List[ReservedItem] = field(default_factory=list)
    total: Decimal = Decimal("0.00")


class InventoryService:
    """Service for reserving product stock inside an order transaction."""

    def __init__(self):
        """Initialize inventory service."""
        self.tracer = trace.get_tracer(__name__)

    def reserve(
        self,
        db: Session,
        user_id: int,
        items: Sequence[OrderItemRequest]
    ) -> Reservation:
        """
        Reserve stock for every line item, in request order.

        Stops at the first failing item. Decrements already applied for
        earlier items are left to the enclosing transaction to roll back.

        Args:
            db: Session inside an open transaction
            user_id: Owning user identifier
            items: Validated line items

        Returns:
            Reservation with per-item prices at purchase and the total

        Raises:
            ProductNotFound: If a product does not exist
            InsufficientStock: If a product has fewer units than requested
        """
        reservation = Reservation()
        for item in items:
            unit_price = self._reserve_item(db, item.product_id, item.quantity)
            reserved = ReservedItem(item.product_id, item.quantity, unit_price)
            reservation.items.append(reserved)
            reservation.total += reserved.subtotal

        reservation.total = reservation.total.quantize(CENTS)

        logger.info("Reserved inventory", extra={
            "user_id": user_id,
            "item_count": len(reservation.items),
            "total_amount": str(reservation.total)
        })
        return reservation

    def _reserve_item(self, db: Session, product_id: int, quantity: int) -> Decimal:
        """Decrement stock for one product and return its current unit price."""
        if quantity <= 0:
            raise ValidationError(f"Quantity for product {product_id} must be positive")

        with self.tracer.start_as_current_span("db.query.reserve_product") as db_span:
            db_span.set_attribute("db.operation", "UPDATE")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.id", product_id)
            db_span.set_attribute("quantity", quantity)

            # Check and decrement in one statement so concurrent orders
            # cannot both see the last units as available.
            row = db.execute(
                update(Product)
                .where(
                    Product.id == product_id,
                    Product.stock_quantity >= quantity
                )
                .values(
                    stock_quantity=Product.stock_quantity - quantity,
                    updated_at=func.now()
                )
                .returning(Product.price)
                .execution_options(synchronize_session=False)
            ).first()

            if row is not None:
                db_span.set_attribute("db.rows_affected", 1)
                return Decimal(row.price)

            db_span.set_attribute("db.rows_affected", 0)
            exists = db.scalar(select(Product.id).where(Product.id == product_id))

        reason = "insufficient_stock" if exists is not None else "not_found"
        inventory_reservation_failures_counter.add(1, {
            "reason": reason,
            "product_id": str(product_id)
        })
        logger.warning("Inventory reservation refused", extra={
            "product_id": product_id,
            "quantity": quantity,
            "reason": reason
        })

        if exists is None:
            raise ProductNotFound(product_id)
        raise InsufficientStock(product_id)
