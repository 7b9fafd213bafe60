"""Order management service."""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from opentelemetry import trace

from storefront.database import SessionLocal
from storefront.exceptions import InsufficientStock, ProductNotFound, StorageFault
from storefront.models import Order, OrderItem, Product, User
from storefront.monitoring import order_amount_histogram, orders_placed_counter
from storefront.schemas import OrderCreateRequest
from storefront.services.inventory_service import InventoryService, Reservation
from storefront.transaction import TransactionScope

logger = logging.getLogger(__name__)

ORDER_STATUS_PENDING = "pending"


@dataclass(frozen=True)
class OrderResult:
    """Identifier, total and status of a newly created order."""
    order_id: int
    total_amount: Decimal
    status: str


class OrderService:
    """Service for placing and reading orders."""

    def __init__(
        self,
        inventory_service: InventoryService,
        session_factory: Callable[[], Session] = SessionLocal
    ):
        """
        Initialize order service.

        Args:
            inventory_service: Inventory reservation service
            session_factory: Factory for pool-backed sessions
        """
        self.inventory_service = inventory_service
        self.session_factory = session_factory
        self.tracer = trace.get_tracer(__name__)

    def place_order(self, request: OrderCreateRequest) -> OrderResult:
        """
        Reserve inventory and create the order as one atomic unit.

        Args:
            request: Validated order request

        Returns:
            The created order

        Raises:
            ProductNotFound: If a line item references an unknown product
            InsufficientStock: If a line item exceeds available stock
            StorageFault: If the database fails
        """
        span = trace.get_current_span()
        span.set_attribute("user.id", request.user_id)
        span.set_attribute("order.item_count", len(request.items))

        try:
            with self.tracer.start_as_current_span("db.transaction.place_order"):
                with TransactionScope(self.session_factory) as db:
                    reservation = self.inventory_service.reserve(
                        db, request.user_id, request.items
                    )
                    result = self.create_order(db, request.user_id, reservation)
        except (ProductNotFound, InsufficientStock):
            orders_placed_counter.add(1, {"status": "rejected"})
            raise
        except StorageFault:
            orders_placed_counter.add(1, {"status": "failed"})
            logger.exception("Failed to create order", extra={
                "user_id": request.user_id,
                "item_count": len(request.items)
            })
            raise

        orders_placed_counter.add(1, {"status": "created"})
        order_amount_histogram.record(float(result.total_amount))
        logger.info("Order created", extra={
            "user_id": request.user_id,
            "order_id": result.order_id,
            "amount": str(result.total_amount),
            "item_count": len(request.items)
        })
        return result

    def create_order(
        self,
        db: Session,
        user_id: int,
        reservation: Reservation
    ) -> OrderResult:
        """
        Insert the order header and its items.

        Item prices come from the reservation; product prices are not read
        again.

        Args:
            db: Session inside the same transaction as the reservation
            user_id: Owning user identifier
            reservation: Reserved items and total

        Returns:
            The assigned order identifier, total and status
        """
        with self.tracer.start_as_current_span("db.query.insert_order") as db_span:
            db_span.set_attribute("db.operation", "INSERT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("user.id", user_id)
            db_span.set_attribute("order.total_amount", str(reservation.total))

            order = Order(
                user_id=user_id,
                total_amount=reservation.total,
                status=ORDER_STATUS_PENDING
            )
            db.add(order)
            db.flush()

            db.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price_at_purchase=item.unit_price
                )
                for item in reservation.items
            ])
            db.flush()

            db_span.set_attribute("order.id", order.id)

        return OrderResult(
            order_id=order.id,
            total_amount=reservation.total,
            status=order.status
        )

    def get_order_details(self, db: Session, order_id: int) -> Optional[Dict[str, Any]]:
        """
        Get an order with its owner and items.

        Args:
            db: Database session
            order_id: Order identifier

        Returns:
            Order details, or None if the order does not exist
        """
        with self.tracer.start_as_current_span("db.query.get_order_details") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("order.id", order_id)

            header = db.execute(
                select(Order, User.username, User.email)
                .join(User, Order.user_id == User.id)
                .where(Order.id == order_id)
            ).first()
            if header is None:
                db_span.set_attribute("db.rows_returned", 0)
                return None

            order, username, email = header
            items = db.execute(
                select(OrderItem, Product.name)
                .join(Product, OrderItem.product_id == Product.id)
                .where(OrderItem.order_id == order_id)
                .order_by(OrderItem.id)
            ).all()

            db_span.set_attribute("db.rows_returned", len(items))

        return {
            "order_id": order.id,
            "total_amount": order.total_amount,
            "status": order.status,
            "order_date": order.created_at,
            "username": username,
            "email": email,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": product_name,
                    "quantity": item.quantity,
                    "price": item.price_at_purchase
                }
                for item, product_name in items
            ]
        }
