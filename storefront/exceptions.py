"""Errors raised while placing an order."""


class OrderPlacementError(Exception):
    """Base class for order placement failures."""


class ValidationError(OrderPlacementError):
    """The order request is malformed. Raised before any database work."""


class ProductNotFound(OrderPlacementError):
    """A line item references a product that does not exist."""

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class InsufficientStock(OrderPlacementError):
    """A line item asks for more units than the product has in stock."""

    def __init__(self, product_id: int):
        super().__init__(f"Insufficient stock for product {product_id}")
        self.product_id = product_id


class StorageFault(OrderPlacementError):
    """Unexpected failure from the database. The cause is chained."""
