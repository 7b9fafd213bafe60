"""Dependency injection for services."""
from storefront.services.inventory_service import InventoryService
from storefront.services.order_service import OrderService


def get_inventory_service() -> InventoryService:
    """Get inventory service instance."""
    return InventoryService()


def get_order_service() -> OrderService:
    """Get order service instance."""
    return OrderService(get_inventory_service())
