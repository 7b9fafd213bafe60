"""Orders API router."""
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_order_service
from storefront.exceptions import (
    InsufficientStock,
    ProductNotFound,
    StorageFault,
    ValidationError,
)
from storefront.schemas import OrderCreateResponse, OrderDetailResponse
from storefront.services.order_service import OrderService
from storefront.validation import parse_order_request

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreateResponse, status_code=201)
def create_order(
    payload: Any = Body(None),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order: reserve stock for every item and create the order atomically."""
    try:
        request = parse_order_request(payload)
        result = order_service.place_order(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStock as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageFault:
        # Already rolled back and logged by the service
        raise HTTPException(status_code=500, detail="Database error")

    return {
        "order_id": result.order_id,
        "total_amount": f"{result.total_amount:.2f}",
        "status": result.status,
        "message": "Order created successfully"
    }


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details with the owning user and line items."""
    order = order_service.get_order_details(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
