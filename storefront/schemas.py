"""Pydantic schemas for request/response validation."""
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import List, Optional

# Upper bound of the Integer id and quantity columns
MAX_DB_INT = 2**31 - 1


class OrderItemRequest(BaseModel):
    """One line item of an order request."""
    model_config = ConfigDict(extra="forbid")

    product_id: StrictInt = Field(gt=0, le=MAX_DB_INT)
    quantity: StrictInt = Field(gt=0, le=MAX_DB_INT)


class OrderCreateRequest(BaseModel):
    """Schema for creating an order. Items keep request order."""
    model_config = ConfigDict(extra="forbid")

    user_id: StrictInt = Field(gt=0, le=MAX_DB_INT)
    items: List[OrderItemRequest] = Field(min_length=1)


class OrderCreateResponse(BaseModel):
    """Schema for order creation response."""
    order_id: int
    total_amount: str
    status: str
    message: str


class OrderItemDetail(BaseModel):
    """Schema for an order item in order details."""
    product_id: int
    product_name: str
    quantity: int
    price: Decimal


class OrderDetailResponse(BaseModel):
    """Schema for order details response."""
    order_id: int
    total_amount: Decimal
    status: str
    order_date: Optional[datetime]
    username: str
    email: str
    items: List[OrderItemDetail]


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    price: Decimal
    stock_quantity: int
    category: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class Pagination(BaseModel):
    """Schema for pagination metadata."""
    page: int
    limit: int
    total: int


class ProductsPageResponse(BaseModel):
    """Schema for paginated product listing."""
    products: List[ProductResponse]
    pagination: Pagination


class UserResponse(BaseModel):
    """Schema for user response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
