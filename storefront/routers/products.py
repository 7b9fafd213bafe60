"""Products API router."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from typing import Optional
from opentelemetry import trace

from storefront.database import get_db
from storefront.models import Product
from storefront.schemas import ProductsPageResponse

router = APIRouter(prefix="/products", tags=["products"])

MAX_PAGE_SIZE = 100


@router.get("", response_model=ProductsPageResponse)
def get_products(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(10, description="Products per page"),
    category: Optional[str] = Query(None, description="Only products in this category"),
    db: Session = Depends(get_db)
):
    """
    List products, newest first.

    Out-of-range paging values are clamped rather than rejected: page to at
    least 1 and limit to 1..100.

    Examples:
    - GET /products?page=2&limit=20
    - GET /products?category=Electronics
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    query = select(Product)
    count_query = select(func.count()).select_from(Product)
    if category:
        query = query.where(Product.category == category)
        count_query = count_query.where(Product.category == category)

    products = db.scalars(
        query.order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ).all()
    total = db.scalar(count_query)

    span = trace.get_current_span()
    span.set_attribute("product.count", len(products))
    if category:
        span.set_attribute("product.category", category)

    return {
        "products": products,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total
        }
    }
