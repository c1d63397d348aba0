"""Products API router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from opentelemetry import trace

from database import get_db
from dependencies import get_product_service
from schemas import DeleteResponse, ProductCreate, ProductResponse, ProductUpdate
from services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = Query(None, description="Exact category name"),
    q: Optional[str] = Query(None, description="Case-insensitive name search"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """
    List catalog products.

    Examples:
    - GET /api/products?category=Electronics
    - GET /api/products?q=widget&limit=20
    """
    products = product_service.list_products(db, category=category, q=q, skip=skip, limit=limit)

    span = trace.get_current_span()
    span.set_attribute("product.count", len(products))
    if category:
        span.set_attribute("product.category", category)

    return products


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    request: ProductCreate,
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    return product_service.create_product(db, request)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    return product_service.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    request: ProductUpdate,
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Partially update a product. Placed orders keep their snapshot prices."""
    return product_service.update_product(db, product_id, request)


@router.delete("/{product_id}", response_model=DeleteResponse)
async def delete_product(
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Delete a product. Products that appear on an order return 409."""
    product_service.delete_product(db, product_id)
    return {"message": "Product deleted", "id": product_id}
