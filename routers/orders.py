"""Orders API router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_order_service
from schemas import DeleteResponse, OrderCreate, OrderResponse, OrderStatus, OrderUpdate
from services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    user_id: Optional[int] = Query(None, description="Only orders of this user"),
    status: Optional[OrderStatus] = Query(None, description="Only orders in this status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    return order_service.list_orders(db, user_id=user_id, status=status, skip=skip, limit=limit)


@router.post("", response_model=OrderResponse, status_code=201)
async def place_order(
    request: OrderCreate,
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """
    Place an order.

    Stock is decremented and item prices are snapshotted in one
    transaction. Insufficient stock returns 409 and nothing is persisted.
    """
    return order_service.place_order(db, request)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    return order_service.get_order(db, order_id)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    request: OrderUpdate,
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Change status (pending -> confirmed -> shipped -> delivered, or cancel) or shipping address."""
    return order_service.update_order(db, order_id, request)


@router.delete("/{order_id}", response_model=DeleteResponse)
async def delete_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    order_service.delete_order(db, order_id)
    return {"message": "Order deleted", "id": order_id}
