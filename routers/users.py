"""Users API router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_user_service
from schemas import DeleteResponse, UserCreate, UserResponse, UserUpdate
from services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """List users ordered by id."""
    return user_service.list_users(db, is_active=is_active, skip=skip, limit=limit)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    request: UserCreate,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """Register a user. Duplicate username or email returns 409."""
    return user_service.create_user(db, request)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    request: UserUpdate,
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """Partially update a user; set is_active=false to disable the account."""
    return user_service.update_user(db, user_id, request)


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """Delete a user together with their orders."""
    user_service.delete_user(db, user_id)
    return {"message": "User deleted", "id": user_id}
