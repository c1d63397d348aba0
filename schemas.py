"""Pydantic schemas for request/response validation."""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]


# Users

class UserCreate(BaseModel):
    """Schema for registering a user."""
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)


class UserUpdate(BaseModel):
    """Schema for a partial user update; unset fields are left alone."""
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("username", "email", "password", "is_active")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class UserResponse(BaseModel):
    """Public view of a user; the password hash is never exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Products

class ProductCreate(BaseModel):
    """Schema for creating a product."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=50)
    stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    """Schema for a partial product update."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    stock: Optional[int] = Field(None, ge=0)

    @field_validator("name", "price", "category", "stock")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    stock: int
    created_at: datetime
    updated_at: datetime


# Orders

class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    """Schema for placing an order."""
    user_id: int
    shipping_address: Optional[str] = None
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderUpdate(BaseModel):
    """Only status and shipping address are mutable after placement."""
    model_config = ConfigDict(extra="forbid")

    status: Optional[OrderStatus] = None
    shipping_address: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    price: float


class OrderResponse(BaseModel):
    """Schema for order response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    order_date: datetime
    total_price: float
    status: OrderStatus
    shipping_address: Optional[str] = None
    items: List[OrderItemResponse]


class DeleteResponse(BaseModel):
    message: str
    id: int


# Reports

class TopSpenderRow(BaseModel):
    user_id: int
    username: str
    order_count: int
    total_spent: float
    rank: int


class ProductRevenueRow(BaseModel):
    product_id: int
    name: str
    category: str
    units_sold: int
    revenue: float
    rank: int


class MonthlyRevenueRow(BaseModel):
    month: str
    order_count: int
    revenue: float
    previous_revenue: Optional[float] = None
    growth_pct: Optional[float] = None


class LowStockRow(BaseModel):
    product_id: int
    name: str
    category: str
    stock: int


class CategorySalesRow(BaseModel):
    category: str
    units_sold: int
    revenue: float
    revenue_share_pct: float


class UserWithoutOrdersRow(BaseModel):
    user_id: int
    username: str
    email: str
    created_at: datetime
