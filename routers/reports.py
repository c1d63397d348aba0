"""Reporting API router."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import LOW_STOCK_THRESHOLD
from database import get_db
from dependencies import get_report_service
from schemas import (
    CategorySalesRow,
    LowStockRow,
    MonthlyRevenueRow,
    ProductRevenueRow,
    TopSpenderRow,
    UserWithoutOrdersRow,
)
from services.report_service import ReportService

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/top-spenders", response_model=List[TopSpenderRow])
async def top_spenders(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.top_spenders(db, limit=limit)


@router.get("/product-revenue", response_model=List[ProductRevenueRow])
async def product_revenue(
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.product_revenue_ranking(db, limit=limit)


@router.get("/monthly-revenue", response_model=List[MonthlyRevenueRow])
async def monthly_revenue(
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.monthly_revenue_growth(db)


@router.get("/low-stock", response_model=List[LowStockRow])
async def low_stock(
    threshold: int = Query(LOW_STOCK_THRESHOLD, ge=0),
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.low_stock_products(db, threshold=threshold)


@router.get("/category-sales", response_model=List[CategorySalesRow])
async def category_sales(
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.category_sales(db)


@router.get("/users-without-orders", response_model=List[UserWithoutOrdersRow])
async def users_without_orders(
    db: Session = Depends(get_db),
    report_service: ReportService = Depends(get_report_service)
):
    return report_service.users_without_orders(db)
