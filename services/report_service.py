"""Analytical query catalog.

Every report is a read-only function of the current table contents. Orderings
always end on an id so ties come back in the same order on every run.
Revenue ignores cancelled orders.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from opentelemetry import trace

from config import LOW_STOCK_THRESHOLD
from errors import ValidationError
from models import Order, OrderItem, Product, User

logger = logging.getLogger(__name__)

REPORTS = (
    "top-spenders",
    "product-revenue",
    "monthly-revenue",
    "low-stock",
    "category-sales",
    "users-without-orders",
)


def _month_bucket(dialect_name: str, column):
    if dialect_name == "sqlite":
        return func.strftime("%Y-%m", column)
    return func.to_char(column, "YYYY-MM")


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


class ReportService:
    """Runs the reporting queries."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def top_spenders(self, db: Session, limit: int = 10) -> List[Dict[str, Any]]:
        """Users ranked by lifetime spend; equal spend shares a rank."""
        total_spent = func.sum(Order.total_price)
        stmt = (
            select(
                User.id.label("user_id"),
                User.username,
                func.count(Order.id).label("order_count"),
                total_spent.label("total_spent"),
                func.rank().over(order_by=total_spent.desc()).label("rank"),
            )
            .join(Order, Order.user_id == User.id)
            .where(Order.status != "cancelled")
            .group_by(User.id, User.username)
            .order_by(total_spent.desc(), User.id)
            .limit(limit)
        )
        rows = self._run(db, "top_spenders", stmt)
        return [
            {**row, "total_spent": _money(row["total_spent"])}
            for row in rows
        ]

    def product_revenue_ranking(self, db: Session, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Products ranked by revenue from their snapshot prices."""
        revenue = func.sum(OrderItem.quantity * OrderItem.price)
        stmt = (
            select(
                Product.id.label("product_id"),
                Product.name,
                Product.category,
                func.sum(OrderItem.quantity).label("units_sold"),
                revenue.label("revenue"),
                func.dense_rank().over(order_by=revenue.desc()).label("rank"),
            )
            .join(OrderItem, OrderItem.product_id == Product.id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != "cancelled")
            .group_by(Product.id, Product.name, Product.category)
            .order_by(revenue.desc(), Product.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = self._run(db, "product_revenue_ranking", stmt)
        return [{**row, "revenue": _money(row["revenue"])} for row in rows]

    def monthly_revenue_growth(self, db: Session) -> List[Dict[str, Any]]:
        """
        Revenue per calendar month with month-over-month growth.

        growth_pct is None for the first month and whenever the previous
        month had no revenue.
        """
        dialect_name = db.get_bind().dialect.name

        # The bucket expression is computed once in a CTE so GROUP BY and
        # SELECT refer to the same column on every dialect.
        dated = (
            select(
                _month_bucket(dialect_name, Order.order_date).label("month"),
                Order.id.label("order_id"),
                Order.total_price.label("total_price"),
            )
            .where(Order.status != "cancelled")
            .cte("dated_orders")
        )
        monthly = (
            select(
                dated.c.month,
                func.count(dated.c.order_id).label("order_count"),
                func.sum(dated.c.total_price).label("revenue"),
            )
            .group_by(dated.c.month)
            .cte("monthly_revenue")
        )
        stmt = select(
            monthly.c.month,
            monthly.c.order_count,
            monthly.c.revenue,
            func.lag(monthly.c.revenue).over(order_by=monthly.c.month).label("previous_revenue"),
        ).order_by(monthly.c.month)

        result = []
        for row in self._run(db, "monthly_revenue_growth", stmt):
            revenue = Decimal(str(row["revenue"]))
            previous = row["previous_revenue"]
            growth_pct = None
            if previous is not None and Decimal(str(previous)) != 0:
                previous = Decimal(str(previous))
                growth_pct = float(((revenue - previous) / previous * 100).quantize(Decimal("0.01")))
            result.append({
                "month": row["month"],
                "order_count": row["order_count"],
                "revenue": _money(revenue),
                "previous_revenue": _money(previous) if previous is not None else None,
                "growth_pct": growth_pct,
            })
        return result

    def low_stock_products(self, db: Session, threshold: int = LOW_STOCK_THRESHOLD) -> List[Dict[str, Any]]:
        """Products whose stock is below the threshold, scarcest first."""
        stmt = (
            select(
                Product.id.label("product_id"),
                Product.name,
                Product.category,
                Product.stock,
            )
            .where(Product.stock < threshold)
            .order_by(Product.stock, Product.id)
        )
        return self._run(db, "low_stock_products", stmt)

    def category_sales(self, db: Session) -> List[Dict[str, Any]]:
        revenue = func.sum(OrderItem.quantity * OrderItem.price)
        stmt = (
            select(
                Product.category,
                func.sum(OrderItem.quantity).label("units_sold"),
                revenue.label("revenue"),
                func.sum(revenue).over().label("grand_total"),
            )
            .join(OrderItem, OrderItem.product_id == Product.id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != "cancelled")
            .group_by(Product.category)
            .order_by(revenue.desc(), Product.category)
        )
        result = []
        for row in self._run(db, "category_sales", stmt):
            revenue_value = Decimal(str(row["revenue"]))
            grand_total = Decimal(str(row["grand_total"]))
            share = revenue_value / grand_total * 100 if grand_total else Decimal("0")
            result.append({
                "category": row["category"],
                "units_sold": row["units_sold"],
                "revenue": _money(revenue_value),
                "revenue_share_pct": float(share.quantize(Decimal("0.01"))),
            })
        return result

    def users_without_orders(self, db: Session) -> List[Dict[str, Any]]:
        stmt = (
            select(
                User.id.label("user_id"),
                User.username,
                User.email,
                User.created_at,
            )
            .outerjoin(Order, Order.user_id == User.id)
            .where(Order.id.is_(None))
            .order_by(User.id)
        )
        return self._run(db, "users_without_orders", stmt)

    def run(self, db: Session, name: str, **params) -> List[Dict[str, Any]]:
        """Run a report by its public name."""
        handlers = {
            "top-spenders": self.top_spenders,
            "product-revenue": self.product_revenue_ranking,
            "monthly-revenue": self.monthly_revenue_growth,
            "low-stock": self.low_stock_products,
            "category-sales": self.category_sales,
            "users-without-orders": self.users_without_orders,
        }
        if name not in handlers:
            raise ValidationError(f"Unknown report {name}", field="name")
        return handlers[name](db, **params)

    def _run(self, db: Session, report: str, stmt) -> List[Dict[str, Any]]:
        with self.tracer.start_as_current_span(f"db.report.{report}") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            rows = [dict(row) for row in db.execute(stmt).mappings()]
            db_span.set_attribute("db.rows_returned", len(rows))
        logger.debug("Report executed", extra={"report": report, "rows": len(rows)})
        return rows
