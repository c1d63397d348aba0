"""Dependency injection for services."""
from services.order_service import OrderService
from services.product_service import ProductService
from services.report_service import ReportService
from services.user_service import UserService


def get_user_service() -> UserService:
    """Get user service instance."""
    return UserService()


def get_product_service() -> ProductService:
    """Get product service instance."""
    return ProductService()


def get_order_service() -> OrderService:
    """Get order service instance."""
    return OrderService()


def get_report_service() -> ReportService:
    """Get report service instance."""
    return ReportService()
