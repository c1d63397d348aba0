"""Order management service."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from opentelemetry import trace

from errors import (
    ConflictError,
    InactiveUserError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    ShopError,
    ValidationError,
)
from models import ORDER_TRANSITIONS, Order, OrderItem, Product, User
from monitoring import (
    order_amount_histogram,
    order_status_changes_counter,
    orders_placed_counter,
    orders_rejected_counter,
)
from schemas import OrderCreate, OrderUpdate

logger = logging.getLogger(__name__)

# Shipping address is frozen once the parcel has left
ADDRESS_EDITABLE_STATUSES = {"pending", "confirmed"}


class OrderService:
    """Service for placing and managing orders."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def place_order(self, db: Session, data: OrderCreate) -> Order:
        """
        Place an order in a single transaction.

        Stock is taken with a conditional decrement, so two buyers racing
        for the last unit cannot both succeed. Each item records the
        product price at this moment, and the order total is the sum of
        quantity * price over those snapshots.

        Args:
            db: Database session
            data: Validated order payload

        Returns:
            The committed order with its items

        Raises:
            ValidationError: If the user or a product does not exist
            InactiveUserError: If the user is disabled
            InsufficientStockError: If a product cannot cover the quantity
        """
        span = trace.get_current_span()
        span.set_attribute("order.user_id", data.user_id)
        span.set_attribute("order.item_count", len(data.items))

        try:
            with self.tracer.start_as_current_span("db.transaction.place_order") as db_span:
                user = db.get(User, data.user_id)
                if user is None:
                    raise ValidationError(f"User {data.user_id} does not exist", field="user_id")
                if not user.is_active:
                    raise InactiveUserError(user.id)

                order = Order(
                    user_id=user.id,
                    status="pending",
                    shipping_address=data.shipping_address,
                    order_date=datetime.utcnow()
                )

                total_price = Decimal("0")
                for item in data.items:
                    unit_price = self._take_stock(db, item.product_id, item.quantity)
                    order.items.append(OrderItem(
                        product_id=item.product_id,
                        quantity=item.quantity,
                        price=unit_price
                    ))
                    total_price += unit_price * item.quantity

                order.total_price = total_price
                db.add(order)
                db.commit()

                db_span.set_attribute("order.id", order.id)
                db_span.set_attribute("order.total_price", float(total_price))
        except ShopError as e:
            db.rollback()
            orders_rejected_counter.add(1, {"reason": e.code})
            logger.warning("Order rejected", extra={
                "user_id": data.user_id,
                "reason": e.code,
                "error": e.message
            })
            raise
        except IntegrityError as e:
            db.rollback()
            orders_rejected_counter.add(1, {"reason": "constraint"})
            logger.warning("Order rejected by constraint", extra={
                "user_id": data.user_id,
                "error": str(e.orig)
            })
            raise ConflictError("Order violates a database constraint")
        except Exception as e:
            db.rollback()
            logger.error("Failed to create order", extra={
                "user_id": data.user_id,
                "error": str(e)
            })
            raise

        db.refresh(order)

        orders_placed_counter.add(1)
        order_amount_histogram.record(float(order.total_price))
        logger.info("Order placed", extra={
            "order_id": order.id,
            "user_id": order.user_id,
            "total_price": str(order.total_price),
            "item_count": len(order.items)
        })
        return order

    def _take_stock(self, db: Session, product_id: int, quantity: int) -> Decimal:
        """Decrement stock if enough is left and return the current unit price."""
        with self.tracer.start_as_current_span("db.query.update_product_stock") as update_span:
            update_span.set_attribute("db.operation", "UPDATE")
            update_span.set_attribute("product.id", product_id)
            update_span.set_attribute("quantity", quantity)

            result = db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock >= quantity)
                .values(stock=Product.stock - quantity, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            update_span.set_attribute("db.rows_affected", result.rowcount)

            if result.rowcount == 0:
                available = db.execute(
                    select(Product.stock).where(Product.id == product_id)
                ).scalar_one_or_none()
                if available is None:
                    raise ValidationError(f"Product {product_id} does not exist", field="product_id")
                raise InsufficientStockError(product_id, quantity, available)

            return db.execute(
                select(Product.price).where(Product.id == product_id)
            ).scalar_one()

    def list_orders(
        self,
        db: Session,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Order]:
        query = db.query(Order)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if status is not None:
            query = query.filter(Order.status == status)
        return query.order_by(Order.id).offset(skip).limit(limit).all()

    def get_order(self, db: Session, order_id: int) -> Order:
        order = db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def update_order(self, db: Session, order_id: int, data: OrderUpdate) -> Order:
        """
        Move an order along its lifecycle or change where it ships.

        The status change only applies if the row still holds the status
        that was read, so concurrent updates cannot both cancel an order.
        Cancelling returns every item quantity to stock in the same
        transaction. The order total is left as placed.
        """
        order = self.get_order(db, order_id)
        changes = data.model_dump(exclude_unset=True)
        status = order.status

        try:
            new_status = changes.get("status")
            if new_status is not None and new_status != status:
                if new_status not in ORDER_TRANSITIONS[status]:
                    raise InvalidStatusTransitionError(status, new_status)
                self._set_status(db, order, status, new_status)
                if new_status == "cancelled":
                    self._restock(db, order)
                order_status_changes_counter.add(1, {"from": status, "to": new_status})
                logger.info("Order status changed", extra={
                    "order_id": order.id,
                    "from_status": status,
                    "to_status": new_status
                })
                status = new_status

            if "shipping_address" in changes:
                if status not in ADDRESS_EDITABLE_STATUSES:
                    raise ConflictError(
                        f"Shipping address of a {status} order cannot change",
                        code="address_locked"
                    )
                result = db.execute(
                    update(Order)
                    .where(Order.id == order.id, Order.status.in_(ADDRESS_EDITABLE_STATUSES))
                    .values(shipping_address=changes["shipping_address"])
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise ConflictError("Order has already shipped", code="address_locked")

            db.commit()
        except ShopError:
            db.rollback()
            raise

        db.refresh(order)
        return order

    def _set_status(self, db: Session, order: Order, current: str, new_status: str) -> None:
        """Compare-and-set the status; a concurrent change makes this a conflict."""
        with self.tracer.start_as_current_span("db.query.update_order_status") as db_span:
            db_span.set_attribute("db.operation", "UPDATE")
            db_span.set_attribute("order.id", order.id)

            result = db.execute(
                update(Order)
                .where(Order.id == order.id, Order.status == current)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            )
            db_span.set_attribute("db.rows_affected", result.rowcount)

            if result.rowcount == 0:
                latest = db.execute(
                    select(Order.status).where(Order.id == order.id)
                ).scalar_one_or_none()
                raise InvalidStatusTransitionError(latest or current, new_status)

    def _restock(self, db: Session, order: Order) -> None:
        with self.tracer.start_as_current_span("db.query.restock_order_items") as db_span:
            db_span.set_attribute("order.id", order.id)
            for item in order.items:
                db.execute(
                    update(Product)
                    .where(Product.id == item.product_id)
                    .values(stock=Product.stock + item.quantity, updated_at=datetime.utcnow())
                    .execution_options(synchronize_session=False)
                )

    def delete_order(self, db: Session, order_id: int) -> None:
        """Delete an order and, by cascade, its items. Stock is not returned."""
        order = self.get_order(db, order_id)
        with self.tracer.start_as_current_span("db.transaction.delete_order") as db_span:
            db_span.set_attribute("order.id", order_id)
            db.delete(order)
            db.commit()
        logger.info("Order deleted", extra={"order_id": order_id})
