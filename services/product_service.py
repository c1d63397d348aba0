"""Product catalog service."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from opentelemetry import trace

from errors import ConflictError, NotFoundError
from models import OrderItem, Product
from monitoring import constraint_violations_counter
from schemas import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


class ProductService:
    """Service for managing catalog products."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def list_products(
        self,
        db: Session,
        category: Optional[str] = None,
        q: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Product]:
        """
        List products, optionally filtered.

        Args:
            db: Database session
            category: Exact category match
            q: Case-insensitive substring of the product name
            skip: Rows to skip
            limit: Maximum rows to return
        """
        query = db.query(Product)
        if category:
            query = query.filter(Product.category == category)
        if q:
            query = query.filter(Product.name.ilike(f"%{q}%"))
        return query.order_by(Product.id).offset(skip).limit(limit).all()

    def get_product(self, db: Session, product_id: int) -> Product:
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def create_product(self, db: Session, data: ProductCreate) -> Product:
        product = Product(**data.model_dump())
        db.add(product)
        self._commit(db)
        db.refresh(product)

        logger.info("Product created", extra={
            "product_id": product.id,
            "category": product.category,
            "stock": product.stock
        })
        return product

    def update_product(self, db: Session, product_id: int, data: ProductUpdate) -> Product:
        """Apply a partial update; a later price change never touches placed order items."""
        product = self.get_product(db, product_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(product, field, value)

        self._commit(db)
        db.refresh(product)

        logger.info("Product updated", extra={"product_id": product.id, "fields": sorted(changes)})
        return product

    def delete_product(self, db: Session, product_id: int) -> None:
        """
        Delete a product that no order refers to.

        Raises:
            NotFoundError: If the product does not exist
            ConflictError: If any order item still references the product
        """
        product = self.get_product(db, product_id)

        with self.tracer.start_as_current_span("db.transaction.delete_product") as db_span:
            db_span.set_attribute("product.id", product_id)

            referenced = db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
            if referenced is not None:
                constraint_violations_counter.add(1, {"table": "products", "rule": "order_items_fk"})
                raise ConflictError(
                    f"Product {product_id} is referenced by existing orders",
                    code="product_in_use"
                )

            db.delete(product)
            self._commit(db)

        logger.info("Product deleted", extra={"product_id": product_id})

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            constraint_violations_counter.add(1, {"table": "products"})
            logger.warning("Product write rejected by constraint", extra={"error": str(e.orig)})
            raise ConflictError("Product violates a database constraint")
