"""Synthetic catalog, users and orders for demos and local development."""
import logging
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict

from faker import Faker
from sqlalchemy.orm import Session

from errors import InsufficientStockError
from models import Order
from schemas import OrderCreate, OrderItemCreate, ProductCreate, UserCreate
from services.order_service import OrderService
from services.product_service import ProductService
from services.user_service import UserService

logger = logging.getLogger(__name__)

PRODUCT_TEMPLATES = [
    ("Laptop", "Electronics", 699.99, 1499.99),
    ("Smartphone", "Electronics", 299.99, 999.99),
    ("Headphones", "Electronics", 49.99, 299.99),
    ("Monitor", "Electronics", 149.99, 599.99),
    ("Keyboard", "Electronics", 29.99, 199.99),
    ("Desk Chair", "Furniture", 99.99, 449.99),
    ("Standing Desk", "Furniture", 249.99, 799.99),
    ("Bookshelf", "Furniture", 59.99, 249.99),
    ("Running Shoes", "Sports", 49.99, 199.99),
    ("Yoga Mat", "Sports", 19.99, 79.99),
    ("Coffee Maker", "Home", 29.99, 199.99),
    ("Blender", "Home", 29.99, 149.99),
    ("Programming Book", "Books", 29.99, 79.99),
    ("Novel", "Books", 9.99, 29.99),
]

HISTORY_STATUSES = ["pending", "confirmed", "shipped", "delivered"]


def load_sample_data(
    db: Session,
    users: int = 20,
    products: int = 30,
    orders: int = 60,
    seed: int = 42
) -> Dict[str, int]:
    """
    Populate the database through the service layer.

    Orders go through the real placement path, so stock, snapshot prices
    and totals obey the same rules as API traffic. Order dates are spread
    over the past year to give the monthly reports something to show.

    Returns:
        Counts of rows created per entity
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    user_service = UserService()
    product_service = ProductService()
    order_service = OrderService()

    user_ids = []
    for _ in range(users):
        user = user_service.create_user(db, UserCreate(
            username=fake.unique.user_name()[:50],
            email=fake.unique.email(),
            password=fake.password(length=12),
            first_name=fake.first_name(),
            last_name=fake.last_name()
        ))
        user_ids.append(user.id)

    product_ids = []
    for _ in range(products):
        name, category, low, high = rng.choice(PRODUCT_TEMPLATES)
        product = product_service.create_product(db, ProductCreate(
            name=f"{fake.color_name()} {name}"[:100],
            description=fake.sentence(),
            price=Decimal(str(round(rng.uniform(low, high), 2))),
            category=category,
            stock=rng.randint(0, 120)
        ))
        product_ids.append(product.id)

    placed = 0
    now = datetime.utcnow()
    for _ in range(orders if user_ids and product_ids else 0):
        picks = rng.sample(product_ids, k=min(len(product_ids), rng.randint(1, 4)))
        payload = OrderCreate(
            user_id=rng.choice(user_ids),
            shipping_address=fake.address().replace("\n", ", "),
            items=[OrderItemCreate(product_id=pid, quantity=rng.randint(1, 3)) for pid in picks]
        )
        try:
            order = order_service.place_order(db, payload)
        except InsufficientStockError:
            continue

        # Backdate and advance directly: demo history, not a lifecycle replay
        db.query(Order).filter(Order.id == order.id).update({
            Order.order_date: now - timedelta(days=rng.randint(0, 365)),
            Order.status: rng.choice(HISTORY_STATUSES)
        })
        db.commit()
        placed += 1

    counts = {"users": len(user_ids), "products": len(product_ids), "orders": placed}
    logger.info("Loaded sample data", extra=counts)
    return counts