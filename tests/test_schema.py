"""Engine-level constraint tests: the rules hold even when the API is bypassed."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from cli import render_schema
from models import Order, OrderItem, Product, User


def _user(**overrides):
    values = {"username": "alice", "email": "a@x.com", "password_hash": "x"}
    values.update(overrides)
    return User(**values)


def _product(**overrides):
    values = {"name": "Widget", "price": Decimal("9.99"), "stock": 5, "category": "Gadgets"}
    values.update(overrides)
    return Product(**values)


@pytest.mark.parametrize("field,value", [
    ("price", Decimal("0")),
    ("price", Decimal("-1.00")),
    ("stock", -1),
])
def test_product_checks(db, field, value):
    db.add(_product(**{field: value}))
    with pytest.raises(IntegrityError):
        db.commit()


def test_unique_username_and_email(db):
    db.add(_user())
    db.commit()

    db.add(_user(email="other@x.com"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    db.add(_user(username="bob"))
    with pytest.raises(IntegrityError):
        db.commit()


def test_order_status_check(db):
    user = _user()
    db.add(user)
    db.commit()

    db.add(Order(user_id=user.id, total_price=Decimal("1.00"), status="lost"))
    with pytest.raises(IntegrityError):
        db.commit()


def test_order_item_quantity_check(db):
    user, product = _user(), _product()
    db.add_all([user, product])
    db.commit()
    order = Order(user_id=user.id, total_price=Decimal("0.00"))
    order.items.append(OrderItem(product_id=product.id, quantity=0, price=Decimal("9.99")))
    db.add(order)

    with pytest.raises(IntegrityError):
        db.commit()


def test_order_requires_existing_user(db):
    db.add(Order(user_id=12345, total_price=Decimal("1.00")))
    with pytest.raises(IntegrityError):
        db.commit()


def test_referenced_product_delete_is_restricted(db):
    user, product = _user(), _product()
    db.add_all([user, product])
    db.commit()
    order = Order(user_id=user.id, total_price=Decimal("9.99"))
    order.items.append(OrderItem(product_id=product.id, quantity=1, price=Decimal("9.99")))
    db.add(order)
    db.commit()

    db.delete(product)
    with pytest.raises(IntegrityError):
        db.commit()


def test_expected_indexes_exist(engine):
    inspector = inspect(engine)
    names = {
        index["name"]
        for table in ("users", "products", "orders", "order_items")
        for index in inspector.get_indexes(table)
    }

    assert {
        "idx_users_email",
        "idx_users_username",
        "idx_products_category",
        "idx_products_name",
        "idx_orders_user",
        "idx_orders_date",
    } <= names


def test_rendered_postgres_ddl_carries_constraints():
    ddl = render_schema("postgresql")

    assert "CREATE TABLE users" in ddl
    assert "CONSTRAINT price_positive CHECK (price > 0)" in ddl
    assert "CONSTRAINT valid_status CHECK" in ddl
    assert "ON DELETE CASCADE" in ddl
    assert "ON DELETE RESTRICT" in ddl
    assert "CREATE INDEX idx_orders_date ON orders (order_date)" in ddl
