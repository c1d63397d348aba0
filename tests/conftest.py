"""Pytest configuration for shop service tests."""

import os

# Must be set before any application module reads config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTEL_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["SEED_SAMPLE_DATA"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import build_engine, get_db
from main import app
from models import Base


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite file database per test, with the full schema applied."""
    engine = build_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests each get a session on the test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    def _make_user(username="alice", email=None, password="s3cret-pass"):
        response = client.post("/api/users", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _make_user


@pytest.fixture
def make_product(client):
    def _make_product(name="Widget", price=9.99, stock=5, category="Gadgets"):
        response = client.post("/api/products", json={
            "name": name,
            "price": price,
            "stock": stock,
            "category": category,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _make_product
