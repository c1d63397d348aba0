"""Tests for the products API."""


def test_create_and_fetch_product(client, make_product):
    product = make_product(name="Widget", price=9.99, stock=5)

    response = client.get(f"/api/products/{product['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Widget"
    assert body["price"] == 9.99
    assert body["stock"] == 5


def test_price_must_be_positive(client):
    for price in (0, -1):
        response = client.post("/api/products", json={
            "name": "Freebie",
            "price": price,
            "stock": 1,
            "category": "Misc",
        })
        assert response.status_code == 400


def test_stock_cannot_be_negative(client):
    response = client.post("/api/products", json={
        "name": "Ghost",
        "price": 1.50,
        "stock": -1,
        "category": "Misc",
    })

    assert response.status_code == 400


def test_price_with_too_many_decimals_is_rejected(client):
    response = client.post("/api/products", json={
        "name": "Odd",
        "price": "1.999",
        "stock": 1,
        "category": "Misc",
    })

    assert response.status_code == 400


def test_list_filters_by_category_and_name(client, make_product):
    make_product(name="Blue Widget", category="Gadgets")
    make_product(name="Red Widget", category="Toys")
    make_product(name="Gizmo", category="Gadgets")

    gadgets = client.get("/api/products", params={"category": "Gadgets"}).json()
    widgets = client.get("/api/products", params={"q": "widget"}).json()

    assert [p["name"] for p in gadgets] == ["Blue Widget", "Gizmo"]
    assert [p["name"] for p in widgets] == ["Blue Widget", "Red Widget"]


def test_update_product_partially(client, make_product):
    product = make_product(price=9.99, stock=5)

    response = client.put(f"/api/products/{product['id']}", json={"stock": 12})

    assert response.status_code == 200
    assert response.json()["stock"] == 12
    assert response.json()["price"] == 9.99


def test_update_rejects_negative_stock(client, make_product):
    product = make_product()

    response = client.put(f"/api/products/{product['id']}", json={"stock": -3})

    assert response.status_code == 400


def test_update_unknown_product_returns_404(client):
    response = client.put("/api/products/42", json={"stock": 1})

    assert response.status_code == 404


def test_delete_unreferenced_product(client, make_product):
    product = make_product()

    response = client.delete(f"/api/products/{product['id']}")

    assert response.status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_delete_product_on_an_order_is_blocked(client, make_user, make_product):
    user = make_user()
    product = make_product(stock=5)
    client.post("/api/orders", json={
        "user_id": user["id"],
        "items": [{"product_id": product["id"], "quantity": 1}],
    })

    response = client.delete(f"/api/products/{product['id']}")

    assert response.status_code == 409
    assert response.json()["error"] == "product_in_use"
    assert client.get(f"/api/products/{product['id']}").status_code == 200


def test_update_with_null_for_required_field_returns_400(client, make_product):
    product = make_product(price=9.99, stock=5)

    for field in ("name", "price", "category", "stock"):
        response = client.put(f"/api/products/{product['id']}", json={field: None})
        assert response.status_code == 400, field
        assert response.json()["error"] == "validation_error"

    assert client.get(f"/api/products/{product['id']}").json()["price"] == 9.99
