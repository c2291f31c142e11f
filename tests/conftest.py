"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
database     — fresh in-memory MongoDB (mongomock-motor) per test
client       — TestClient over an app bound to ``database``
register     — helper registering a user through the API, returns the token
user_token   — token of a regular customer
admin_token  — token of an administrator
make_product — helper creating a product through the admin API, returns its id
product_id   — id of a default product
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from techit.main import create_app


@pytest.fixture
def database():
    return AsyncMongoMockClient()[f"techit_test_{uuid4().hex}"]


@pytest.fixture
def app(database):
    return create_app(database)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def auth(token: str) -> dict:
    return {"Authorization": token}


@pytest.fixture
def register(client):
    def _register(name="Dana Levi", email="dana@techit.co.il", password="Passw0rd!", isAdmin=False):
        response = client.post(
            "/api/users",
            json={"name": name, "email": email, "password": password, "isAdmin": isAdmin},
        )
        assert response.status_code == 201, response.text
        return response.text

    return _register


@pytest.fixture
def user_token(register):
    return register()


@pytest.fixture
def admin_token(register):
    return register(name="Admin", email="admin@techit.co.il", isAdmin=True)


@pytest.fixture
def make_product(client, admin_token):
    def _make_product(**overrides):
        body = {
            "name": "Laptop Pro 14",
            "price": 4999.9,
            "category": "Laptops",
            "description": "14 inch laptop",
            "quantity": 5,
        }
        body.update(overrides)
        response = client.post("/api/products", json=body, headers=auth(admin_token))
        assert response.status_code == 201, response.text
        return response.json()["_id"]

    return _make_product


@pytest.fixture
def product_id(make_product):
    return make_product()
