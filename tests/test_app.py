"""Tests for application-wide behaviour: health, unknown routes, validation and server errors."""

from __future__ import annotations

import asyncio
import logging

from fastapi.testclient import TestClient


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["uptime"] >= 0
    assert {"timestamp", "environment"} <= set(body)


def test_unknown_route(client):
    response = client.get("/api/nothing/here")
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}


def test_validation_errors_are_bad_requests(client):
    response = client.post("/api/users/login", json={"email": "not-an-email", "password": "Passw0rd!"})
    assert response.status_code == 400
    assert response.json()["detail"].startswith('"email"')


def test_unexpected_errors_are_logged_and_hidden(app, caplog):
    async def explode():
        raise RuntimeError("connection pool on fire")

    app.add_api_route("/api/explode", explode, methods=["GET"])
    # ahead of the catch-all 404 route
    app.router.routes.insert(0, app.router.routes.pop())

    with caplog.at_level(logging.ERROR, logger="techit.main"):
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/api/explode")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "connection pool on fire" not in response.text

    records = [r for r in caplog.records if r.name == "techit.main" and r.levelno == logging.ERROR]
    assert any(r.getMessage() == "Server error on GET /api/explode" for r in records)
    assert any(r.exc_info and r.exc_info[0] is RuntimeError for r in records)


def test_indexes_created(client, database):
    info = asyncio.run(database["favorites"].index_information())
    assert any(index.get("unique") for index in info.values())
