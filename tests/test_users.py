"""Tests for registration, login and user administration routes."""

from __future__ import annotations

import asyncio

from bson import ObjectId

from techit.core.auth_utils import decode_token


def auth(token: str) -> dict:
    return {"Authorization": token}


class TestRegister:
    def test_returns_token_with_user_claims(self, client, register):
        token = register(isAdmin=True)
        payload = decode_token(token)
        assert ObjectId.is_valid(payload["_id"])
        assert payload["isAdmin"] is True

    def test_password_is_hashed(self, client, register, database):
        register(email="hash@techit.co.il", password="Secret123")
        user = asyncio.run(database["users"].find_one({"email": "hash@techit.co.il"}))
        assert user["password"] != "Secret123"
        assert user["password"].startswith("$2")

    def test_creates_empty_cart(self, client, user_token):
        response = client.get("/api/carts", headers=auth(user_token))
        assert response.status_code == 200
        assert response.json() == []

    def test_email_is_normalized(self, client, register):
        register(email="  Mixed@TechIt.co.il ")
        response = client.post(
            "/api/users/login", json={"email": "mixed@techit.co.il", "password": "Passw0rd!"}
        )
        assert response.status_code == 200

    def test_duplicate_email_rejected(self, client, register):
        register()
        response = client.post(
            "/api/users",
            json={"name": "Other", "email": "dana@techit.co.il", "password": "Passw0rd!", "isAdmin": False},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_short_password_rejected(self, client):
        response = client.post(
            "/api/users",
            json={"name": "Dana", "email": "dana@techit.co.il", "password": "short", "isAdmin": False},
        )
        assert response.status_code == 400
        assert "password" in response.json()["detail"]

    def test_is_admin_required(self, client):
        response = client.post(
            "/api/users",
            json={"name": "Dana", "email": "dana@techit.co.il", "password": "Passw0rd!"},
        )
        assert response.status_code == 400
        assert "isAdmin" in response.json()["detail"]


class TestLogin:
    def test_valid_credentials(self, client, register):
        register()
        response = client.post("/api/users/login", json={"email": "dana@techit.co.il", "password": "Passw0rd!"})
        assert response.status_code == 200
        assert decode_token(response.text)["isAdmin"] is False

    def test_wrong_password(self, client, register):
        register()
        response = client.post("/api/users/login", json={"email": "dana@techit.co.il", "password": "WrongPass1"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Email or password are incorrect"

    def test_unknown_email(self, client):
        response = client.post("/api/users/login", json={"email": "nobody@techit.co.il", "password": "Passw0rd!"})
        assert response.status_code == 400


class TestProfile:
    def test_profile_fields(self, client, user_token):
        response = client.get("/api/users/profile", headers=auth(user_token))
        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"_id", "email", "name", "isAdmin"}
        assert body["email"] == "dana@techit.co.il"

    def test_bearer_prefix_accepted(self, client, user_token):
        response = client.get("/api/users/profile", headers={"Authorization": f"Bearer {user_token}"})
        assert response.status_code == 200

    def test_missing_token(self, client):
        response = client.get("/api/users/profile")
        assert response.status_code == 401
        assert response.json()["detail"] == "Access denied. No token provided"

    def test_invalid_token(self, client):
        response = client.get("/api/users/profile", headers=auth("not-a-jwt"))
        assert response.status_code == 400


class TestAdministration:
    def test_list_users_hides_passwords(self, client, user_token, admin_token):
        response = client.get("/api/users/all", headers=auth(admin_token))
        assert response.status_code == 200
        users = response.json()
        assert [u["name"] for u in users] == ["Admin", "Dana Levi"]
        assert all("password" not in u for u in users)

    def test_list_users_requires_admin(self, client, user_token):
        response = client.get("/api/users/all", headers=auth(user_token))
        assert response.status_code == 403

    def test_update_role(self, client, user_token, admin_token):
        user_id = decode_token(user_token)["_id"]
        response = client.patch(f"/api/users/{user_id}/role", json={"isAdmin": True}, headers=auth(admin_token))
        assert response.status_code == 200

        login = client.post("/api/users/login", json={"email": "dana@techit.co.il", "password": "Passw0rd!"})
        assert decode_token(login.text)["isAdmin"] is True

    def test_update_role_requires_boolean(self, client, user_token, admin_token):
        user_id = decode_token(user_token)["_id"]
        response = client.patch(f"/api/users/{user_id}/role", json={"isAdmin": "yes"}, headers=auth(admin_token))
        assert response.status_code == 400

    def test_cannot_change_own_role(self, client, admin_token):
        admin_id = decode_token(admin_token)["_id"]
        response = client.patch(f"/api/users/{admin_id}/role", json={"isAdmin": False}, headers=auth(admin_token))
        assert response.status_code == 400

    def test_update_role_unknown_user(self, client, admin_token):
        response = client.patch(f"/api/users/{ObjectId()}/role", json={"isAdmin": True}, headers=auth(admin_token))
        assert response.status_code == 404

    def test_delete_user_removes_cart_and_favorites(self, client, database, user_token, admin_token, product_id):
        client.post("/api/favorites", json={"productId": product_id}, headers=auth(user_token))
        user_id = decode_token(user_token)["_id"]

        response = client.delete(f"/api/users/{user_id}", headers=auth(admin_token))
        assert response.status_code == 200

        assert asyncio.run(database["users"].count_documents({"_id": ObjectId(user_id)})) == 0
        assert asyncio.run(database["carts"].count_documents({"userId": ObjectId(user_id)})) == 0
        assert asyncio.run(database["favorites"].count_documents({"userId": ObjectId(user_id)})) == 0

    def test_cannot_delete_self(self, client, admin_token):
        admin_id = decode_token(admin_token)["_id"]
        response = client.delete(f"/api/users/{admin_id}", headers=auth(admin_token))
        assert response.status_code == 400

    def test_delete_requires_admin(self, client, user_token, admin_token):
        admin_id = decode_token(admin_token)["_id"]
        response = client.delete(f"/api/users/{admin_id}", headers=auth(user_token))
        assert response.status_code == 403

    def test_delete_invalid_id(self, client, admin_token):
        response = client.delete("/api/users/not-an-id", headers=auth(admin_token))
        assert response.status_code == 400
