"""
Bug Tracker
Tests — User API (registration, login, lookup) and JWT handling.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from bugtracker.models.user import User
from bugtracker.services.jwt_service import decode_access_token, generate_access_token
from bugtracker.utils.crypto import verify_password


def _secret(app):
    return app.config.get("JWT_SECRET_KEY") or app.config["SECRET_KEY"]


def _register(client, **overrides):
    payload = {"name": "Alice Tester", "email": "alice@example.com", "password": "s3cret!"}
    payload.update(overrides)
    return client.post("/api/users/register", json=payload)


class TestRegister:
    def test_register_defaults_to_reporter(self, client):
        res = _register(client)
        assert res.status_code == 201
        body = res.get_json()
        assert body["role"] == "reporter"
        assert body["email"] == "alice@example.com"
        assert "password_hash" not in body
        assert "password" not in body

        user = User.query.filter_by(email="alice@example.com").one()
        assert user.password_hash != "s3cret!"
        assert verify_password("s3cret!", user.password_hash)

    def test_register_with_role(self, client):
        res = _register(client, role="developer")
        assert res.get_json()["role"] == "developer"

    def test_duplicate_email_conflict(self, client):
        assert _register(client).status_code == 201
        res = _register(client, name="Alice Again")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_email_normalised_before_duplicate_check(self, client):
        assert _register(client, email="alice@EXAMPLE.com").status_code == 201
        assert _register(client, email="alice@example.com").status_code == 409

    @pytest.mark.parametrize("overrides,field", [
        ({"name": "A"}, "name"),
        ({"email": "not-an-email"}, "email"),
        ({"password": "12345"}, "password"),
        ({"role": "superuser"}, "role"),
    ])
    def test_validation(self, client, overrides, field):
        res = _register(client, **overrides)
        assert res.status_code == 400
        assert field in res.get_json()["error"].lower()


class TestLogin:
    def test_login_returns_token(self, client, app):
        _register(client, role="developer")
        res = client.post("/api/users/login",
                          json={"email": "alice@example.com", "password": "s3cret!"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["user"]["role"] == "developer"

        payload = decode_access_token(body["token"])
        assert payload["sub"] == str(body["user"]["id"])
        assert payload["role"] == "developer"
        assert payload["type"] == "access"
        lifetime = payload["exp"] - payload["iat"]
        assert lifetime == app.config["JWT_ACCESS_EXPIRES"] == 86400

    @pytest.mark.parametrize("email,password", [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", "s3cret!"),
    ])
    def test_bad_credentials(self, client, email, password):
        _register(client)
        res = client.post("/api/users/login", json={"email": email, "password": password})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid credentials"

    def test_missing_password(self, client):
        res = client.post("/api/users/login", json={"email": "alice@example.com"})
        assert res.status_code == 400


class TestTokens:
    def test_expired_token_rejected(self, client, app, reporter):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(reporter.id), "email": reporter.email, "role": "reporter",
             "type": "access", "iat": now - timedelta(days=2), "exp": now - timedelta(days=1)},
            _secret(app), algorithm="HS256",
        )
        res = client.get("/api/users", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Token expired"

    def test_wrong_token_type_rejected(self, app, reporter):
        token = jwt.encode({"sub": str(reporter.id), "type": "refresh"},
                           _secret(app), algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)

    def test_generate_round_trip(self, reporter):
        token = generate_access_token(reporter.id, reporter.email, reporter.role)
        assert decode_access_token(token)["email"] == "bob@example.com"


class TestUserLookup:
    def test_list_users(self, client, admin, developer, reporter, auth_headers):
        res = client.get("/api/users", headers=auth_headers(reporter))
        assert res.status_code == 200
        assert [u["email"] for u in res.get_json()] == [
            "admin@example.com", "john@example.com", "bob@example.com",
        ]

    def test_get_user(self, client, developer, auth_headers):
        res = client.get(f"/api/users/{developer.id}", headers=auth_headers(developer))
        assert res.get_json()["name"] == "John Developer"

    def test_get_user_not_found(self, client, developer, auth_headers):
        res = client.get("/api/users/999", headers=auth_headers(developer))
        assert res.status_code == 404

    def test_requires_auth(self, client):
        assert client.get("/api/users").status_code == 401
