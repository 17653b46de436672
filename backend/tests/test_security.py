"""Tests for password hashing, bearer tokens and the error envelope."""

from datetime import timedelta

import bcrypt

from gastro.core.security import (
    create_access_token,
    decode_access_token,
    extract_bearer_token,
    get_password_hash,
)


class TestPasswordHashing:
    def test_hash_is_salted_bcrypt(self):
        hashed = get_password_hash("secret123")
        assert hashed != "secret123"
        assert hashed.startswith("$2b$")
        assert hashed != get_password_hash("secret123")
        assert bcrypt.checkpw(b"secret123", hashed.encode())
        assert not bcrypt.checkpw(b"wrong", hashed.encode())


class TestTokens:
    def test_roundtrip_claims(self):
        token = create_access_token({"sub": "42", "email": "a@example.com"})
        payload = decode_access_token(token)
        assert payload["sub"] == "42"
        assert "exp" in payload and "jti" in payload

    def test_expired_token(self):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-5))
        assert decode_access_token(token) is None

    def test_tampered_token(self):
        token = create_access_token({"sub": "42"})
        header_and_claims = token.rsplit(".", 1)[0]
        assert decode_access_token(header_and_claims + ".bm90LWEtc2lnbmF0dXJl") is None

    def test_extract_bearer_token(self):
        assert extract_bearer_token("Bearer abc") == "abc"
        assert extract_bearer_token("Basic abc") is None
        assert extract_bearer_token("Bearer ") is None
        assert extract_bearer_token(None) is None


class TestApiAuth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_expired_token_rejected(self, client, staff_user):
        token = create_access_token({"sub": str(staff_user.id)}, expires_delta=timedelta(minutes=-1))
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized", "message": "Invalid token"}

    def test_unknown_user_rejected(self, client, restaurant):
        token = create_access_token({"sub": "99999"})
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client, db_session, staff_user, staff_headers):
        staff_user.is_active = False
        db_session.commit()
        assert client.get("/api/v1/auth/me", headers=staff_headers).status_code == 401

    def test_validation_error_envelope(self, client, staff_headers, tomato):
        response = client.post(
            f"/api/v1/stock/items/{tomato.id}/withdraw",
            json={"reason": "waste"},
            headers=staff_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"
        assert "quantity" in response.json()["message"]
