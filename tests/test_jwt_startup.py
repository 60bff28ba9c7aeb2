"""
tests/test_jwt_startup.py — Shared-Secret Checks & Bearer Decoding
===================================================================
Member tokens come from the external auth service, so the API only needs
the shared HS256 secret.  These tests cover the startup check on that
secret and the claims ``_decode_bearer`` insists on.
"""

from __future__ import annotations

import jwt
import pytest
from fastapi import HTTPException

from rallypoint.api import deps


def _bearer(payload: dict, secret: str | None = None) -> str:
    token = jwt.encode(payload, secret or deps.JWT_SECRET, algorithm=deps.JWT_ALGORITHM)
    return f"Bearer {token}"


class TestSharedSecret:
    @pytest.mark.parametrize(
        ("value", "message"),
        [
            (None, "Use the same value as the auth service"),
            ("", "Use the same value as the auth service"),
            ("rallypoint-dev-secret-change-me", "known weak default"),
            ("secret", "known weak default"),
            ("k" * 31, r"too short \(31 chars\); tokens need at least 32"),
        ],
    )
    def test_unusable_secret_stops_startup(self, monkeypatch, value, message):
        if value is None:
            monkeypatch.delenv("JWT_SECRET", raising=False)
        else:
            monkeypatch.setenv("JWT_SECRET", value)
        with pytest.raises(RuntimeError, match=message):
            deps._load_jwt_secret()

    def test_secret_of_minimum_length_accepted(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "k" * 32)
        assert deps._load_jwt_secret() == "k" * 32


class TestDecodeBearer:
    def test_valid_token_returns_claims(self):
        claims = deps._decode_bearer(_bearer({"sub": "user-1", "is_admin": False}))
        assert claims["sub"] == "user-1"

    @pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc"])
    def test_header_without_bearer_scheme(self, header):
        with pytest.raises(HTTPException) as exc_info:
            deps._decode_bearer(header)
        assert (exc_info.value.status_code, exc_info.value.detail) == (401, "Missing token")

    def test_token_signed_by_someone_else(self):
        header = _bearer({"sub": "user-1"}, secret="z" * 48)
        with pytest.raises(HTTPException) as exc_info:
            deps._decode_bearer(header)
        assert exc_info.value.detail == "Invalid token"

    @pytest.mark.parametrize("payload", [{}, {"sub": ""}, {"is_admin": True}])
    def test_token_without_subject(self, payload):
        with pytest.raises(HTTPException) as exc_info:
            deps._decode_bearer(_bearer(payload))
        assert (exc_info.value.status_code, exc_info.value.detail) == (
            401, "Token has no subject",
        )

    def test_admin_gate_needs_claim(self):
        with pytest.raises(HTTPException) as exc_info:
            deps.get_current_admin(_bearer({"sub": "user-1"}))
        assert exc_info.value.status_code == 403
        assert deps.get_current_admin(_bearer({"sub": "mod", "is_admin": True}))["sub"] == "mod"

    def test_subjectless_token_rejected_over_http(self, client):
        resp = client.get("/api/users/me", headers={"Authorization": _bearer({"name": "anon"})})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has no subject"
