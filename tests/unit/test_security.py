"""Unit tests for bearer token verification."""
import pytest
from datetime import timedelta
from unittest.mock import Mock

import jwt
from fastapi import HTTPException

from app.core import config
from app.core.security import (
    create_access_token,
    get_current_identity,
    get_wallet_identity,
    verify_bearer_token,
)

WALLET = "0x" + "a" * 40


def _request(authorization=None):
    request = Mock()
    request.headers = {"Authorization": authorization} if authorization else {}
    return request


@pytest.mark.unit
class TestVerifyBearerToken:

    def test_valid_token_with_fid_and_address(self):
        token = create_access_token({"fid": 4021, "address": WALLET.upper().replace("0X", "0x"), "username": "alice"})

        result = verify_bearer_token(f"Bearer {token}")

        assert result.authenticated
        assert result.identity.primary_key == "4021"
        assert result.identity.wallet_address == WALLET
        assert result.identity.username == "alice"

    def test_bare_token_without_prefix(self):
        token = create_access_token({"sub": "user-1"})
        result = verify_bearer_token(token)

        assert result.authenticated
        assert result.identity.primary_key == "user-1"
        assert result.identity.wallet_address is None

    def test_custody_address_fallback(self):
        token = create_access_token({"fid": 1, "custody_address": WALLET})
        assert verify_bearer_token(token).identity.wallet_address == WALLET

    def test_missing_credential(self):
        result = verify_bearer_token(None)
        assert not result.authenticated
        assert result.error == "No token provided"

    def test_expired_token(self):
        token = create_access_token({"fid": 1}, expires_delta=timedelta(seconds=-1))
        result = verify_bearer_token(token)

        assert not result.authenticated
        assert result.error == "Token expired"

    def test_wrong_signature(self):
        token = jwt.encode({"fid": 1}, "not-the-secret", algorithm=config.settings.ALGORITHM)
        result = verify_bearer_token(token)

        assert not result.authenticated
        assert result.error == "Invalid token"

    def test_missing_user_key(self):
        token = create_access_token({"address": WALLET})
        result = verify_bearer_token(token)

        assert not result.authenticated
        assert "missing user key" in result.error

    def test_malformed_wallet(self):
        token = create_access_token({"fid": 1, "address": "0x1234"})
        result = verify_bearer_token(token)

        assert not result.authenticated
        assert "wallet" in result.error


@pytest.mark.unit
class TestIdentityDependencies:

    def test_get_current_identity(self):
        token = create_access_token({"fid": 7})
        identity = get_current_identity(_request(f"Bearer {token}"))
        assert identity.primary_key == "7"

    def test_get_current_identity_unauthenticated(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_identity(_request())
        assert exc_info.value.status_code == 401

    def test_wallet_identity_requires_wallet(self):
        token = create_access_token({"fid": 7})
        with pytest.raises(HTTPException) as exc_info:
            get_wallet_identity(_request(f"Bearer {token}"))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Wallet address required"
