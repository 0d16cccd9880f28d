"""
Unit test for JWT authentication
"""

import pytest
from datetime import timedelta
import uuid
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from detailbook.core.auth import create_access_token, verify_token, decode_access_token
from detailbook.core.config import get_settings
from detailbook.core.dependencies import get_tenant_id

settings = get_settings()


def test_create_access_token():
    """Test JWT token creation"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()

    token = create_access_token(
        user_id=user_id,
        tenant_id=tenant_id,
        role="owner",
        expires_delta=timedelta(hours=24)
    )

    assert isinstance(token, str)

    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["tenant_id"] == str(tenant_id)
    assert payload["role"] == "owner"
    assert "exp" in payload


def test_verify_token_returns_tenant_id():
    tenant_id = uuid.uuid4()
    token = create_access_token(user_id=uuid.uuid4(), tenant_id=tenant_id)

    assert verify_token(token) == tenant_id


def test_verify_invalid_token():
    """Test token verification with invalid token"""
    assert verify_token("invalid.token.string.here") is None


def test_expired_token():
    """Test that expired tokens are rejected"""
    token = create_access_token(
        user_id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        expires_delta=timedelta(hours=-1)
    )

    assert decode_access_token(token) is None
    assert verify_token(token) is None


def test_token_signed_with_other_secret_rejected():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "tenant_id": str(uuid.uuid4())},
        "another-secret",
        algorithm=settings.JWT_ALGORITHM,
    )

    assert verify_token(token) is None


def test_token_without_tenant_claim_rejected():
    token = jwt.encode({"sub": str(uuid.uuid4())}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    assert verify_token(token) is None


def test_get_tenant_id_dependency():
    tenant_id = uuid.uuid4()
    token = create_access_token(user_id=uuid.uuid4(), tenant_id=tenant_id)
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    assert get_tenant_id(credentials) == tenant_id


def test_get_tenant_id_dependency_rejects_bad_token():
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

    with pytest.raises(HTTPException) as exc_info:
        get_tenant_id(credentials)

    assert exc_info.value.status_code == 401
