"""
Unit Tests for Security Module
Tests for: JWT access tokens issued by the identity service
"""
import pytest
from datetime import timedelta
from jose import jwt
from fastapi import HTTPException

from gatepass.core.config import settings
from gatepass.core.security import (
    create_access_token,
    decode_token,
    decode_access_subject,
)


class TestJWTTokens:
    """Test JWT token functions"""

    def test_create_access_token_sets_type_and_expiry(self):
        token = create_access_token({'sub': 'user-123'})

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])

        assert payload['sub'] == 'user-123'
        assert payload['type'] == 'access'
        assert 'exp' in payload

    def test_decode_valid_token(self):
        token = create_access_token({'sub': 'user-123'})

        assert decode_token(token)['sub'] == 'user-123'

    def test_decode_invalid_token_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token('not.a.token')

        assert exc_info.value.status_code == 401

    def test_decode_expired_token_raises_401(self):
        token = create_access_token({'sub': 'user-123'}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401

    def test_token_signed_with_other_secret_rejected(self):
        token = jwt.encode({'sub': 'user-123', 'type': 'access'}, 'another-secret', algorithm='HS256')

        with pytest.raises(HTTPException):
            decode_token(token)


class TestAccessSubject:
    """Test the non-raising decoder used by WebSockets"""

    def test_valid_token_returns_subject(self):
        assert decode_access_subject(create_access_token({'sub': 'user-123'})) == 'user-123'

    def test_invalid_token_returns_none(self):
        assert decode_access_subject('garbage') is None

    def test_non_access_token_returns_none(self):
        token = jwt.encode({'sub': 'user-123', 'type': 'refresh'}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

        assert decode_access_subject(token) is None
