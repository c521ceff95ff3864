"""
Tests for session tokens and webhook secret checks.
"""

from datetime import timedelta

import pytest

from app.core.config import settings
from app.core.errors import AuthenticationError
from app.core.security import create_access_token, decode_user_id, verify_webhook_token


def test_token_round_trip():
    assert decode_user_id(create_access_token("user-9")) == "user-9"


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_invalid_tokens(token):
    with pytest.raises(AuthenticationError):
        decode_user_id(token)


def test_expired_token():
    token = create_access_token("user-9", expires_delta=timedelta(seconds=-10))
    with pytest.raises(AuthenticationError):
        decode_user_id(token)


def test_token_signed_with_other_secret(monkeypatch):
    token = create_access_token("user-9")
    monkeypatch.setattr(settings, "SECRET_KEY", "rotated")
    with pytest.raises(AuthenticationError):
        decode_user_id(token)


def test_webhook_token():
    verify_webhook_token(settings.WEBHOOK_TOKEN)

    for header in (None, "", "nope"):
        with pytest.raises(AuthenticationError):
            verify_webhook_token(header)
