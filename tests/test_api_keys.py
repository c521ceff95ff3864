"""
Tests for API key issuance, verification and management routes.
"""

from datetime import datetime, timedelta

import pytest

from app.core.errors import AuthenticationError, NotFoundError
from app.models.api_key import ApiKey
from app.services.api_keys import ApiKeyService, generate_api_key, hash_api_key
from tests.conftest import OTHER_USER_ID, USER_ID


def test_generated_key_format():
    key = generate_api_key()
    assert key.startswith("ak_")
    assert len(key) == 35
    assert hash_api_key(key) == hash_api_key(key)
    assert hash_api_key(key) != key


def test_create_stores_only_hash(db):
    record, plain_key = ApiKeyService(db).create(USER_ID, name="Production App")

    stored = db.get(ApiKey, record.id)
    assert stored.key_hash == hash_api_key(plain_key)
    assert stored.key_preview == "..." + plain_key[-4:]
    assert plain_key not in (stored.key_hash, stored.key_preview)


def test_verify_returns_owner(db):
    service = ApiKeyService(db)
    _, plain_key = service.create(USER_ID)

    assert service.verify(plain_key) == USER_ID


@pytest.mark.parametrize("key", [None, "", "sk_abcdef", "ak_" + "0" * 32])
def test_verify_rejects_unknown_keys(db, key):
    with pytest.raises(AuthenticationError):
        ApiKeyService(db).verify(key)


def test_verify_rejects_revoked_key(db):
    service = ApiKeyService(db)
    record, plain_key = service.create(USER_ID)
    service.revoke(USER_ID, record.id)

    with pytest.raises(AuthenticationError):
        service.verify(plain_key)


def test_verify_honours_expiry(db):
    service = ApiKeyService(db)
    _, expired = service.create(USER_ID, expires_at=datetime.utcnow() - timedelta(minutes=1))
    _, valid = service.create(USER_ID, expires_at=datetime.utcnow() + timedelta(days=1))

    with pytest.raises(AuthenticationError):
        service.verify(expired)
    assert service.verify(valid) == USER_ID


def test_revoke_other_users_key_is_not_found(db):
    service = ApiKeyService(db)
    record, _ = service.create(USER_ID)

    with pytest.raises(NotFoundError):
        service.revoke(OTHER_USER_ID, record.id)


def test_api_key_routes(client, auth_headers, other_auth_headers):
    created = client.post("/api/api-keys", headers=auth_headers, json={"name": "CI"})
    assert created.status_code == 201
    data = created.json()["data"]
    key_id = data["api_key"]["id"]
    assert data["plain_key"].startswith("ak_")
    assert data["api_key"]["key_preview"] == "..." + data["plain_key"][-4:]

    listed = client.get("/api/api-keys", headers=auth_headers).json()["data"]
    assert [k["id"] for k in listed] == [key_id]
    assert "plain_key" not in listed[0]
    assert client.get("/api/api-keys", headers=other_auth_headers).json()["data"] == []

    revoked = client.post(f"/api/api-keys/{key_id}/revoke", headers=auth_headers)
    assert revoked.json()["data"]["is_active"] is False

    assert client.delete(f"/api/api-keys/{key_id}", headers=other_auth_headers).status_code == 404
    assert client.delete(f"/api/api-keys/{key_id}", headers=auth_headers).status_code == 200
    assert client.get("/api/api-keys", headers=auth_headers).json()["data"] == []
