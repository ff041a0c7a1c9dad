"""
Unit tests for JWT authentication and the auth endpoints
"""

import pytest
from datetime import timedelta
import uuid

from qrmenu.core.auth import (
    create_access_token, decode_access_token, hash_password, verify_password, verify_token,
)
from conftest import API, register


def test_create_access_token():
    """Test JWT token creation"""
    user_id = uuid.uuid4()

    token = create_access_token(user_id=user_id, role="owner", expires_delta=timedelta(hours=24))

    assert isinstance(token, str)
    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "owner"
    assert "exp" in payload


def test_verify_token_returns_user_id():
    user_id = uuid.uuid4()
    token = create_access_token(user_id=user_id, role="staff")

    assert verify_token(token) == user_id


def test_verify_invalid_token():
    """Test token verification with invalid token"""
    assert verify_token("invalid.token.string.here") is None


def test_expired_token():
    """Test that expired tokens are rejected"""
    token = create_access_token(user_id=uuid.uuid4(), role="owner", expires_delta=timedelta(hours=-1))

    assert decode_access_token(token) is None
    assert verify_token(token) is None


def test_password_hashing():
    password_hash = hash_password("s3cret-pass")

    assert password_hash != "s3cret-pass"
    assert verify_password("s3cret-pass", password_hash)
    assert not verify_password("wrong-pass", password_hash)


async def test_register_login_and_me(client):
    registered = await register(client, "chef@example.com", "password123")

    response = await client.post(f"{API}/auth/login", json={
        "email": "Chef@Example.com",
        "password": "password123",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "owner"
    assert body["user_id"] == registered["user_id"]

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert response.status_code == 200
    me = response.json()
    assert me["email"] == "chef@example.com"
    assert me["role"] == "owner"
    assert me["last_login_at"] is not None


async def test_register_duplicate_email(client):
    await register(client, "dup@example.com")

    response = await client.post(f"{API}/auth/register", json={
        "email": "dup@example.com",
        "password": "password123",
    })
    assert response.status_code == 400


async def test_login_wrong_password(client):
    await register(client, "someone@example.com")

    response = await client.post(f"{API}/auth/login", json={
        "email": "someone@example.com",
        "password": "not-the-password",
    })
    assert response.status_code == 401


async def test_me_requires_token(client):
    response = await client.get(f"{API}/auth/me")
    assert response.status_code in (401, 403)

    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


@pytest.mark.parametrize("password", ["short", ""])
async def test_register_rejects_weak_password(client, password):
    response = await client.post(f"{API}/auth/register", json={
        "email": "weak@example.com",
        "password": password,
    })
    assert response.status_code == 422
