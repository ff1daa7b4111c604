from datetime import datetime, timedelta, timezone
from typing import Dict
from uuid import uuid4

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select

from app.auth.models import User
from app.auth.security import create_access_token, decode_access_token, hash_password, verify_password
from app.core.config import settings

ACTIVE_RANGE_URL = "/api/v1/student-numbers/range/active"


def test_password_hashing_roundtrip() -> None:
    hashed = hash_password("StrongPass123")
    assert hashed != "StrongPass123"
    assert verify_password("StrongPass123", hashed)
    assert not verify_password("WrongPass", hashed)
    assert not verify_password("StrongPass123", "not-a-bcrypt-hash")


def test_access_token_carries_subject() -> None:
    token = create_access_token(subject={"user_id": "abc", "role": "ADMIN"})
    payload = decode_access_token(token)
    assert payload["user_id"] == "abc"
    assert payload["role"] == "ADMIN"
    assert "exp" in payload


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient) -> None:
    response = await client.get(ACTIVE_RANGE_URL)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client: AsyncClient) -> None:
    response = await client.get(ACTIVE_RANGE_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client: AsyncClient, staff_user: User) -> None:
    expired = jwt.encode(
        {"user_id": str(staff_user.id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.get(ACTIVE_RANGE_URL, headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user_is_rejected(client: AsyncClient) -> None:
    token = create_access_token(subject={"user_id": str(uuid4())})
    response = await client.get(ACTIVE_RANGE_URL, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(
    client: AsyncClient, staff_user: User, staff_headers: Dict[str, str], session_factory
) -> None:
    async with session_factory() as s:
        user = (await s.execute(select(User).where(User.id == staff_user.id))).scalar_one()
        user.status = "SUSPENDED"
        await s.commit()

    response = await client.get(ACTIVE_RANGE_URL, headers=staff_headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sub_claim_is_accepted(client: AsyncClient, staff_user: User) -> None:
    token = create_access_token(subject={"sub": str(staff_user.id)})
    response = await client.get(ACTIVE_RANGE_URL, headers={"Authorization": f"Bearer {token}"})
    # Authenticated; no range exists yet
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_openapi_advertises_configured_token_url(client: AsyncClient) -> None:
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    schemes = response.json()["components"]["securitySchemes"]
    assert schemes["OAuth2PasswordBearer"]["flows"]["password"]["tokenUrl"] == settings.auth_token_url
    assert settings.auth_token_url == "https://identity.example.edu/oauth/token"
