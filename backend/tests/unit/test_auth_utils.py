import time
from types import SimpleNamespace

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core import auth_utils

SECRET = "unit-test-jwt-secret"


def _token(payload: dict, *, secret: str = SECRET, algorithm: str = "HS256") -> str:
    base = {"aud": "authenticated", "exp": int(time.time()) + 3600}
    return jwt.encode({**base, **payload}, secret, algorithm=algorithm)


def _creds(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_missing_credentials_is_401():
    with pytest.raises(HTTPException) as exc:
        await auth_utils.get_current_user(None)
    assert exc.value.status_code == 401
    assert exc.value.detail == "Not authenticated"


@pytest.mark.asyncio
async def test_hs256_token_decoded_locally(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)

    def _no_network(_token):
        raise AssertionError("Auth API should not be called")

    monkeypatch.setattr(auth_utils, "supabase", SimpleNamespace(auth=SimpleNamespace(get_user=_no_network)))

    user = await auth_utils.get_current_user(_creds(_token({"sub": "user-1", "email": "u@example.com"})))
    assert user == {"id": "user-1", "email": "u@example.com"}


@pytest.mark.asyncio
async def test_missing_sub_rejected(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)
    with pytest.raises(HTTPException) as exc:
        await auth_utils.get_current_user(_creds(_token({"email": "u@example.com"})))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token payload"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, secret",
    [
        ({"sub": "user-1", "exp": int(time.time()) - 60}, SECRET),
        ({"sub": "user-1"}, "another-secret"),
        ({"sub": "user-1", "aud": "anon"}, SECRET),
    ],
)
async def test_invalid_hs256_tokens_rejected(monkeypatch, payload, secret):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)
    with pytest.raises(HTTPException) as exc:
        await auth_utils.get_current_user(_creds(_token(payload, secret=secret)))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Token is invalid or expired"


@pytest.mark.asyncio
async def test_falls_back_to_auth_api_without_secret(monkeypatch):
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
    fake_supabase = SimpleNamespace(
        auth=SimpleNamespace(
            get_user=lambda _token: SimpleNamespace(user=SimpleNamespace(id="user-2", email="v@example.com"))
        )
    )
    monkeypatch.setattr(auth_utils, "supabase", fake_supabase)

    user = await auth_utils.get_current_user(_creds(_token({"sub": "ignored"})))
    assert user == {"id": "user-2", "email": "v@example.com"}


@pytest.mark.asyncio
async def test_fallback_failure_is_401(monkeypatch):
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)

    def boom(_token):
        raise RuntimeError("boom")

    monkeypatch.setattr(auth_utils, "supabase", SimpleNamespace(auth=SimpleNamespace(get_user=boom)))

    with pytest.raises(HTTPException) as exc:
        await auth_utils.get_current_user(_creds(_token({"sub": "user-1"})))
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_fallback_without_user_is_401(monkeypatch):
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
    monkeypatch.setattr(
        auth_utils,
        "supabase",
        SimpleNamespace(auth=SimpleNamespace(get_user=lambda _token: SimpleNamespace(user=None))),
    )

    with pytest.raises(HTTPException) as exc:
        await auth_utils.get_current_user(_creds(_token({"sub": "user-1"})))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token payload"
