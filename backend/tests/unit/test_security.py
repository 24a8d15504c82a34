import pytest
from fastapi import HTTPException

from app.core.security import require_admin_key


@pytest.mark.asyncio
async def test_admin_key_not_configured(monkeypatch):
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    with pytest.raises(HTTPException) as exc:
        await require_admin_key("anything")
    assert exc.value.status_code == 401
    assert exc.value.detail == "Admin key not configured"


@pytest.mark.asyncio
@pytest.mark.parametrize("provided", [None, "", "wrong"])
async def test_admin_key_rejected(monkeypatch, provided):
    monkeypatch.setenv("ADMIN_API_KEY", "cron-key")
    with pytest.raises(HTTPException) as exc:
        await require_admin_key(provided)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_admin_key_accepted(monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "cron-key")
    assert await require_admin_key("cron-key") is None
