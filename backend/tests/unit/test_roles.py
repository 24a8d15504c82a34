from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from app.core.role_matrix import (
    DECISION_READ_ROLES,
    DECISION_ROLES,
    EDITORIAL_ROLES,
    REVIEWER_ROLES,
    can_act,
    is_reviewer_capable,
)


def _mk_supabase_chain(select_data=None, error=None):
    mock = MagicMock()
    mock.table.return_value = mock
    mock.select.return_value = mock
    mock.eq.return_value = mock
    mock.limit.return_value = mock
    if error is not None:
        mock.execute.side_effect = error
    else:
        mock.execute.return_value = MagicMock(data=select_data if select_data is not None else [])
    return mock


@pytest.mark.parametrize(
    "role, allowed, expected",
    [
        ("editor_in_chief", DECISION_ROLES, True),
        ("admin", DECISION_ROLES, True),
        ("associate_editor", DECISION_ROLES, False),
        ("editorial_board", EDITORIAL_ROLES, True),
        ("reviewer", EDITORIAL_ROLES, False),
        ("reviewer", REVIEWER_ROLES, True),
        # admin 没有隐式通配
        ("admin", REVIEWER_ROLES, False),
        ("author", DECISION_READ_ROLES, False),
        (" Editor_In_Chief ", DECISION_READ_ROLES, True),
        (None, EDITORIAL_ROLES, False),
        ("", REVIEWER_ROLES, False),
    ],
)
def test_can_act(role, allowed, expected):
    assert can_act(role, allowed) is expected


def test_reviewer_capable_roles():
    assert is_reviewer_capable("reviewer") is True
    assert is_reviewer_capable("associate_editor") is True
    assert is_reviewer_capable("editorial_board") is True
    assert is_reviewer_capable("editor_in_chief") is False
    assert is_reviewer_capable("author") is False


@pytest.mark.asyncio
async def test_get_current_profile_reads_single_role(monkeypatch):
    from app.core import roles as roles_mod

    user_id = "00000000-0000-0000-0000-000000000000"
    supabase = _mk_supabase_chain(
        select_data=[{"id": user_id, "email": "", "first_name": "Eve", "last_name": "E", "role": " Associate_Editor "}]
    )
    monkeypatch.setattr(roles_mod, "supabase_admin", supabase)

    profile = await roles_mod.get_current_profile({"id": user_id, "email": "eve@example.com"})
    assert profile["role"] == "associate_editor"
    # profile 缺 email 时使用 token 中的 email
    assert profile["email"] == "eve@example.com"


@pytest.mark.asyncio
async def test_get_current_profile_defaults_to_author(monkeypatch):
    from app.core import roles as roles_mod

    monkeypatch.setattr(roles_mod, "supabase_admin", _mk_supabase_chain(select_data=[]))
    profile = await roles_mod.get_current_profile({"id": "u-1", "email": "u@example.com"})
    assert profile == {"id": "u-1", "email": "u@example.com", "role": "author"}


@pytest.mark.asyncio
async def test_get_current_profile_lookup_failure_is_author(monkeypatch):
    from app.core import roles as roles_mod

    monkeypatch.setattr(roles_mod, "supabase_admin", _mk_supabase_chain(error=RuntimeError("db down")))
    profile = await roles_mod.get_current_profile({"id": "u-1", "email": None})
    assert profile["role"] == "author"


@pytest.mark.asyncio
async def test_require_any_role():
    from app.core.roles import require_any_role

    dep = require_any_role(DECISION_ROLES)
    profile = {"id": "u-1", "role": "editor_in_chief"}
    assert await dep(profile) is profile

    with pytest.raises(HTTPException) as exc:
        await dep({"id": "u-2", "role": "reviewer"})
    assert exc.value.status_code == 403
    assert exc.value.detail == "Insufficient role"
