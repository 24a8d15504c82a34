from __future__ import annotations

from typing import Iterable

from app.models.user import UserRole

# 中文注释：
# - 这里集中定义“路由 -> 允许角色”矩阵，避免权限判断散落在各路由。
# - 每个用户只有一个 role（user_profiles.role），不再是 roles 数组。

ADMIN_ROLE = UserRole.ADMIN.value

# 审稿流程编辑侧：指派审稿人 / 查看队列 / 查看稿件审稿记录 / 催办
EDITORIAL_ROLES: frozenset[str] = frozenset(
    {
        UserRole.ASSOCIATE_EDITOR.value,
        UserRole.EDITORIAL_BOARD.value,
        UserRole.EDITOR_IN_CHIEF.value,
        ADMIN_ROLE,
    }
)

# 最终决策
DECISION_ROLES: frozenset[str] = frozenset({UserRole.EDITOR_IN_CHIEF.value, ADMIN_ROLE})

# 审稿人侧接口（我的审稿 / 接受 / 拒绝 / 提交 / 统计）
REVIEWER_ROLES: frozenset[str] = frozenset(
    {
        UserRole.REVIEWER.value,
        UserRole.ASSOCIATE_EDITOR.value,
        UserRole.EDITORIAL_BOARD.value,
        UserRole.EDITOR_IN_CHIEF.value,
    }
)

# 决策管理读接口与 recommend
DECISION_READ_ROLES: frozenset[str] = frozenset(
    {
        UserRole.EDITOR_IN_CHIEF.value,
        UserRole.ASSOCIATE_EDITOR.value,
        UserRole.EDITORIAL_BOARD.value,
        ADMIN_ROLE,
    }
)

# 可以被指派为审稿人的角色（与接口访问权限无关）
REVIEWER_CAPABLE_ROLES: frozenset[str] = frozenset(
    {
        UserRole.REVIEWER.value,
        UserRole.ASSOCIATE_EDITOR.value,
        UserRole.EDITORIAL_BOARD.value,
    }
)


def normalize_role(role: str | None) -> str:
    """小写、去空白；未知值原样返回（由 can_act 判定为无权限）。"""
    return str(role or "").strip().lower()


def can_act(role: str | None, allowed: Iterable[str]) -> bool:
    """
    判定单个角色是否在允许集合内。

    中文注释：
    - 没有隐式的 admin 通配：admin 是否可用由每个集合显式声明
      （例如 REVIEWER_ROLES 不含 admin）。
    """
    normalized = normalize_role(role)
    if not normalized:
        return False
    return normalized in {normalize_role(r) for r in allowed}


def is_reviewer_capable(role: str | None) -> bool:
    return can_act(role, REVIEWER_CAPABLE_ROLES)
