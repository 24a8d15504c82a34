from enum import Enum
from typing import Any


class UserRole(str, Enum):
    AUTHOR = "author"
    REVIEWER = "reviewer"
    EDITORIAL_ASSISTANT = "editorial_assistant"
    ASSOCIATE_EDITOR = "associate_editor"
    EDITORIAL_BOARD = "editorial_board"
    EDITOR_IN_CHIEF = "editor_in_chief"
    ADMIN = "admin"


def display_name(profile: dict[str, Any] | None) -> str:
    """first_name + last_name，缺失时回退 email 前缀。"""
    if not profile:
        return "Unknown"
    name = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()
    if name:
        return name
    email = str(profile.get("email") or "").strip()
    if email:
        return email.split("@")[0]
    return "Unknown"
