from unittest.mock import MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from app.services.notification_service import NotificationService

from workflow_data import ARTICLE_ID, EDITOR_ID, REVIEWER1_ID


def _make_admin_client_raising(error: Exception) -> MagicMock:
    client = MagicMock()
    chain = MagicMock()
    client.table.return_value = chain
    chain.insert.return_value = chain
    chain.execute.side_effect = error
    return client


def test_create_notification_suppresses_fk_errors_for_orphan_users():
    """
    中文注释:
    - 展示用途的 mock 用户不对应 auth.users，写 notifications 时会触发外键错误。
    - 这类错误应静默忽略，避免刷屏。
    """
    api_error = APIError(
        {
            "code": "23503",
            "message": 'insert or update on table "notifications" violates foreign key constraint "notifications_user_id_fkey"',
            "details": None,
            "hint": None,
        }
    )

    with (
        patch(
            "app.services.notification_service.supabase_admin",
            _make_admin_client_raising(api_error),
        ),
        patch("builtins.print") as print_mock,
    ):
        res = NotificationService().create_notification(
            user_id="00000000-0000-0000-0000-000000000000",
            article_id=None,
            type="general",
            title="t",
            message="c",
        )
        assert res is None
        print_mock.assert_not_called()


def test_create_notification_logs_other_errors_without_raising():
    client = _make_admin_client_raising(RuntimeError("db down"))
    with patch("builtins.print") as print_mock:
        res = NotificationService(client).create_notification(
            user_id=EDITOR_ID,
            article_id=ARTICLE_ID,
            type="review_submitted",
            title="Review Completed",
            message="m",
        )
    assert res is None
    print_mock.assert_called_once()


def test_create_notification_requires_user():
    client = MagicMock()
    assert NotificationService(client).create_notification(
        user_id="", article_id=None, type="general", title="t", message="m"
    ) is None
    client.table.assert_not_called()


@pytest.mark.parametrize(
    "type_, article_id, expected",
    [
        ("review_assigned", ARTICLE_ID, "/reviewer/reviews"),
        ("deadline_approaching", None, "/reviewer/reviews"),
        ("review_submitted", ARTICLE_ID, f"/editorial/articles/{ARTICLE_ID}"),
        ("decision_made", ARTICLE_ID, f"/author/articles/{ARTICLE_ID}"),
        ("decision_made", None, "/notifications"),
        ("general", ARTICLE_ID, "/notifications"),
    ],
)
def test_default_action_url(type_, article_id, expected):
    assert NotificationService.default_action_url(type_, article_id) == expected


def test_action_url_is_reduced_to_relative_path(fake_db):
    service = NotificationService(fake_db)

    absolute = service.create_notification(
        user_id=EDITOR_ID,
        article_id=ARTICLE_ID,
        type="general",
        title="t",
        message="m",
        action_url="https://journal.example.com/editorial/queue?tab=urgent",
    )
    assert absolute["action_url"] == "/editorial/queue?tab=urgent"

    unsafe = service.create_notification(
        user_id=EDITOR_ID,
        article_id=ARTICLE_ID,
        type="review_submitted",
        title="t",
        message="m",
        action_url="javascript:alert(1)",
    )
    assert unsafe["action_url"] == f"/editorial/articles/{ARTICLE_ID}"


def test_list_and_mark_read_are_scoped_to_owner(fake_db):
    service = NotificationService(fake_db)
    first = service.create_notification(
        user_id=EDITOR_ID, article_id=ARTICLE_ID, type="general", title="first", message="m"
    )
    service.create_notification(user_id=EDITOR_ID, article_id=ARTICLE_ID, type="general", title="second", message="m")
    other = service.create_notification(
        user_id=REVIEWER1_ID, article_id=ARTICLE_ID, type="review_assigned", title="theirs", message="m"
    )

    titles = [n["title"] for n in service.list_for_user(user_id=EDITOR_ID)]
    assert titles == ["second", "first"]

    assert service.mark_read(user_id=EDITOR_ID, notification_id=other["id"]) is None
    assert fake_db.get("notifications", other["id"])["is_read"] is False

    marked = service.mark_read(user_id=EDITOR_ID, notification_id=first["id"])
    assert marked["is_read"] is True

    unread = service.list_for_user(user_id=EDITOR_ID, unread_only=True)
    assert [n["title"] for n in unread] == ["second"]
    assert len(service.list_for_user(user_id=EDITOR_ID, limit=1)) == 1


def test_unread_count_and_mark_all_read_only_touch_owner(fake_db):
    service = NotificationService(fake_db)
    for title in ("a", "b", "c"):
        service.create_notification(user_id=EDITOR_ID, article_id=ARTICLE_ID, type="general", title=title, message="m")
    theirs = service.create_notification(
        user_id=REVIEWER1_ID, article_id=ARTICLE_ID, type="review_assigned", title="theirs", message="m"
    )
    first = service.list_for_user(user_id=EDITOR_ID)[-1]
    service.mark_read(user_id=EDITOR_ID, notification_id=first["id"])

    assert service.unread_count(user_id=EDITOR_ID) == 2
    assert service.mark_all_read(user_id=EDITOR_ID) == 2
    assert service.unread_count(user_id=EDITOR_ID) == 0
    assert service.mark_all_read(user_id=EDITOR_ID) == 0

    assert fake_db.get("notifications", theirs["id"])["is_read"] is False
    assert service.unread_count(user_id=REVIEWER1_ID) == 1
