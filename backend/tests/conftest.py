import os
import sys
from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# backend/ 与 backend/tests/ 都需要可导入（main 模块、fake_supabase）
_TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_TESTS_DIR))
sys.path.insert(0, _TESTS_DIR)

from fake_supabase import FakeSupabase  # noqa: E402
from main import app  # noqa: E402

from app.api.v1.editorial_decisions import get_editorial_decision_service  # noqa: E402
from app.api.v1.internal import get_overdue_sweeper, get_reminder_scheduler  # noqa: E402
from app.api.v1.notifications import get_notification_service  # noqa: E402
from app.api.v1.review_workflow import get_review_workflow_service  # noqa: E402
from app.core.config import ReviewWorkflowConfig  # noqa: E402
from app.core.mail import EmailService  # noqa: E402
from app.core.roles import get_current_profile  # noqa: E402
from app.core.scheduler import OverdueReviewSweeper, ReviewReminderScheduler  # noqa: E402
from app.services.editorial_decision_service import EditorialDecisionService  # noqa: E402
from app.services.notification_service import NotificationService  # noqa: E402
from app.services.review_workflow_service import ReviewWorkflowService  # noqa: E402

from workflow_data import ARTICLE, PROFILES  # noqa: E402


@pytest.fixture
def workflow_config() -> ReviewWorkflowConfig:
    return ReviewWorkflowConfig(
        decision_min_completed=2,
        decline_reason_min_length=20,
        reminder_window_hours=24,
        frontend_base_url="http://localhost:3000",
        journal_name="Test Journal",
    )


@pytest.fixture
def fake_db() -> FakeSupabase:
    """
    预置：6 个用户 + 1 篇 submitted 稿件
    """
    db = FakeSupabase()
    db.seed("user_profiles", *PROFILES.values())
    db.seed("articles", ARTICLE)
    return db


@pytest.fixture
def email_stub() -> MagicMock:
    """
    EmailService 替身：所有发信方法默认成功，便于断言调用参数。
    """
    stub = MagicMock(spec=EmailService)
    for name in (
        "send_email",
        "send_template_email",
        "send_review_invitation",
        "send_review_reminder",
        "send_review_completed",
        "send_decision_notification",
    ):
        getattr(stub, name).return_value = True
    return stub


@pytest.fixture
def workflow_service(fake_db, email_stub, workflow_config) -> ReviewWorkflowService:
    return ReviewWorkflowService(client=fake_db, email_service=email_stub, config=workflow_config)


@pytest.fixture
def decision_service(fake_db) -> EditorialDecisionService:
    return EditorialDecisionService(client=fake_db)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator:
    """
    提供一个模拟的异步测试客户端
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def api(fake_db, email_stub, workflow_config, workflow_service, decision_service):
    """
    接口测试环境：所有 service 依赖指向内存库；通过 api.login(user_id) 切换当前用户。

    中文注释: 鉴权本身（JWT 解码）由 test_auth_utils 单独覆盖，这里直接覆盖 get_current_profile。
    """

    class _Api:
        db = fake_db
        email = email_stub

        @staticmethod
        def login(user_id: str) -> None:
            profile = dict(PROFILES[user_id])
            app.dependency_overrides[get_current_profile] = lambda: profile

    app.dependency_overrides[get_review_workflow_service] = lambda: workflow_service
    app.dependency_overrides[get_editorial_decision_service] = lambda: decision_service
    app.dependency_overrides[get_notification_service] = lambda: NotificationService(fake_db)
    app.dependency_overrides[get_overdue_sweeper] = lambda: OverdueReviewSweeper(client=fake_db)
    app.dependency_overrides[get_reminder_scheduler] = lambda: ReviewReminderScheduler(
        client=fake_db, email_service=email_stub, config=workflow_config
    )
    yield _Api()
    app.dependency_overrides.clear()

