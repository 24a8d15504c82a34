import asyncio

from fastapi import APIRouter, Depends

from app.core.scheduler import OverdueReviewSweeper, ReviewReminderScheduler
from app.core.security import require_admin_key

router = APIRouter(prefix="/internal", tags=["Internal"])


def get_overdue_sweeper() -> OverdueReviewSweeper:
    return OverdueReviewSweeper()


def get_reminder_scheduler() -> ReviewReminderScheduler:
    return ReviewReminderScheduler()


@router.post("/cron/overdue-reviews")
async def sweep_overdue_reviews(
    _admin: None = Depends(require_admin_key),
    sweeper: OverdueReviewSweeper = Depends(get_overdue_sweeper),
):
    """
    超期扫描（内部接口，由外部 Cron 定时调用）
    """
    result = await asyncio.to_thread(sweeper.run)
    return {"success": True, **result}


@router.post("/cron/chase-reviews")
async def chase_reviews(
    _admin: None = Depends(require_admin_key),
    scheduler: ReviewReminderScheduler = Depends(get_reminder_scheduler),
):
    """
    触发自动催办逻辑（内部接口）
    """
    result = await asyncio.to_thread(scheduler.run)
    return {"success": True, **result}
