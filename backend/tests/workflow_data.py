from datetime import datetime, timedelta, timezone

# 中文注释: 固定 UUID 便于断言与阅读；conftest 与各测试模块共用

EDITOR_ID = "44444444-4444-4444-a444-444444444444"
EIC_ID = "55555555-5555-4555-a555-555555555555"
REVIEWER1_ID = "22222222-2222-4222-a222-222222222222"
REVIEWER2_ID = "33333333-3333-4333-a333-333333333333"
AUTHOR_ID = "11111111-1111-4111-a111-111111111111"
BOARD_ID = "66666666-6666-4666-a666-666666666666"
ARTICLE_ID = "aaaaaaaa-aaaa-4aaa-aaaa-aaaaaaaaaaaa"

PROFILES = {
    EDITOR_ID: {"id": EDITOR_ID, "email": "editor@example.com", "first_name": "Eve", "last_name": "Editor", "role": "associate_editor"},
    EIC_ID: {"id": EIC_ID, "email": "chief@example.com", "first_name": "Carl", "last_name": "Chief", "role": "editor_in_chief"},
    REVIEWER1_ID: {"id": REVIEWER1_ID, "email": "r1@example.com", "first_name": "Rita", "last_name": "One", "role": "reviewer"},
    REVIEWER2_ID: {"id": REVIEWER2_ID, "email": "r2@example.com", "first_name": "Ravi", "last_name": "Two", "role": "reviewer"},
    AUTHOR_ID: {"id": AUTHOR_ID, "email": "author@example.com", "first_name": "Ada", "last_name": "Author", "role": "author"},
    BOARD_ID: {"id": BOARD_ID, "email": "board@example.com", "first_name": "Bo", "last_name": "Board", "role": "editorial_board"},
}

ARTICLE = {
    "id": ARTICLE_ID,
    "title": "Deep Learning for Coral Reef Monitoring",
    "status": "submitted",
    "authors": [
        {
            "first_name": "Ada",
            "last_name": "Author",
            "email": "author@example.com",
            "affiliation": "Ocean University",
        }
    ],
    "corresponding_author_id": AUTHOR_ID,
    "assigned_reviewers": [],
}

RATINGS = {"originality": 4, "methodology": 4, "significance": 5, "clarity": 3, "overall": 4}

DECLINE_REASON = "Conflict of interest with one of the authors."


def in_days(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def assign(service, reviewer_id: str, *, due_in_days: float = 14, **kwargs) -> dict:
    return service.assign_reviewer(
        article_id=ARTICLE_ID,
        reviewer_id=reviewer_id,
        due_date=in_days(due_in_days),
        assigned_by_id=EDITOR_ID,
        **kwargs,
    )


def assign_accept_submit(service, reviewer_id: str, recommendation: str) -> dict:
    """
    走完一条审稿记录：指派 -> 接受 -> 提交
    """
    review = assign(service, reviewer_id)
    service.accept_review(review_id=review["id"], reviewer_id=reviewer_id)
    return service.submit_review(
        review_id=review["id"],
        reviewer_id=reviewer_id,
        recommendation=recommendation,
        comments="Solid methodology, minor clarity issues.",
        ratings=RATINGS,
    )
