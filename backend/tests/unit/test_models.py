from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.models.article import ArticleStatus, first_author_name, normalize_article_status
from app.models.editorial_decision import days_in_review, parse_iso, sort_queue
from app.models.review import ReviewRatings
from app.models.user import display_name
from app.schemas.review_workflow import AssignReviewerRequest
from app.schemas.editorial_decision import UpdateDecisionRequest


def test_article_allowed_next():
    assert ArticleStatus.allowed_next("submitted") == {"under_review"}
    assert ArticleStatus.allowed_next("UNDER_REVIEW") == {"accepted", "revision_requested", "rejected"}
    assert ArticleStatus.allowed_next("accepted") == {"published"}
    assert ArticleStatus.allowed_next("rejected") == set()


def test_normalize_article_status():
    assert normalize_article_status(" Submitted ") == "submitted"
    assert normalize_article_status("archived") is None
    assert normalize_article_status(None) is None


def test_first_author_and_display_names():
    assert first_author_name({"authors": [{"first_name": "Ada", "last_name": "Author"}]}) == "Ada Author"
    assert first_author_name({"authors": []}) == "Unknown"
    assert display_name({"first_name": "", "last_name": "", "email": "rita@example.com"}) == "rita"
    assert display_name(None) == "Unknown"


def test_sort_queue_priority_then_oldest():
    rows = [
        {"id": "low", "priority": "low", "submitted_date": "2026-01-01"},
        {"id": "urgent-new", "priority": "urgent", "submitted_date": "2026-01-05"},
        {"id": "urgent-old", "priority": "urgent", "submitted_date": "2026-01-02"},
        {"id": "normal", "priority": None, "submitted_date": "2026-01-01"},
    ]
    assert [r["id"] for r in sort_queue(rows)] == ["urgent-old", "urgent-new", "normal", "low"]


def test_days_in_review():
    now = datetime(2026, 1, 10, tzinfo=timezone.utc)
    assert days_in_review({"submitted_date": "2026-01-01T00:00:00Z"}, now=now) == 9
    assert days_in_review({"submitted_date": "2026-01-01T00:00:00Z", "decided_date": "2026-01-04T12:00:00Z"}) == 3
    assert days_in_review({}) is None
    assert parse_iso("not a date") is None
    assert parse_iso("2026-01-01T00:00:00").tzinfo is not None


def test_ratings_range():
    ReviewRatings(originality=1, methodology=5, significance=3, clarity=2, overall=4)
    with pytest.raises(ValidationError):
        ReviewRatings(originality=0, methodology=5, significance=3, clarity=2, overall=4)


def test_assign_request_accepts_both_spellings():
    snake = AssignReviewerRequest(article_id="a", reviewer_id="r", due_date="2026-02-01T00:00:00Z")
    camel = AssignReviewerRequest.model_validate(
        {"articleId": "a", "reviewerId": "r", "dueDate": "2026-02-01T00:00:00Z", "isAnonymous": False}
    )
    assert snake.article_id == camel.article_id == "a"
    assert snake.is_anonymous is None
    assert camel.is_anonymous is False


def test_update_decision_request_rejects_empty_and_unknown_fields():
    with pytest.raises(ValidationError):
        UpdateDecisionRequest.model_validate({})
    with pytest.raises(ValidationError):
        UpdateDecisionRequest.model_validate({"decision": "accept"})
    assert UpdateDecisionRequest.model_validate({"notes": "n"}).notes == "n"
