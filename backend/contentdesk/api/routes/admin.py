"""Admin endpoints backing the staff activity table."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from contentdesk.api.deps import require_staff_admin
from contentdesk.api.routes.analytics import ACTIVITY_ERROR, guarded
from contentdesk.core.config import settings
from contentdesk.core.errors import InvalidArgumentError
from contentdesk.db.session import get_db
from contentdesk.schemas.analytics import ActivityLogsResponse
from contentdesk.services.activity import build_activity_feed
from contentdesk.services.csv_export import filter_feed

router = APIRouter(dependencies=[Depends(require_staff_admin)])

ALL = "all"


def parse_days(value: str) -> int | None:
    """`all` means no lower bound; anything else must be a day count in range."""
    if value == ALL:
        return None
    days = int(value)
    if not 1 <= days <= settings.max_time_range_days:
        raise InvalidArgumentError(f"days must be between 1 and {settings.max_time_range_days}")
    return days


def _unless_all(value: str | None) -> str | None:
    return None if value in (None, "", ALL) else value


@router.get("/staff-analytics/activity-logs", response_model=ActivityLogsResponse)
def activity_logs(
    days: str = Query(default=str(settings.default_time_range_days), pattern=r"^(all|\d{1,4})$"),
    search: str | None = Query(default=None, max_length=200),
    action: str | None = Query(default=None, max_length=64),
    staff: str | None = Query(default=None, pattern=r"^(all|\d{1,12})$"),
    entity_type: str | None = Query(default=None, alias="entityType", max_length=32),
    role: str | None = Query(default=None, max_length=32),
    db: Session = Depends(get_db),
):
    feed = guarded(ACTIVITY_ERROR, build_activity_feed, db, parse_days(days))
    staff_id = _unless_all(staff)
    entries = filter_feed(
        feed.activities,
        staff_id=int(staff_id) if staff_id is not None else None,
        action=_unless_all(action),
        entity_type=_unless_all(entity_type),
        role=_unless_all(role),
        q=search,
    )
    summary = feed.summary.model_copy(update={"total_activities": len(entries)})
    return ActivityLogsResponse(data=feed.model_copy(update={"activities": entries, "summary": summary}))
