from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session, sessionmaker

from contentdesk.api.deps import require_staff, require_staff_admin
from contentdesk.core.config import settings
from contentdesk.core.errors import AnalyticsError, UpstreamError
from contentdesk.db.session import get_db, get_session_factory
from contentdesk.models.enums import UserRole
from contentdesk.models.user import User
from contentdesk.schemas.analytics import (
    BlogAnalyticsResponse,
    DashboardResponse,
    StaffDetailResponse,
    StaffOverviewResponse,
    ToolsAnalyticsResponse,
    WriterDetailResponse,
    WritersAnalyticsResponse,
)
from contentdesk.services import csv_export
from contentdesk.services.activity import build_activity_feed
from contentdesk.services.blog_analytics import blog_analytics
from contentdesk.services.dashboard import load_dashboard
from contentdesk.services.staff_analytics import staff_detail, staff_overview
from contentdesk.services.tool_analytics import tools_analytics
from contentdesk.services.writer_analytics import writer_detail, writers_analytics

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_staff_admin)])
# Open to writers; the handler limits them to their own id.
writer_router = APIRouter()

T = TypeVar("T")

STAFF_ERROR = "Failed to fetch staff analytics data"
BLOG_ERROR = "Failed to fetch analytics data"
WRITERS_ERROR = "Failed to fetch writers analytics data"
TOOLS_ERROR = "Failed to fetch tools analytics data"
ACTIVITY_ERROR = "Failed to fetch staff activities"


def time_range_param(
    time_range: int = Query(
        default=settings.default_time_range_days,
        alias="timeRange",
        ge=1,
        le=settings.max_time_range_days,
    ),
) -> int:
    return time_range


def guarded(message: str, fn: Callable[..., T], *args) -> T:
    """Run an aggregation; typed errors pass through, anything else becomes a generic 500."""
    try:
        return fn(*args)
    except AnalyticsError:
        raise
    except Exception:
        logger.exception(message)
        raise UpstreamError(message)


def _csv_response(filename: str, data: bytes) -> Response:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=data, media_type="text/csv; charset=utf-8", headers=headers)


@router.get("/staff", response_model=StaffOverviewResponse | StaffDetailResponse)
def staff(
    days: int = Depends(time_range_param),
    staff_id: int | None = Query(default=None, alias="staffId", ge=1),
    db: Session = Depends(get_db),
):
    if staff_id is not None:
        return guarded(STAFF_ERROR, staff_detail, db, staff_id, days)
    return guarded(STAFF_ERROR, staff_overview, db, days)


@router.get("/blog", response_model=BlogAnalyticsResponse)
def blog(days: int = Depends(time_range_param), db: Session = Depends(get_db)):
    return guarded(BLOG_ERROR, blog_analytics, db, days)


@router.get("/writers", response_model=WritersAnalyticsResponse)
def writers(days: int = Depends(time_range_param), db: Session = Depends(get_db)):
    return guarded(WRITERS_ERROR, writers_analytics, db, days)


@router.get("/tools", response_model=ToolsAnalyticsResponse)
def tools(days: int = Depends(time_range_param), db: Session = Depends(get_db)):
    return guarded(TOOLS_ERROR, tools_analytics, db, days)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    days: int = Depends(time_range_param),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    # Sections degrade individually; only a bad range or a failure outside them surfaces here.
    try:
        return await load_dashboard(session_factory, days)
    except AnalyticsError:
        raise
    except Exception:
        logger.exception(BLOG_ERROR)
        raise UpstreamError(BLOG_ERROR)


@router.get("/staff/activity.csv")
def staff_activity_csv(
    days: int = Query(default=settings.default_time_range_days, ge=1, le=settings.max_time_range_days),
    staff_id: int | None = Query(default=None, alias="staffId", ge=1),
    action: str | None = Query(default=None, max_length=64),
    entity_type: str | None = Query(default=None, alias="entityType", max_length=32),
    role: str | None = Query(default=None, max_length=32),
    q: str | None = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
) -> Response:
    feed = guarded(ACTIVITY_ERROR, build_activity_feed, db, days)
    filtered = any(v is not None and v != "" for v in (staff_id, action, entity_type, role, q))
    entries = csv_export.filter_feed(
        feed.activities, staff_id=staff_id, action=action, entity_type=entity_type, role=role, q=q
    )
    return _csv_response(csv_export.activity_filename(filtered), csv_export.activity_csv(entries))


@router.get("/blog/posts.csv")
def blog_posts_csv(days: int = Depends(time_range_param), db: Session = Depends(get_db)) -> Response:
    filename, data = guarded(BLOG_ERROR, csv_export.posts_csv, db, days)
    return _csv_response(filename, data)


@writer_router.get("/writers/{author_id}", response_model=WriterDetailResponse)
def writer(
    author_id: int = Path(ge=1),
    days: int = Depends(time_range_param),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if user.role == UserRole.WRITER and user.id != author_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Can only view your own analytics")
    return guarded(WRITERS_ERROR, writer_detail, db, author_id, days)
