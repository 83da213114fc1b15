"""CSV renderings of the activity feed and post performance.

Output is encoded as ``utf-8-sig`` so spreadsheet apps pick up the encoding
from the BOM. An empty dataset still yields the header row.
"""

from __future__ import annotations

import csv
import datetime as dt
import io
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy.orm import Session

from contentdesk.models.blog import Blog
from contentdesk.models.common import as_utc, utcnow
from contentdesk.schemas.analytics import ActivityFeedEntry, ChangeOut
from contentdesk.services.metrics import compute_engagement_rate, window_bounds

ACTIVITY_HEADERS = [
    "Date",
    "Time",
    "Staff Name",
    "Staff Email",
    "Staff Role",
    "Action Type",
    "Entity Type",
    "Entity Name",
    "Entity ID",
    "Description",
    "Reason",
    "Changes Count",
    "Field Changes",
    "Entity Category",
    "Entity Status",
    "Entity Email",
    "Entity Role",
    "Rating",
    "Tool Name",
    "Author Name",
    "Activity ID",
    "Source",
    "ISO Timestamp",
]

POST_HEADERS = [
    "Title",
    "Status",
    "Category",
    "Views",
    "Likes",
    "Comments",
    "Engagement Rate (%)",
    "Published Date",
    "Created Date",
    "Last Updated",
]


def format_date(value: dt.datetime) -> str:
    # M/D/YYYY
    return f"{value.month}/{value.day}/{value.year}"


def format_time(value: dt.datetime) -> str:
    # H:MM:SS AM
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d}:{value.second:02d} {suffix}"


def format_changes(changes: Sequence[ChangeOut]) -> str:
    return " | ".join(f'{c.field}: "{_text(c.old_value)}" → "{_text(c.new_value)}"' for c in changes)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render(headers: list[str], rows: Iterable[list[Any]]) -> bytes:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(headers)
    for row in rows:
        w.writerow([_text(v) for v in row])
    return buf.getvalue().encode("utf-8-sig")


def filter_feed(
    entries: Iterable[ActivityFeedEntry],
    *,
    staff_id: int | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    role: str | None = None,
    q: str | None = None,
) -> list[ActivityFeedEntry]:
    """Narrow feed entries the way the activity table filters them.

    ``q`` is a case-insensitive substring match over staff name/email,
    description, action, entity type/name, reason and entity category.
    """
    out = []
    needle = q.strip().lower() if q else ""
    for e in entries:
        if staff_id is not None and e.staff_id != staff_id:
            continue
        if action and e.action.lower() != action.lower():
            continue
        if entity_type and e.entity_type.lower() != entity_type.lower():
            continue
        if role and e.staff_role.lower() != role.lower():
            continue
        if needle:
            haystack = [
                e.staff_name,
                e.staff_email,
                e.description,
                e.action,
                e.entity_type,
                e.entity_name,
                e.reason,
                e.entity_info.get("category"),
            ]
            if not any(needle in str(v).lower() for v in haystack if v):
                continue
        out.append(e)
    return out


def activity_row(e: ActivityFeedEntry) -> list[Any]:
    info = e.entity_info or {}
    ts = as_utc(e.timestamp)
    return [
        format_date(ts),
        format_time(ts),
        e.staff_name,
        e.staff_email,
        e.staff_role,
        e.action,
        e.entity_type,
        e.entity_name,
        e.entity_id,
        e.description,
        e.reason,
        len(e.changes),
        format_changes(e.changes),
        info.get("category"),
        info.get("status"),
        info.get("email"),
        info.get("role"),
        info.get("rating"),
        info.get("tool"),
        info.get("author"),
        e.id,
        e.source.value,
        ts.isoformat(),
    ]


def activity_csv(entries: Iterable[ActivityFeedEntry]) -> bytes:
    return _render(ACTIVITY_HEADERS, (activity_row(e) for e in entries))


def activity_filename(filtered: bool, now: dt.datetime | None = None) -> str:
    now = as_utc(now or utcnow())
    kind = "filtered" if filtered else "complete"
    return f"staff-activity-{kind}-{now:%Y-%m-%d-%H-%M-%S}.csv"


def post_row(blog: Blog) -> list[Any]:
    views, likes, comments = blog.views or 0, blog.likes or 0, blog.comments or 0
    published = as_utc(blog.published_at)
    created = as_utc(blog.created_at)
    updated = as_utc(blog.updated_at)
    return [
        blog.title or "Untitled",
        blog.status.value if blog.status else "unknown",
        (blog.categories or ["Uncategorized"])[0],
        views,
        likes,
        comments,
        f"{compute_engagement_rate(likes, comments, views):.1f}",
        format_date(published) if published else "Not published",
        format_date(created) if created else "Unknown",
        format_date(updated) if updated else "Unknown",
    ]


def posts_csv(db: Session, days: int, now: dt.datetime | None = None) -> tuple[str, bytes]:
    """Post performance for posts created in the window, most viewed first."""
    start, end = window_bounds(days, now)
    posts = (
        db.query(Blog)
        .filter(Blog.created_at >= start, Blog.created_at <= end)
        .order_by(Blog.views.desc(), Blog.id)
        .all()
    )
    filename = f"blog-posts-{days}days-{end:%Y-%m-%d}.csv"
    return filename, _render(POST_HEADERS, (post_row(b) for b in posts))
