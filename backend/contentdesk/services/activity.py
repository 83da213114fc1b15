"""Activity aggregation.

Merges the central audit log with events inferred from entity snapshots (blog,
tool and review last-actor fields, the legacy per-user audit trail) into one
newest-first list without duplicates.

Audit events are always collected first and dedup keeps the first occurrence,
so an audit record wins over a snapshot event describing the same action on
the same target within the same second.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from contentdesk.core.config import settings
from contentdesk.core.errors import InvalidArgumentError, NotFoundError
from contentdesk.models.audit_log import AuditRecord
from contentdesk.models.blog import Blog
from contentdesk.models.common import as_utc, utcnow
from contentdesk.models.enums import (
    ANALYTICS_ROLES,
    STAFF_ROLES,
    ActivityCategory,
    EventSource,
    ReviewStatus,
    TargetType,
)
from contentdesk.models.review import Review, ReviewReply
from contentdesk.models.tool import Tool
from contentdesk.models.user import User, UserAuditEntry
from contentdesk.schemas.analytics import (
    ActivityFeed,
    ActivityFeedEntry,
    ActivityFeedSummary,
    DateRangeOut,
)
from contentdesk.services.audit_log import readable_changes
from contentdesk.services.categories import classify, describe

logger = logging.getLogger(__name__)

# (actor column, timestamp column, action, reason column)
BLOG_ACTOR_FIELDS = (
    ("approved_by_id", "approved_at", "approved", None),
    ("rejected_by_id", "rejected_at", "rejected", "rejection_reason"),
    ("reposted_by_id", "reposted_at", "reposted", None),
    ("deleted_by_id", "deleted_at", "moved_to_trash", "deletion_reason"),
)

APPROXIMATED_TOOL_NOTE = "Approximated - tool {} within time range"
APPROXIMATED_REVIEW_NOTE = "Approximated - review {} within time range"
APPROXIMATED_REPLY_NOTE = "Approximated - legacy reply attributed by author name"
ALL_TIME_START = dt.datetime(2000, 1, 1, tzinfo=dt.timezone.utc)


@dataclass(frozen=True)
class Performer:
    id: int
    name: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class ActivityEvent:
    id: str  # dedup key: action|timestamp|target_id
    source_id: str
    entity_type: str
    entity_id: int | None
    entity_name: str
    action: str
    category: ActivityCategory
    timestamp: dt.datetime
    performed_by: Performer
    source: EventSource
    changes: tuple = ()
    details: dict = field(default_factory=dict)
    reason: str | None = None
    metadata: dict = field(default_factory=dict)


def dedup_key(action: str, timestamp: dt.datetime, target_id: int | None) -> str:
    ts = as_utc(timestamp).replace(microsecond=0)
    return f"{action}|{ts.isoformat()}|{target_id}"


def make_event(
    *,
    source_id: str,
    action: str,
    entity_type: str,
    entity_id: int | None,
    entity_name: str | None,
    timestamp: dt.datetime,
    performed_by: Performer,
    source: EventSource,
    changes: Iterable[dict] | None = None,
    details: dict | None = None,
    reason: str | None = None,
    metadata: dict | None = None,
) -> ActivityEvent:
    action = str(getattr(action, "value", action))
    entity_type = str(getattr(entity_type, "value", entity_type)).lower()
    ts = as_utc(timestamp)
    return ActivityEvent(
        id=dedup_key(action, ts, entity_id),
        source_id=source_id,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name or "Unknown",
        action=action,
        category=classify(action, entity_type),
        timestamp=ts,
        performed_by=performed_by,
        source=source,
        changes=tuple(readable_changes(changes)),
        details=dict(details or {}),
        reason=reason,
        metadata=dict(metadata or {}),
    )


def merge_events(events: Iterable[ActivityEvent], start: dt.datetime, end: dt.datetime) -> list[ActivityEvent]:
    """Range-check each event, drop duplicate keys and sort newest first.

    Duplicates are dropped in collection order, so the earlier collector wins.
    """
    seen: set[str] = set()
    unique: list[ActivityEvent] = []
    for e in events:
        if not start <= e.timestamp <= end or e.id in seen:
            continue
        seen.add(e.id)
        unique.append(e)
    unique.sort(key=lambda e: e.timestamp, reverse=True)
    return unique


def _validate_window(window_start: dt.datetime | None, window_end: dt.datetime | None) -> tuple[dt.datetime, dt.datetime]:
    if window_start is None or window_end is None:
        raise InvalidArgumentError("window_start and window_end are required")
    start, end = as_utc(window_start), as_utc(window_end)
    if start > end:
        raise InvalidArgumentError("window_start must be <= window_end")
    return start, end


def _performer(user: User) -> Performer:
    return Performer(id=user.id, name=user.name, role=user.role.value)


def staff_lookup(db: Session) -> dict[int, User]:
    return {u.id: u for u in db.query(User).filter(User.role.in_(STAFF_ROLES)).order_by(User.id).all()}


# --- collectors -------------------------------------------------------------


def _audit_events(db: Session, staff: dict[int, User], start: dt.datetime, end: dt.datetime) -> list[ActivityEvent]:
    if not staff:
        return []
    records = (
        db.query(AuditRecord)
        .filter(
            AuditRecord.performed_by_id.in_(list(staff)),
            AuditRecord.timestamp >= start,
            AuditRecord.timestamp <= end,
        )
        .order_by(AuditRecord.timestamp.desc(), AuditRecord.id)
        .all()
    )
    return [audit_record_event(r) for r in records]


def audit_record_event(r: AuditRecord) -> ActivityEvent:
    return make_event(
        source_id=f"audit-{r.id}",
        action=r.action,
        entity_type=r.target_type,
        entity_id=r.target_id,
        entity_name=r.target_name or (r.details or {}).get("target_name"),
        timestamp=r.timestamp,
        performed_by=Performer(id=r.performed_by_id, name=r.performed_by_name, role=r.performed_by_role),
        source=EventSource.CENTRALIZED_AUDIT,
        changes=r.changes,
        details=r.details,
        reason=r.reason,
        metadata=r.meta,
    )


def _legacy_user_events(db: Session, staff: dict[int, User], start: dt.datetime, end: dt.datetime) -> list[ActivityEvent]:
    if not staff:
        return []
    entries = (
        db.query(UserAuditEntry)
        .filter(
            UserAuditEntry.performed_by_id.in_(list(staff)),
            UserAuditEntry.timestamp >= start,
            UserAuditEntry.timestamp <= end,
        )
        .order_by(UserAuditEntry.timestamp.desc(), UserAuditEntry.id)
        .all()
    )
    events = []
    for entry in entries:
        target = entry.user
        actor = staff[entry.performed_by_id]
        details = {"reason": entry.reason}
        if target is not None:
            details["target_user"] = {"id": target.id, "name": target.name, "email": target.email, "role": target.role.value}
        events.append(
            make_event(
                source_id=f"user-audit-{entry.id}",
                action=entry.action,
                entity_type=TargetType.USER,
                entity_id=entry.user_id,
                entity_name=target.name if target is not None else None,
                timestamp=entry.timestamp,
                performed_by=Performer(
                    id=actor.id,
                    name=entry.performed_by_name or actor.name,
                    role=entry.performed_by_role or actor.role.value,
                ),
                source=EventSource.ENTITY_SNAPSHOT,
                changes=entry.changes,
                details=details,
                reason=entry.reason,
                metadata=entry.meta,
            )
        )
    return events


def _blog_events(db: Session, staff: dict[int, User]) -> list[ActivityEvent]:
    if not staff:
        return []
    ids = list(staff)
    blogs = (
        db.query(Blog)
        .filter(
            or_(
                Blog.author_id.in_(ids),
                Blog.approved_by_id.in_(ids),
                Blog.rejected_by_id.in_(ids),
                Blog.reposted_by_id.in_(ids),
                Blog.deleted_by_id.in_(ids),
            )
        )
        .order_by(Blog.id)
        .all()
    )
    events = []
    for blog in blogs:
        for actor_col, at_col, action, reason_col in BLOG_ACTOR_FIELDS:
            actor_id = getattr(blog, actor_col)
            if actor_id not in staff:
                continue
            events.append(
                make_event(
                    source_id=f"blog-{blog.id}-{action}",
                    action=action,
                    entity_type=TargetType.BLOG,
                    entity_id=blog.id,
                    entity_name=blog.title,
                    timestamp=getattr(blog, at_col) or blog.updated_at,
                    performed_by=_performer(staff[actor_id]),
                    source=EventSource.ENTITY_SNAPSHOT,
                    details={"status": blog.status.value},
                    reason=getattr(blog, reason_col) if reason_col else None,
                )
            )
        if blog.author_id in staff:
            events.append(
                make_event(
                    source_id=f"blog-{blog.id}-created",
                    action="created",
                    entity_type=TargetType.BLOG,
                    entity_id=blog.id,
                    entity_name=blog.title,
                    timestamp=blog.created_at,
                    performed_by=_performer(staff[blog.author_id]),
                    source=EventSource.ENTITY_SNAPSHOT,
                    details={"status": blog.status.value, "categories": list(blog.categories or [])},
                )
            )
    return events


def _tool_events(db: Session, staff: dict[int, User]) -> list[ActivityEvent]:
    if not staff:
        return []
    ids = list(staff)
    tools = (
        db.query(Tool)
        .filter(or_(Tool.created_by_id.in_(ids), Tool.updated_by_id.in_(ids)))
        .order_by(Tool.id)
        .all()
    )
    events = []
    for tool in tools:
        if tool.created_by_id in staff:
            events.append(
                make_event(
                    source_id=f"tool-{tool.id}-created",
                    action="created",
                    entity_type=TargetType.TOOL,
                    entity_id=tool.id,
                    entity_name=tool.name,
                    timestamp=tool.created_at,
                    performed_by=_performer(staff[tool.created_by_id]),
                    source=EventSource.ENTITY_SNAPSHOT,
                    details={"category": tool.category},
                )
            )
        if tool.updated_by_id in staff and as_utc(tool.updated_at) > as_utc(tool.created_at):
            events.append(
                make_event(
                    source_id=f"tool-{tool.id}-updated",
                    action="updated",
                    entity_type=TargetType.TOOL,
                    entity_id=tool.id,
                    entity_name=tool.name,
                    timestamp=tool.updated_at,
                    performed_by=_performer(staff[tool.updated_by_id]),
                    source=EventSource.ENTITY_SNAPSHOT,
                    details={"category": tool.category},
                )
            )
    return events


def _review_name(review: Review) -> str:
    return f"Review on {review.tool.name if review.tool else 'Unknown Tool'}"


def _reply_events(db: Session, staff: dict[int, User], start: dt.datetime, end: dt.datetime) -> list[ActivityEvent]:
    if not staff:
        return []
    replies = (
        db.query(ReviewReply)
        .filter(
            ReviewReply.user_id.in_(list(staff)),
            ReviewReply.created_at >= start,
            ReviewReply.created_at <= end,
        )
        .order_by(ReviewReply.id)
        .all()
    )
    return [
        make_event(
            source_id=f"review-{reply.review_id}-reply-{reply.id}",
            action="replied",
            entity_type=TargetType.REVIEW,
            entity_id=reply.review_id,
            entity_name=_review_name(reply.review),
            timestamp=reply.created_at,
            performed_by=_performer(staff[reply.user_id]),
            source=EventSource.ENTITY_SNAPSHOT,
            details={"reply_content": reply.content},
        )
        for reply in replies
    ]


def _approximated_events(db: Session, member: User, start: dt.datetime, end: dt.datetime) -> list[ActivityEvent]:
    """Best-effort events for entities with no attributable actor.

    Attributed to `member` only because the change happened inside the window.
    """
    performer = _performer(member)
    events: list[ActivityEvent] = []

    tools = (
        db.query(Tool)
        .filter(
            or_(Tool.created_by_id.is_(None), Tool.updated_by_id.is_(None)),
            or_(Tool.created_at >= start, Tool.updated_at >= start),
        )
        .order_by(Tool.id)
        .all()
    )
    for tool in tools:
        created_at, updated_at = as_utc(tool.created_at), as_utc(tool.updated_at)
        if tool.created_by_id is None and start <= created_at <= end:
            events.append(
                make_event(
                    source_id=f"tool-{tool.id}-created-approx",
                    action="created",
                    entity_type=TargetType.TOOL,
                    entity_id=tool.id,
                    entity_name=tool.name,
                    timestamp=created_at,
                    performed_by=performer,
                    source=EventSource.APPROXIMATED,
                    details={"note": APPROXIMATED_TOOL_NOTE.format("created"), "has_audit_fields": False},
                )
            )
        if tool.updated_by_id is None and updated_at > created_at and start <= updated_at <= end:
            events.append(
                make_event(
                    source_id=f"tool-{tool.id}-updated-approx",
                    action="updated",
                    entity_type=TargetType.TOOL,
                    entity_id=tool.id,
                    entity_name=tool.name,
                    timestamp=updated_at,
                    performed_by=performer,
                    source=EventSource.APPROXIMATED,
                    details={"note": APPROXIMATED_TOOL_NOTE.format("updated"), "has_audit_fields": False},
                )
            )

    reviews = (
        db.query(Review)
        .filter(Review.updated_at >= start, Review.updated_at <= end)
        .order_by(Review.id)
        .all()
    )
    for review in reviews:
        created_at, updated_at = as_utc(review.created_at), as_utc(review.updated_at)
        original_user = review.user.name if review.user else "Unknown User"
        if member.role in ANALYTICS_ROLES and updated_at > created_at:
            action = {ReviewStatus.HIDDEN: "hidden", ReviewStatus.VISIBLE: "restored"}.get(review.status)
            if action:
                events.append(
                    make_event(
                        source_id=f"review-{review.id}-{action}-approx",
                        action=action,
                        entity_type=TargetType.REVIEW,
                        entity_id=review.id,
                        entity_name=_review_name(review),
                        timestamp=updated_at,
                        performed_by=performer,
                        source=EventSource.APPROXIMATED,
                        details={
                            "note": APPROXIMATED_REVIEW_NOTE.format(action),
                            "review_content": review.comment,
                            "review_rating": review.rating,
                            "original_user": original_user,
                        },
                    )
                )
        if (
            review.reply
            and review.reply_author == member.name
            and review.reply_role in {r.value for r in ANALYTICS_ROLES}
        ):
            events.append(
                make_event(
                    source_id=f"review-{review.id}-replied-approx",
                    action="replied",
                    entity_type=TargetType.REVIEW,
                    entity_id=review.id,
                    entity_name=_review_name(review),
                    timestamp=updated_at,
                    performed_by=performer,
                    source=EventSource.APPROXIMATED,
                    details={
                        "note": APPROXIMATED_REPLY_NOTE,
                        "reply_content": review.reply,
                        "reply_role": review.reply_role,
                        "original_user": original_user,
                    },
                )
            )
    return events


# --- public API -------------------------------------------------------------


def list_activities_for_staff(
    db: Session,
    staff_id: int,
    window_start: dt.datetime,
    window_end: dt.datetime,
) -> list[ActivityEvent]:
    start, end = _validate_window(window_start, window_end)
    member = db.query(User).filter(User.id == staff_id).first()
    if not member or member.role not in STAFF_ROLES:
        raise NotFoundError("Staff member not found")

    staff = {member.id: member}
    events: list[ActivityEvent] = []
    events += _audit_events(db, staff, start, end)
    events += _legacy_user_events(db, staff, start, end)
    events += _blog_events(db, staff)
    events += _tool_events(db, staff)
    events += _reply_events(db, staff, start, end)
    events += _approximated_events(db, member, start, end)
    return merge_events(events, start, end)


def list_platform_activity(
    db: Session,
    window_start: dt.datetime,
    window_end: dt.datetime,
    limit: int,
) -> list[ActivityEvent]:
    start, end = _validate_window(window_start, window_end)
    if limit is None or limit < 1:
        raise InvalidArgumentError("limit must be >= 1")

    staff = staff_lookup(db)
    events: list[ActivityEvent] = []
    events += _audit_events(db, staff, start, end)
    events += _legacy_user_events(db, staff, start, end)
    events += _blog_events(db, staff)
    events += _tool_events(db, staff)
    events += _reply_events(db, staff, start, end)
    return merge_events(events, start, end)[:limit]


# --- flat feed --------------------------------------------------------------


def _group_ids(events: Iterable[ActivityEvent]) -> dict[str, set[int]]:
    ids: dict[str, set[int]] = {t.value: set() for t in TargetType}
    for e in events:
        if e.entity_type in ids and e.entity_id is not None:
            ids[e.entity_type].add(e.entity_id)
    return ids


def _load_entity_info(db: Session, ids: dict[str, set[int]]) -> dict[tuple[str, int], tuple[str, dict[str, Any]]]:
    """(entity_type, id) -> (display name, entity info) for every target that still exists."""
    found: dict[tuple[str, int], tuple[str, dict[str, Any]]] = {}
    if ids["user"]:
        for u in db.query(User).filter(User.id.in_(ids["user"])).all():
            found[("user", u.id)] = (u.name, {"email": u.email, "role": u.role.value})
    if ids["blog"]:
        for b in db.query(Blog).filter(Blog.id.in_(ids["blog"])).all():
            found[("blog", b.id)] = (b.title, {"author": b.author.name if b.author else None, "status": b.status.value})
    if ids["tool"]:
        for t in db.query(Tool).filter(Tool.id.in_(ids["tool"])).all():
            found[("tool", t.id)] = (t.name, {"category": t.category, "verified": t.verified})
    if ids["review"]:
        for r in db.query(Review).filter(Review.id.in_(ids["review"])).all():
            name = f"Review by {r.user.name if r.user else 'Unknown'}"
            found[("review", r.id)] = (name, {"rating": r.rating, "tool": r.tool.name if r.tool else None})
    return found


def _deleted_snapshot_info(event: ActivityEvent) -> tuple[str | None, dict[str, Any]] | None:
    details = event.details or {}
    if event.entity_type == "user" and details.get("deleted_user_info"):
        info = details["deleted_user_info"]
        return info.get("name"), {"email": info.get("email"), "role": info.get("role")}
    if event.entity_type == "blog" and details.get("deleted_blog_info"):
        info = details["deleted_blog_info"]
        return info.get("title"), {"author": info.get("author_name"), "status": info.get("status")}
    if event.entity_type == "tool" and details.get("deleted_tool_info"):
        info = details["deleted_tool_info"]
        return info.get("name"), {"category": info.get("category"), "verified": info.get("verified")}
    if event.entity_type == "review" and details.get("deleted_review_info"):
        info = details["deleted_review_info"]
        return f"Review by {info.get('user_name')}", {"rating": info.get("rating"), "tool": info.get("tool_name")}
    return None


def build_activity_feed(db: Session, days: int | None, now: dt.datetime | None = None) -> ActivityFeed:
    """Platform feed for the last `days` days; `None` covers all recorded history."""
    if days is not None and days < 1:
        raise InvalidArgumentError("days must be >= 1")
    end = as_utc(now or utcnow())
    start = ALL_TIME_START if days is None else end - dt.timedelta(days=days)

    staff = staff_lookup(db)
    events = list_platform_activity(db, start, end, settings.activity_feed_limit)
    lookup = _load_entity_info(db, _group_ids(events))

    entries: list[ActivityFeedEntry] = []
    for e in events:
        member = staff.get(e.performed_by.id)
        if member is None:
            continue
        snapshot = _deleted_snapshot_info(e)
        if snapshot is not None:
            resolved_name, entity_info = snapshot
        else:
            resolved_name, entity_info = lookup.get((e.entity_type, e.entity_id), (None, {}))
        name = e.entity_name if e.entity_name != "Unknown" else (resolved_name or "Unknown")
        described = dataclasses.replace(e, entity_name=name)
        entries.append(
            ActivityFeedEntry(
                id=e.source_id,
                timestamp=e.timestamp,
                staff_id=member.id,
                staff_name=member.name,
                staff_email=member.email,
                staff_role=member.role.value,
                staff_image=member.image,
                action=e.action,
                category=e.category,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                entity_name=name,
                entity_info=entity_info,
                description=describe(described, entity_info),
                reason=e.reason,
                metadata=e.metadata,
                changes=list(e.changes),
                details=e.details,
                source=e.source,
            )
        )

    logger.debug("Built activity feed: %s entries over %s days", len(entries), days)
    return ActivityFeed(
        activities=entries,
        summary=ActivityFeedSummary(
            total_activities=len(entries),
            date_range=DateRangeOut(start=start, end=end),
            staff_count=len(staff),
        ),
    )
