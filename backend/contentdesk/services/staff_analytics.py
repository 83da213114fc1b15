"""Staff overview and per-staff detail reports."""

from __future__ import annotations

import datetime as dt
from collections import Counter

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from contentdesk.core.config import settings
from contentdesk.models.audit_log import AuditRecord
from contentdesk.models.blog import Blog
from contentdesk.models.common import as_utc
from contentdesk.models.enums import BlogStatus, UserRole
from contentdesk.models.recent_view import RecentView
from contentdesk.models.review import Review
from contentdesk.models.tool import Tool
from contentdesk.models.user import User
from contentdesk.schemas.analytics import (
    ActivityEventOut,
    AuditRecordOut,
    ChangeOut,
    InactiveWriterRow,
    LeaderboardRow,
    LoginRow,
    NewStaffRow,
    PerformerOut,
    StaffAnalytics,
    StaffByRole,
    StaffDetailResponse,
    StaffMemberOut,
    StaffOverviewResponse,
    StaffOverviewTotals,
    StaleDraftRow,
    TimelineDay,
)
from contentdesk.schemas.common import StaffSummary, UserRef
from contentdesk.services.activity import (
    ActivityEvent,
    list_activities_for_staff,
    list_platform_activity,
    staff_lookup,
)
from contentdesk.services.audit_log import readable_changes
from contentdesk.services.categories import action_config, describe
from contentdesk.services.metrics import (
    LOGIN_BUCKETS,
    ModerationCounts,
    Occurrence,
    WindowActivity,
    compute_daily_time_series,
    compute_role_stats,
    compute_staff_stats,
    days_since,
    decision_impact_score,
    login_frequency_bucket,
    window_bounds,
)

RECENT_ACTIVITY_LIMIT = 10
RECENT_LOGINS_LIMIT = 20
MOST_ACTIVE_LIMIT = 10


def event_out(e: ActivityEvent) -> ActivityEventOut:
    cfg = action_config(e.category, e.action)
    return ActivityEventOut(
        id=e.id,
        source_id=e.source_id,
        entity_type=e.entity_type,
        entity_id=e.entity_id,
        entity_name=e.entity_name,
        action=e.action,
        category=e.category,
        timestamp=e.timestamp,
        changes=[ChangeOut(**c) for c in e.changes],
        details=e.details,
        performed_by=PerformerOut(id=e.performed_by.id, name=e.performed_by.name, role=e.performed_by.role),
        reason=e.reason,
        metadata=e.metadata,
        source=e.source,
        description=describe(e),
        label=cfg["label"],
        color=cfg["color"],
        category_title=cfg["category_title"],
    )


def audit_record_out(r: AuditRecord) -> AuditRecordOut:
    return AuditRecordOut(
        id=r.id,
        timestamp=as_utc(r.timestamp),
        performed_by=PerformerOut(id=r.performed_by_id, name=r.performed_by_name, role=r.performed_by_role),
        category=r.category,
        action=r.action,
        target_type=r.target_type,
        target_id=r.target_id,
        target_name=r.target_name,
        changes=[ChangeOut(**c) for c in readable_changes(r.changes)],
        reason=r.reason,
        details=r.details or {},
        metadata=r.meta or {},
    )


# --- counts -----------------------------------------------------------------


def _count_by(db: Session, column) -> dict[int, int]:
    rows = db.query(column, func.count(Blog.id)).filter(column.isnot(None)).group_by(column).all()
    return {actor_id: count for actor_id, count in rows}


def moderation_counts(db: Session, tools_in_window: list[Tool] | None = None) -> dict[int, ModerationCounts]:
    """All-time blog moderation counts per actor (plus tools created in the window)."""
    approved = _count_by(db, Blog.approved_by_id)
    rejected = _count_by(db, Blog.rejected_by_id)
    reposted = _count_by(db, Blog.reposted_by_id)
    trashed = _count_by(db, Blog.deleted_by_id)
    created = _count_by(db, Blog.author_id)
    tools_added = Counter(t.created_by_id for t in (tools_in_window or []) if t.created_by_id is not None)

    actor_ids = set(approved) | set(rejected) | set(reposted) | set(trashed) | set(created) | set(tools_added)
    return {
        actor_id: ModerationCounts(
            approved=approved.get(actor_id, 0),
            rejected=rejected.get(actor_id, 0),
            reposted=reposted.get(actor_id, 0),
            trashed=trashed.get(actor_id, 0),
            created=created.get(actor_id, 0),
            tools_added=tools_added.get(actor_id, 0),
        )
        for actor_id in actor_ids
    }


def _window_activity(db: Session, staff_id: int, start: dt.datetime, end: dt.datetime) -> WindowActivity:
    return WindowActivity(
        blogs=db.query(func.count(Blog.id))
        .filter(Blog.author_id == staff_id, Blog.created_at >= start, Blog.created_at <= end)
        .scalar()
        or 0,
        reviews=db.query(func.count(Review.id))
        .filter(Review.user_id == staff_id, Review.created_at >= start, Review.created_at <= end)
        .scalar()
        or 0,
        views=db.query(func.count(RecentView.id))
        .filter(RecentView.user_id == staff_id, RecentView.viewed_at >= start, RecentView.viewed_at <= end)
        .scalar()
        or 0,
    )


# --- detail -----------------------------------------------------------------


def staff_detail(db: Session, staff_id: int, days: int, now: dt.datetime | None = None) -> StaffDetailResponse:
    start, end = window_bounds(days, now)
    events = list_activities_for_staff(db, staff_id, start, end)
    member = db.query(User).filter(User.id == staff_id).one()

    tools_in_window = (
        db.query(Tool)
        .filter(Tool.created_at >= start, Tool.created_at <= end, Tool.created_by_id == staff_id)
        .all()
    )
    counts = moderation_counts(db, tools_in_window).get(staff_id, ModerationCounts())
    stats = compute_staff_stats(member, events, days, counts, _window_activity(db, staff_id, start, end), end)

    activities = [event_out(e) for e in events]

    by_date: dict[str, list[ActivityEventOut]] = {}
    for a in activities:
        by_date.setdefault(a.timestamp.date().isoformat(), []).append(a)
    timeline = [TimelineDay(date=d, activities=by_date[d]) for d in sorted(by_date, reverse=True)]

    breakdown = Counter(f"{e.category.value}_{e.action}" for e in events)

    audit_records = (
        db.query(AuditRecord)
        .filter(AuditRecord.performed_by_id == staff_id, AuditRecord.timestamp >= start, AuditRecord.timestamp <= end)
        .order_by(AuditRecord.timestamp.desc(), AuditRecord.id.desc())
        .limit(settings.staff_detail_log_limit)
        .all()
    )

    return StaffDetailResponse(
        staff_member=StaffMemberOut(
            id=member.id,
            name=member.name,
            email=member.email,
            role=member.role.value,
            image=member.image,
            last_login=as_utc(member.last_login),
            last_action=stats.last_action,
        ),
        stats=stats,
        activities=activities,
        timeline=timeline,
        action_breakdown=dict(breakdown),
        recent_activity=activities[:RECENT_ACTIVITY_LIMIT],
        moderation_logs=activities[: settings.staff_detail_log_limit],
        audit_logs=[audit_record_out(r) for r in audit_records],
        time_range=days,
    )


# --- overview ---------------------------------------------------------------


def user_ref(user: User | None) -> UserRef | None:
    if user is None:
        return None
    return UserRef(id=user.id, name=user.name, email=user.email, role=user.role.value, image=user.image)


def _summary(user: User) -> StaffSummary:
    return StaffSummary(
        id=user.id,
        name=user.name,
        email=user.email,
        image=user.image,
        last_login=as_utc(user.last_login),
        created_at=as_utc(user.created_at),
    )


def inactive_writers(db: Session, writers: list[User], since: dt.datetime, now: dt.datetime) -> list[InactiveWriterRow]:
    """Writers who have not created a blog since `since`."""
    active_ids = {
        author_id
        for (author_id,) in db.query(Blog.author_id).filter(Blog.created_at >= since).distinct().all()
    }
    return [
        InactiveWriterRow(
            id=w.id,
            name=w.name,
            email=w.email,
            image=w.image,
            last_login=as_utc(w.last_login),
            created_at=as_utc(w.created_at),
            days_since_last_login=days_since(w.last_login, now),
        )
        for w in writers
        if w.id not in active_ids
    ]


def stale_draft_row(blog: Blog, now: dt.datetime) -> StaleDraftRow:
    return StaleDraftRow(
        id=blog.id,
        title=blog.title,
        author=user_ref(blog.author),
        created_at=as_utc(blog.created_at),
        last_updated=as_utc(blog.updated_at),
        days_since_update=days_since(blog.updated_at, now),
    )


def _moderation_timestamps(db: Session, start: dt.datetime) -> list[dt.datetime]:
    blogs = (
        db.query(Blog)
        .filter(
            or_(
                Blog.approved_at >= start,
                Blog.rejected_at >= start,
                Blog.reposted_at >= start,
                Blog.deleted_at >= start,
            )
        )
        .all()
    )
    stamps = []
    for b in blogs:
        for at in (b.approved_at, b.rejected_at, b.reposted_at, b.deleted_at):
            if at is not None:
                stamps.append(as_utc(at))
    return stamps


def staff_overview(db: Session, days: int, now: dt.datetime | None = None) -> StaffOverviewResponse:
    start, end = window_bounds(days, now)

    staff_by_id = staff_lookup(db)
    staff = list(staff_by_id.values())
    writers = [s for s in staff if s.role == UserRole.WRITER]
    managers = [s for s in staff if s.role == UserRole.MANAGER]
    admins = [s for s in staff if s.role == UserRole.ADMIN]

    recent_blogs = db.query(Blog).filter(Blog.created_at >= start, Blog.created_at <= end).all()
    tools = db.query(Tool).filter(Tool.created_at >= start, Tool.created_at <= end).all()
    reviews = db.query(Review).filter(Review.created_at >= start, Review.created_at <= end).all()
    views = db.query(RecentView).filter(RecentView.viewed_at >= start, RecentView.viewed_at <= end).all()

    def role_of(user_id: int | None) -> str | None:
        member = staff_by_id.get(user_id)
        return member.role.value if member else None

    blog_occ = [Occurrence(b.created_at, b.author_id, b.author.role.value if b.author else None) for b in recent_blogs]
    review_occ = [Occurrence(r.created_at, r.user_id, r.user.role.value if r.user else None) for r in reviews]
    view_occ = [Occurrence(v.viewed_at, v.user_id, v.user.role.value if v.user else None) for v in views]
    tool_occ = [Occurrence(t.created_at, t.created_by_id, role_of(t.created_by_id)) for t in tools]

    counts = moderation_counts(db, tools)
    blogs_per_author = Counter(b.author_id for b in recent_blogs)
    reviews_per_user = Counter(r.user_id for r in reviews)
    views_per_user = Counter(v.user_id for v in views)

    leaderboard: list[LeaderboardRow] = []
    for member in staff:
        c = counts.get(member.id, ModerationCounts())
        activity = WindowActivity(
            blogs=blogs_per_author.get(member.id, 0),
            reviews=reviews_per_user.get(member.id, 0),
            views=views_per_user.get(member.id, 0),
        )
        since_login = days_since(member.last_login, end)
        leaderboard.append(
            LeaderboardRow(
                id=member.id,
                name=member.name,
                email=member.email,
                role=member.role.value,
                image=member.image,
                blogs_approved=c.approved,
                blogs_rejected=c.rejected,
                blogs_reposted=c.reposted,
                blogs_trashed=c.trashed,
                blogs_created=c.created,
                tools_approved=c.tools_added,
                decision_impact_score=decision_impact_score(c.approved, c.reposted, c.rejected),
                total_moderation_actions=c.total,
                recent_blogs=activity.blogs,
                recent_reviews=activity.reviews,
                recent_views=activity.views,
                total_activity=round(activity.weighted_total, 1),
                last_login=as_utc(member.last_login),
                days_since_last_login=since_login,
                login_frequency=login_frequency_bucket(since_login),
                created_at=as_utc(member.created_at),
            )
        )
    leaderboard.sort(key=lambda r: r.total_moderation_actions + r.total_activity, reverse=True)

    total_staff = len(staff)
    total_approved = db.query(func.count(Blog.id)).filter(Blog.status == BlogStatus.PUBLISHED).scalar() or 0
    total_rejected = db.query(func.count(Blog.id)).filter(Blog.status == BlogStatus.REJECTED).scalar() or 0
    total_trashed = db.query(func.count(Blog.id)).filter(Blog.deleted_at.isnot(None)).scalar() or 0
    total_reposted = db.query(func.count(Blog.id)).filter(Blog.reposted_by_id.isnot(None)).scalar() or 0
    total_moderation = total_approved + total_rejected + total_trashed + total_reposted
    weighted_activity = len(recent_blogs) + len(reviews) + len(views) * 0.1

    overview = StaffOverviewTotals(
        total_staff=total_staff,
        total_writers=len(writers),
        total_managers=len(managers),
        total_admins=len(admins),
        active_staff_in_window=sum(1 for s in staff if s.last_login and as_utc(s.last_login) >= start),
        total_moderation_actions=total_moderation,
        avg_decision_impact=round(total_moderation / total_staff, 2) if total_staff else 0.0,
        total_blogs_approved=total_approved,
        total_blogs_rejected=total_rejected,
        total_blogs_trashed=total_trashed,
        total_blogs_reposted=total_reposted,
        total_tools_approved=len(tools),
        avg_activity_per_staff=round(weighted_activity / total_staff, 1) if total_staff else 0.0,
        avg_moderation_actions_per_staff=round(total_moderation / total_staff, 1) if total_staff else 0.0,
    )

    daily_stats = compute_daily_time_series(
        days, blog_occ, review_occ, view_occ, moderation=_moderation_timestamps(db, start), now=end
    )
    role_stats = compute_role_stats(staff, leaderboard, blog_occ, review_occ, view_occ, tool_occ)
    recent = list_platform_activity(db, start, end, settings.platform_activity_limit)

    logged_in = sorted(
        (s for s in staff if s.last_login and as_utc(s.last_login) >= start),
        key=lambda s: as_utc(s.last_login),
        reverse=True,
    )[:RECENT_LOGINS_LIMIT]
    newcomers = sorted(
        (s for s in staff if as_utc(s.created_at) >= start),
        key=lambda s: as_utc(s.created_at),
        reverse=True,
    )

    stale_cutoff = end - dt.timedelta(days=settings.stale_draft_days)
    stale = (
        db.query(Blog)
        .filter(Blog.status == BlogStatus.DRAFT, Blog.updated_at < stale_cutoff)
        .order_by(Blog.updated_at)
        .all()
    )

    distribution = {bucket: 0 for bucket in LOGIN_BUCKETS}
    for member in staff:
        distribution[login_frequency_bucket(days_since(member.last_login, end))] += 1

    analytics = StaffAnalytics(
        overview=overview,
        role_stats=role_stats,
        staff_leaderboard=leaderboard,
        most_active_staff=leaderboard[:MOST_ACTIVE_LIMIT],
        daily_stats=daily_stats,
        recent_activity=[event_out(e) for e in recent],
        recent_logins=[
            LoginRow(
                id=s.id, name=s.name, email=s.email, role=s.role.value, image=s.image, last_login=as_utc(s.last_login)
            )
            for s in logged_in
        ],
        new_staff_members=[
            NewStaffRow(
                id=s.id, name=s.name, email=s.email, role=s.role.value, image=s.image, created_at=as_utc(s.created_at)
            )
            for s in newcomers
        ],
        inactive_writers=inactive_writers(
            db, writers, end - dt.timedelta(days=settings.inactive_writer_days), end
        ),
        stale_drafts=[stale_draft_row(b, end) for b in stale],
        staff_by_role=StaffByRole(
            writers=[_summary(s) for s in writers],
            managers=[_summary(s) for s in managers],
            admins=[_summary(s) for s in admins],
        ),
        login_frequency_distribution=distribution,
    )
    return StaffOverviewResponse(time_range=days, analytics=analytics)
