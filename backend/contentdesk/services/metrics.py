"""Pure reductions from activity events and raw entity counts to dashboard statistics.

Inputs are validated up front; nothing here touches the database.
"""

from __future__ import annotations

import datetime as dt
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

from contentdesk.core.config import settings
from contentdesk.core.errors import InvalidArgumentError
from contentdesk.models.common import as_utc
from contentdesk.models.enums import ActivityCategory, UserRole
from contentdesk.schemas.analytics import DailyBucket, LeaderboardRow, RoleStatsRow, StaffMetrics
from contentdesk.services.categories import last_action_title

NEVER_LOGGED_IN_DAYS = 999

LOGIN_BUCKETS = ("Very Active", "Active", "Moderate", "Inactive")


class Occurrence(NamedTuple):
    """Something that happened at a point in time, attributed to an actor."""

    at: dt.datetime
    actor_id: int | None = None
    actor_role: str | None = None


@dataclass(frozen=True)
class ModerationCounts:
    """All-time counts read from blog/tool last-actor fields."""

    approved: int = 0
    rejected: int = 0
    reposted: int = 0
    trashed: int = 0
    created: int = 0
    tools_added: int = 0

    @property
    def total(self) -> int:
        return self.approved + self.rejected + self.reposted + self.trashed


@dataclass(frozen=True)
class WindowActivity:
    """Per-staff counts inside the requested window."""

    blogs: int = 0
    reviews: int = 0
    views: int = 0

    @property
    def weighted_total(self) -> float:
        return self.blogs + self.reviews + self.views * 0.1


def _require_non_negative(**counts: int | float) -> None:
    for name, value in counts.items():
        if value is None or value < 0:
            raise InvalidArgumentError(f"{name} must be a non-negative number")


def _require_window(window_days: int | None) -> None:
    if window_days is None or window_days < 1:
        raise InvalidArgumentError("window_days must be >= 1")


def compute_engagement_rate(likes: int, comments: int, views: int) -> float:
    _require_non_negative(likes=likes, comments=comments, views=views)
    if views == 0:
        return 0.0
    return round((likes + comments) / views * 100, 1)


def decision_impact_score(approvals: int, reposts: int, rejections: int) -> int:
    _require_non_negative(approvals=approvals, reposts=reposts, rejections=rejections)
    return approvals * 2 + reposts - rejections


def days_since(moment: dt.datetime | None, now: dt.datetime) -> int:
    if moment is None:
        return NEVER_LOGGED_IN_DAYS
    delta = as_utc(now) - as_utc(moment)
    return max(0, math.floor(delta.total_seconds() / 86400))


def login_frequency_bucket(days: int) -> str:
    if days <= 1:
        return "Very Active"
    if days <= 7:
        return "Active"
    if days <= 30:
        return "Moderate"
    return "Inactive"


def avg_online_per_day(total_actions: int, window_days: int) -> float:
    # Heuristic: half an hour per recorded action, capped at an 8h day.
    _require_non_negative(total_actions=total_actions)
    _require_window(window_days)
    if total_actions == 0:
        return 0.0
    return round(min(8, total_actions * 0.5 / window_days), 1)


def is_online(last_login: dt.datetime | None, now: dt.datetime) -> bool:
    if last_login is None:
        return False
    return as_utc(now) - as_utc(last_login) < dt.timedelta(minutes=settings.online_window_minutes)


def compute_staff_stats(
    staff: Any,
    events: Sequence[Any],
    window_days: int,
    moderation: ModerationCounts,
    activity: WindowActivity,
    now: dt.datetime,
) -> StaffMetrics:
    """Roll one staff member's windowed events and all-time moderation counts into StaffMetrics.

    `events` must already be sorted newest first.
    """
    _require_window(window_days)
    _require_non_negative(
        approved=moderation.approved,
        rejected=moderation.rejected,
        reposted=moderation.reposted,
        trashed=moderation.trashed,
        created=moderation.created,
        blogs=activity.blogs,
        reviews=activity.reviews,
        views=activity.views,
    )

    per_category = {c: 0 for c in ActivityCategory}
    for e in events:
        per_category[e.category] += 1

    last = events[0] if events else None
    days = days_since(staff.last_login, now)
    return StaffMetrics(
        total_actions=len(events),
        user_management=per_category[ActivityCategory.USER_MANAGEMENT],
        tool_management=per_category[ActivityCategory.TOOL_MANAGEMENT],
        review_management=per_category[ActivityCategory.REVIEW_MANAGEMENT],
        blog_moderation=per_category[ActivityCategory.BLOG_MODERATION],
        blog_creation=per_category[ActivityCategory.BLOG_CREATION],
        other=per_category[ActivityCategory.OTHER],
        blogs_approved=moderation.approved,
        blogs_rejected=moderation.rejected,
        blogs_reposted=moderation.reposted,
        blogs_trashed=moderation.trashed,
        blogs_created=moderation.created,
        decision_impact_score=decision_impact_score(moderation.approved, moderation.reposted, moderation.rejected),
        total_moderation_actions=moderation.total,
        recent_blogs=activity.blogs,
        recent_reviews=activity.reviews,
        recent_views=activity.views,
        total_activity=round(activity.weighted_total, 1),
        avg_online_per_day=avg_online_per_day(len(events), window_days),
        last_action_title=last_action_title(last.action, last.entity_type) if last else None,
        last_action=last.timestamp if last else None,
        last_login=as_utc(staff.last_login),
        days_since_last_login=days,
        login_frequency=login_frequency_bucket(days),
        is_online=is_online(staff.last_login, now),
    )


def compute_role_stats(
    staff: Sequence[Any],
    leaderboard: Sequence[LeaderboardRow],
    blogs: Iterable[Occurrence],
    reviews: Iterable[Occurrence],
    views: Iterable[Occurrence],
    tools: Iterable[Occurrence],
) -> dict[str, RoleStatsRow]:
    """Per-role totals for writer, manager and admin.

    `tools` carries the creator of each tool; only staff creators count.
    """
    blogs, reviews, views, tools = list(blogs), list(reviews), list(views), list(tools)
    stats: dict[str, RoleStatsRow] = {}
    for role in (UserRole.WRITER.value, UserRole.MANAGER.value, UserRole.ADMIN.value):
        count = sum(1 for s in staff if _role(s.role) == role)
        role_blogs = sum(1 for b in blogs if b.actor_role == role)
        row = RoleStatsRow(
            count=count,
            blogs=role_blogs,
            reviews=sum(1 for r in reviews if r.actor_role == role),
            views=sum(1 for v in views if v.actor_role == role),
            moderation_actions=sum(r.total_moderation_actions for r in leaderboard if r.role == role),
        )
        if role == UserRole.WRITER.value:
            row.avg_blogs_per_writer = round(role_blogs / count, 1) if count else 0.0
        else:
            row.tools_added = sum(1 for t in tools if t.actor_role == role)
        stats[role] = row
    return stats


def _role(role: Any) -> str:
    return str(getattr(role, "value", role))


def _day_index(at: dt.datetime, first_day: dt.date, n: int) -> int | None:
    idx = (as_utc(at).date() - first_day).days
    return idx if 0 <= idx < n else None


def compute_daily_time_series(
    window_days: int,
    blogs: Iterable[Occurrence],
    reviews: Iterable[Occurrence],
    views: Iterable[Occurrence],
    moderation: Iterable[dt.datetime] = (),
    now: dt.datetime | None = None,
) -> list[DailyBucket]:
    """One zero-filled bucket per UTC calendar day, oldest first, ending today."""
    _require_window(window_days)
    today = as_utc(now or dt.datetime.now(dt.timezone.utc)).date()
    first_day = today - dt.timedelta(days=window_days - 1)

    buckets = [DailyBucket(date=(first_day + dt.timedelta(days=i)).isoformat()) for i in range(window_days)]
    actors: list[set[int]] = [set() for _ in range(window_days)]

    for b in blogs:
        idx = _day_index(b.at, first_day, window_days)
        if idx is None:
            continue
        bucket = buckets[idx]
        bucket.blogs += 1
        if b.actor_role == UserRole.WRITER.value:
            bucket.writer_activity += 1
        elif b.actor_role == UserRole.MANAGER.value:
            bucket.manager_activity += 1
        elif b.actor_role == UserRole.ADMIN.value:
            bucket.admin_activity += 1
        if b.actor_id is not None:
            actors[idx].add(b.actor_id)

    for r in reviews:
        idx = _day_index(r.at, first_day, window_days)
        if idx is None:
            continue
        bucket = buckets[idx]
        bucket.reviews += 1
        if r.actor_role == UserRole.MANAGER.value:
            bucket.manager_activity += 1
        elif r.actor_role == UserRole.ADMIN.value:
            bucket.admin_activity += 1
        if r.actor_id is not None:
            actors[idx].add(r.actor_id)

    for v in views:
        idx = _day_index(v.at, first_day, window_days)
        if idx is None:
            continue
        buckets[idx].views += 1
        if v.actor_id is not None:
            actors[idx].add(v.actor_id)

    for at in moderation:
        idx = _day_index(at, first_day, window_days)
        if idx is not None:
            buckets[idx].moderation_actions += 1

    for bucket, ids in zip(buckets, actors):
        bucket.active_users = len(ids)
    return buckets


def window_bounds(days: int, now: dt.datetime | None = None) -> tuple[dt.datetime, dt.datetime]:
    """[now - days, now] in UTC."""
    _require_window(days)
    end = as_utc(now or dt.datetime.now(dt.timezone.utc))
    return end - dt.timedelta(days=days), end
