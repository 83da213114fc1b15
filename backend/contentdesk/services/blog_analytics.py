from __future__ import annotations

import datetime as dt
from collections import Counter, defaultdict

from sqlalchemy.orm import Session

from contentdesk.core.config import settings
from contentdesk.models.blog import Blog, BlogDailyEngagement
from contentdesk.models.common import as_utc
from contentdesk.models.enums import BlogStatus, UserRole
from contentdesk.models.user import User
from contentdesk.schemas.analytics import (
    BlogAnalytics,
    BlogAnalyticsResponse,
    BlogDailyStat,
    BlogOverview,
    CategoryPerformanceRow,
    HourlyViews,
    PostRow,
    TagCount,
    TopPosts,
)
from contentdesk.services.metrics import compute_engagement_rate, window_bounds
from contentdesk.services.staff_analytics import inactive_writers, stale_draft_row, user_ref

TOP_LIMIT = 10
STALE_DRAFT_LIMIT = 20
# Share of today's views given to each of the last hours, most recent first.
HOURLY_WEIGHTS = (0.4, 0.3, 0.2, 0.1, 0.1, 0.1)
YESTERDAY_HOURLY_SHARE = 0.1


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def post_row(blog: Blog) -> PostRow:
    return PostRow(
        id=blog.id,
        title=blog.title,
        slug=blog.slug,
        status=blog.status.value,
        views=blog.views or 0,
        likes=blog.likes or 0,
        comments=blog.comments or 0,
        categories=list(blog.categories or []),
        author=user_ref(blog.author),
        published_at=as_utc(blog.published_at),
        created_at=as_utc(blog.created_at),
    )


def post_overview(posts: list[Blog]) -> BlogOverview:
    total_posts = len(posts)
    by_status = Counter(p.status for p in posts)
    total_views = sum(p.views or 0 for p in posts)
    total_likes = sum(p.likes or 0 for p in posts)
    total_comments = sum(p.comments or 0 for p in posts)
    return BlogOverview(
        total_posts=total_posts,
        published_posts=by_status[BlogStatus.PUBLISHED],
        draft_posts=by_status[BlogStatus.DRAFT],
        pending_posts=by_status[BlogStatus.PENDING_APPROVAL],
        rejected_posts=by_status[BlogStatus.REJECTED],
        total_views=total_views,
        total_likes=total_likes,
        total_comments=total_comments,
        avg_views_per_post=round_half_up(total_views / total_posts) if total_posts else 0,
        avg_likes_per_post=round_half_up(total_likes / total_posts) if total_posts else 0,
        engagement_rate=compute_engagement_rate(total_likes, total_comments, total_views),
    )


def top_posts_of(posts: list[Blog]) -> TopPosts:
    return TopPosts(
        by_views=[post_row(p) for p in sorted(posts, key=lambda p: p.views or 0, reverse=True)[:TOP_LIMIT]],
        by_likes=[post_row(p) for p in sorted(posts, key=lambda p: p.likes or 0, reverse=True)[:TOP_LIMIT]],
    )


def category_rollup(posts: list[Blog], limit: int) -> list[CategoryPerformanceRow]:
    """Per-category totals, most viewed first."""
    categories: dict[str, CategoryPerformanceRow] = {}
    for p in posts:
        for name in p.categories or []:
            row = categories.setdefault(name, CategoryPerformanceRow(name=name))
            row.posts += 1
            row.views += p.views or 0
            row.likes += p.likes or 0
            row.comments += p.comments or 0
    return sorted(categories.values(), key=lambda r: r.views, reverse=True)[:limit]


def _engagement_by_date(db: Session, blog_ids: list[int], since: dt.date) -> dict[str, dict[str, int]]:
    totals: dict[str, dict[str, int]] = defaultdict(lambda: {"views": 0, "likes": 0, "comments": 0})
    if not blog_ids:
        return totals
    rows = (
        db.query(BlogDailyEngagement)
        .filter(BlogDailyEngagement.blog_id.in_(blog_ids), BlogDailyEngagement.date >= since.isoformat())
        .all()
    )
    for row in rows:
        day = totals[row.date]
        day["views"] += row.views or 0
        day["likes"] += row.likes or 0
        day["comments"] += row.comments or 0
    return totals


def hourly_views(now: dt.datetime, today_views: int, yesterday_views: int) -> list[HourlyViews]:
    """Estimate views over the last six hours from per-day totals.

    Only daily engagement is stored, so today's total is spread across recent
    hours by fixed weights and hours that fall on yesterday get a flat share.
    """
    today = now.date()
    yesterday = today - dt.timedelta(days=1)
    top_of_hour = now.replace(minute=0, second=0, microsecond=0)
    points = []
    for i in range(5, -1, -1):
        at = top_of_hour - dt.timedelta(hours=i)
        is_today = at.date() == today
        is_yesterday = at.date() == yesterday
        views = 0
        if is_today and today_views > 0:
            views = round_half_up(today_views * HOURLY_WEIGHTS[i])
        elif is_yesterday and yesterday_views > 0:
            views = round_half_up(yesterday_views * YESTERDAY_HOURLY_SHARE)
        label = f"{at.hour:02d}:00"
        points.append(
            HourlyViews(
                hour=label,
                label=label,
                views=views,
                timestamp=int(at.timestamp() * 1000),
                is_today=is_today,
                is_yesterday=is_yesterday,
                date=at.date().isoformat(),
            )
        )
    return points


def blog_analytics(db: Session, days: int, now: dt.datetime | None = None) -> BlogAnalyticsResponse:
    start, end = window_bounds(days, now)
    today = end.date()
    first_day = today - dt.timedelta(days=days - 1)
    yesterday = today - dt.timedelta(days=1)

    posts = (
        db.query(Blog)
        .filter(Blog.created_at >= start, Blog.created_at <= end)
        .order_by(Blog.created_at.desc(), Blog.id.desc())
        .all()
    )

    overview = post_overview(posts)
    top_posts = top_posts_of(posts)

    engagement = _engagement_by_date(db, [p.id for p in posts], min(first_day, yesterday))
    daily_stats = []
    for i in range(days):
        day = first_day + dt.timedelta(days=i)
        key = day.isoformat()
        daily_stats.append(
            BlogDailyStat(
                date=key,
                posts=sum(1 for p in posts if as_utc(p.created_at).date() == day),
                published=sum(1 for p in posts if p.published_at and as_utc(p.published_at).date() == day),
                views=engagement[key]["views"] if key in engagement else 0,
                likes=engagement[key]["likes"] if key in engagement else 0,
                comments=engagement[key]["comments"] if key in engagement else 0,
                is_today=day == today,
            )
        )

    category_performance = category_rollup(posts, TOP_LIMIT)

    tag_counts = Counter(tag for p in posts for tag in (p.tags or []))
    trending_tags = [TagCount(tag=tag, count=count) for tag, count in tag_counts.most_common(TOP_LIMIT)]

    writers = db.query(User).filter(User.role == UserRole.WRITER).order_by(User.id).all()
    stale_cutoff = end - dt.timedelta(days=settings.blog_stale_draft_days)
    stale = (
        db.query(Blog)
        .filter(Blog.status == BlogStatus.DRAFT, Blog.created_at < stale_cutoff)
        .order_by(Blog.created_at)
        .limit(STALE_DRAFT_LIMIT)
        .all()
    )

    published = sorted((p for p in posts if p.published_at), key=lambda p: as_utc(p.published_at), reverse=True)
    discussed = sorted((p for p in posts if (p.comments or 0) > 0), key=lambda p: p.comments, reverse=True)

    today_key, yesterday_key = today.isoformat(), yesterday.isoformat()
    analytics = BlogAnalytics(
        overview=overview,
        top_posts=top_posts,
        trending_tags=trending_tags,
        inactive_writers=inactive_writers(db, writers, start, end)[:TOP_LIMIT],
        stale_drafts=[stale_draft_row(b, end) for b in stale],
        category_performance=category_performance,
        most_discussed_blogs=[post_row(p) for p in discussed[:TOP_LIMIT]],
        daily_stats=daily_stats,
        recent_activity=[post_row(p) for p in published[:TOP_LIMIT]],
        hourly_views=hourly_views(
            end,
            engagement[today_key]["views"] if today_key in engagement else 0,
            engagement[yesterday_key]["views"] if yesterday_key in engagement else 0,
        ),
    )
    return BlogAnalyticsResponse(time_range=days, analytics=analytics)
