from __future__ import annotations

import datetime as dt
from collections import defaultdict

from sqlalchemy.orm import Session

from contentdesk.core.errors import NotFoundError
from contentdesk.models.blog import Blog
from contentdesk.models.common import as_utc
from contentdesk.models.enums import BlogStatus
from contentdesk.models.user import User
from contentdesk.schemas.analytics import (
    BlogDailyStat,
    WriterDetail,
    WriterDetailResponse,
    WriterRow,
    WritersAnalyticsResponse,
)
from contentdesk.services.activity import staff_lookup
from contentdesk.services.blog_analytics import category_rollup, post_overview, post_row, round_half_up, top_posts_of
from contentdesk.services.metrics import compute_engagement_rate, window_bounds
from contentdesk.services.staff_analytics import user_ref

RECENT_POSTS_LIMIT = 10
TOP_CATEGORIES_LIMIT = 5


def writers_analytics(db: Session, days: int, now: dt.datetime | None = None) -> WritersAnalyticsResponse:
    """Per-author post performance for staff who published anything in the window."""
    start, end = window_bounds(days, now)
    staff = staff_lookup(db)

    posts_by_author: dict[int, list[Blog]] = defaultdict(list)
    if staff:
        posts = (
            db.query(Blog)
            .filter(Blog.author_id.in_(list(staff)), Blog.created_at >= start, Blog.created_at <= end)
            .all()
        )
        for p in posts:
            posts_by_author[p.author_id].append(p)

    rows: list[WriterRow] = []
    for member in staff.values():
        posts = posts_by_author.get(member.id, [])
        if not posts:
            continue
        total_views = sum(p.views or 0 for p in posts)
        total_likes = sum(p.likes or 0 for p in posts)
        total_comments = sum(p.comments or 0 for p in posts)
        rows.append(
            WriterRow(
                id=member.id,
                name=member.name,
                email=member.email,
                image=member.image,
                role=member.role.value,
                total_posts=len(posts),
                published_posts=sum(1 for p in posts if p.status == BlogStatus.PUBLISHED),
                total_views=total_views,
                total_likes=total_likes,
                total_comments=total_comments,
                engagement_rate=compute_engagement_rate(total_likes, total_comments, total_views),
                avg_views_per_post=round_half_up(total_views / len(posts)),
                avg_likes_per_post=round_half_up(total_likes / len(posts)),
            )
        )
    rows.sort(key=lambda r: r.total_views, reverse=True)
    return WritersAnalyticsResponse(time_range=days, writers=rows)


def writer_detail(db: Session, author_id: int, days: int, now: dt.datetime | None = None) -> WriterDetailResponse:
    """One author's posts: window and all-time overviews, top posts and a zero-filled daily series.

    Daily views and likes are the current totals of the posts created that day.
    """
    start, end = window_bounds(days, now)
    author = db.query(User).filter(User.id == author_id).first()
    if author is None:
        raise NotFoundError("Writer not found")

    all_posts = (
        db.query(Blog)
        .filter(Blog.author_id == author_id)
        .order_by(Blog.created_at.desc(), Blog.id.desc())
        .all()
    )
    posts = [p for p in all_posts if start <= as_utc(p.created_at) <= end]

    today = end.date()
    first_day = today - dt.timedelta(days=days - 1)
    daily_stats = []
    for i in range(days):
        day = first_day + dt.timedelta(days=i)
        created = [p for p in posts if as_utc(p.created_at).date() == day]
        daily_stats.append(
            BlogDailyStat(
                date=day.isoformat(),
                posts=len(created),
                published=sum(1 for p in posts if p.published_at and as_utc(p.published_at).date() == day),
                views=sum(p.views or 0 for p in created),
                likes=sum(p.likes or 0 for p in created),
                comments=sum(p.comments or 0 for p in created),
                is_today=day == today,
            )
        )

    analytics = WriterDetail(
        author=user_ref(author),
        overview=post_overview(posts),
        all_time_overview=post_overview(all_posts),
        top_posts=top_posts_of(posts),
        recent_activity=[post_row(p) for p in posts[:RECENT_POSTS_LIMIT]],
        daily_stats=daily_stats,
        category_performance=category_rollup(posts, TOP_CATEGORIES_LIMIT),
    )
    return WriterDetailResponse(time_range=days, analytics=analytics)
