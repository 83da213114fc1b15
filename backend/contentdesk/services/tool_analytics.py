from __future__ import annotations

import datetime as dt
from collections import Counter

from sqlalchemy.orm import Session

from contentdesk.models.common import as_utc
from contentdesk.models.recent_view import RecentView
from contentdesk.models.review import Review
from contentdesk.models.tool import Tool
from contentdesk.schemas.analytics import (
    RecentReviewRow,
    RecentViewRow,
    ToolCategoryRow,
    ToolDailyStat,
    ToolRecentActivity,
    ToolRow,
    ToolsAnalytics,
    ToolsAnalyticsResponse,
    ToolsOverview,
    TopTools,
)
from contentdesk.schemas.common import ToolRef, UserRef
from contentdesk.services.metrics import window_bounds

TOP_LIMIT = 10
RECENT_LIMIT = 20
MIN_REVIEWS_FOR_TOP_RATED = 3
UNCATEGORIZED = "Uncategorized"


def _mean(values: list[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


def tool_row(tool: Tool, view_count: int | None = None) -> ToolRow:
    return ToolRow(
        id=tool.id,
        name=tool.name,
        slug=tool.slug,
        category=tool.category,
        rating=tool.rating or 0.0,
        review_count=tool.review_count or 0,
        view_count=view_count,
        image=tool.image,
        description=tool.description,
    )


def _tool_ref(tool: Tool | None) -> ToolRef | None:
    if tool is None:
        return None
    return ToolRef(id=tool.id, name=tool.name, slug=tool.slug, category=tool.category)


def _user_ref(user) -> UserRef | None:
    if user is None:
        return None
    return UserRef(id=user.id, name=user.name, email=user.email)


def tools_analytics(db: Session, days: int, now: dt.datetime | None = None) -> ToolsAnalyticsResponse:
    start, end = window_bounds(days, now)

    tools = db.query(Tool).order_by(Tool.id).all()
    reviews = (
        db.query(Review)
        .filter(Review.created_at >= start, Review.created_at <= end)
        .order_by(Review.created_at.desc(), Review.id)
        .all()
    )
    views = (
        db.query(RecentView)
        .filter(RecentView.viewed_at >= start, RecentView.viewed_at <= end)
        .order_by(RecentView.viewed_at.desc(), RecentView.id)
        .all()
    )

    total_tools, total_reviews, total_views = len(tools), len(reviews), len(views)
    overview = ToolsOverview(
        total_tools=total_tools,
        total_reviews=total_reviews,
        total_views=total_views,
        avg_rating=_mean([t.rating or 0.0 for t in tools]),
        avg_reviews_per_tool=round(total_reviews / total_tools, 1) if total_tools else 0.0,
        avg_views_per_tool=round(total_views / total_tools, 1) if total_tools else 0.0,
    )

    categories: dict[str, ToolCategoryRow] = {}
    ratings: dict[str, list[float]] = {}
    for t in tools:
        name = t.category or UNCATEGORIZED
        row = categories.setdefault(name, ToolCategoryRow(name=name))
        row.tool_count += 1
        ratings.setdefault(name, []).append(t.rating or 0.0)
    for r in reviews:
        if r.tool and r.tool.category in categories:
            categories[r.tool.category].total_reviews += 1
    for v in views:
        if v.tool and v.tool.category in categories:
            categories[v.tool.category].total_views += 1
    for name, row in categories.items():
        row.avg_rating = _mean(ratings[name])
    category_performance = sorted(categories.values(), key=lambda r: r.tool_count, reverse=True)[:TOP_LIMIT]

    top_rated = sorted(
        (t for t in tools if (t.rating or 0) > 0 and (t.review_count or 0) >= MIN_REVIEWS_FOR_TOP_RATED),
        key=lambda t: (t.rating or 0, t.review_count or 0),
        reverse=True,
    )[:TOP_LIMIT]
    most_reviewed = sorted(
        (t for t in tools if (t.review_count or 0) > 0), key=lambda t: t.review_count, reverse=True
    )[:TOP_LIMIT]
    tools_by_id = {t.id: t for t in tools}
    view_counts = Counter(v.tool_id for v in views)
    most_viewed = [
        tool_row(tools_by_id[tool_id], count)
        for tool_id, count in view_counts.most_common(TOP_LIMIT)
        if tool_id in tools_by_id
    ]

    first_day = end.date() - dt.timedelta(days=days - 1)
    daily_stats = []
    for i in range(days):
        day = first_day + dt.timedelta(days=i)
        day_reviews = [r for r in reviews if as_utc(r.created_at).date() == day]
        daily_stats.append(
            ToolDailyStat(
                date=day.isoformat(),
                reviews=len(day_reviews),
                views=sum(1 for v in views if as_utc(v.viewed_at).date() == day),
                avg_rating=_mean([r.rating for r in day_reviews if r.is_rating_active]),
            )
        )

    distribution = {str(star): 0 for star in range(1, 6)}
    for r in reviews:
        if r.is_rating_active and 1 <= r.rating <= 5:
            distribution[str(r.rating)] += 1

    analytics = ToolsAnalytics(
        overview=overview,
        top_tools=TopTools(
            by_rating=[tool_row(t) for t in top_rated],
            by_reviews=[tool_row(t) for t in most_reviewed],
            by_views=most_viewed,
        ),
        category_performance=category_performance,
        daily_stats=daily_stats,
        recent_activity=ToolRecentActivity(
            reviews=[
                RecentReviewRow(
                    id=r.id,
                    rating=r.rating,
                    comment=r.comment,
                    created_at=as_utc(r.created_at),
                    user=_user_ref(r.user),
                    tool=_tool_ref(r.tool),
                )
                for r in reviews[:RECENT_LIMIT]
            ],
            views=[
                RecentViewRow(id=v.id, viewed_at=as_utc(v.viewed_at), user=_user_ref(v.user), tool=_tool_ref(v.tool))
                for v in views[:RECENT_LIMIT]
            ],
        ),
        rating_distribution=distribution,
    )
    return ToolsAnalyticsResponse(time_range=days, analytics=analytics)
