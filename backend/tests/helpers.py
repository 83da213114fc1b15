"""Builders for test data. Timestamps default to a fixed NOW so windows are deterministic."""

from __future__ import annotations

import datetime as dt
import itertools

from contentdesk.models.blog import Blog, BlogDailyEngagement
from contentdesk.models.enums import BlogStatus, ReviewStatus, UserRole
from contentdesk.models.recent_view import RecentView
from contentdesk.models.review import Review, ReviewReply
from contentdesk.models.tool import Tool
from contentdesk.models.user import User, UserAuditEntry

NOW = dt.datetime(2026, 3, 15, 12, 0, 0, tzinfo=dt.timezone.utc)

_seq = itertools.count(1)


def ago(days: float = 0, hours: float = 0, minutes: float = 0) -> dt.datetime:
    return NOW - dt.timedelta(days=days, hours=hours, minutes=minutes)


def make_user(db, name: str, role: UserRole = UserRole.USER, **kw) -> User:
    n = next(_seq)
    kw.setdefault("email", f"{name.lower().replace(' ', '.')}.{n}@example.com")
    kw.setdefault("created_at", ago(days=200))
    user = User(name=name, role=role, password_hash="", **kw)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_blog(db, author: User, title: str = "Post", **kw) -> Blog:
    n = next(_seq)
    kw.setdefault("slug", f"post-{n}")
    kw.setdefault("status", BlogStatus.PUBLISHED)
    kw.setdefault("created_at", ago(days=2))
    kw.setdefault("updated_at", kw["created_at"])
    kw.setdefault("categories", [])
    kw.setdefault("tags", [])
    blog = Blog(title=title, author_id=author.id, **kw)
    db.add(blog)
    db.commit()
    db.refresh(blog)
    return blog


def make_engagement(db, blog: Blog, day: dt.date, views: int = 0, likes: int = 0, comments: int = 0) -> BlogDailyEngagement:
    row = BlogDailyEngagement(blog_id=blog.id, date=day.isoformat(), views=views, likes=likes, comments=comments)
    db.add(row)
    db.commit()
    return row


def make_tool(db, name: str = "Tool", **kw) -> Tool:
    n = next(_seq)
    kw.setdefault("slug", f"tool-{n}")
    kw.setdefault("created_at", ago(days=100))
    kw.setdefault("updated_at", kw["created_at"])
    tool = Tool(name=name, **kw)
    db.add(tool)
    db.commit()
    db.refresh(tool)
    return tool


def make_review(db, user: User, tool: Tool, rating: int = 5, **kw) -> Review:
    kw.setdefault("created_at", ago(days=1))
    kw.setdefault("updated_at", kw["created_at"])
    kw.setdefault("status", ReviewStatus.VISIBLE)
    review = Review(user_id=user.id, tool_id=tool.id, rating=rating, **kw)
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def make_reply(db, review: Review, user: User, content: str = "Thanks!", created_at: dt.datetime | None = None) -> ReviewReply:
    reply = ReviewReply(review_id=review.id, user_id=user.id, content=content, created_at=created_at or ago(hours=3))
    db.add(reply)
    db.commit()
    db.refresh(reply)
    return reply


def make_view(db, user: User, tool: Tool, viewed_at: dt.datetime | None = None) -> RecentView:
    view = RecentView(user_id=user.id, tool_id=tool.id, viewed_at=viewed_at or ago(hours=1))
    db.add(view)
    db.commit()
    return view


def make_user_audit(db, target: User, actor: User, action: str, timestamp: dt.datetime, **kw) -> UserAuditEntry:
    entry = UserAuditEntry(user_id=target.id, performed_by_id=actor.id, action=action, timestamp=timestamp, **kw)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
