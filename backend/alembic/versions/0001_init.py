"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("user", "writer", "manager", "admin")
BLOG_STATUSES = ("draft", "pending_approval", "published", "rejected", "unpublished")
REVIEW_STATUSES = ("visible", "hidden", "flagged")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole"), nullable=False, server_default="user"),
        sa.Column("image", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "user_audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("performed_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("performed_by_name", sa.String(length=120), nullable=True),
        sa.Column("performed_by_role", sa.String(length=32), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_user_audit_entries_user_id", "user_audit_entries", ["user_id"])
    op.create_index("ix_user_audit_entries_performed_by_id", "user_audit_entries", ["performed_by_id"])
    op.create_index("ix_user_audit_entries_timestamp", "user_audit_entries", ["timestamp"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("performed_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performed_by_name", sa.String(length=120), nullable=False),
        sa.Column("performed_by_role", sa.String(length=32), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("target_type", sa.String(length=32), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("target_name", sa.String(length=300), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])
    op.create_index("ix_audit_log_performed_by_id", "audit_log", ["performed_by_id"])
    op.create_index("ix_audit_log_category", "audit_log", ["category"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_performer_timestamp", "audit_log", ["performed_by_id", "timestamp"])
    op.create_index("ix_audit_log_target", "audit_log", ["target_type", "target_id"])

    op.create_table(
        "tools",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=220), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("image", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("description", sa.String(length=2000), nullable=False, server_default=""),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tools_slug", "tools", ["slug"], unique=True)
    op.create_index("ix_tools_category", "tools", ["category"])
    op.create_index("ix_tools_created_by_id", "tools", ["created_by_id"])
    op.create_index("ix_tools_updated_by_id", "tools", ["updated_by_id"])
    op.create_index("ix_tools_created_at", "tools", ["created_at"])

    op.create_table(
        "blogs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=220), nullable=False),
        sa.Column("status", sa.Enum(*BLOG_STATUSES, name="blogstatus"), nullable=False, server_default="draft"),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("reposted_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reposted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_reason", sa.String(length=500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_blogs_slug", "blogs", ["slug"], unique=True)
    op.create_index("ix_blogs_status", "blogs", ["status"])
    op.create_index("ix_blogs_author_id", "blogs", ["author_id"])
    op.create_index("ix_blogs_approved_by_id", "blogs", ["approved_by_id"])
    op.create_index("ix_blogs_rejected_by_id", "blogs", ["rejected_by_id"])
    op.create_index("ix_blogs_reposted_by_id", "blogs", ["reposted_by_id"])
    op.create_index("ix_blogs_deleted_by_id", "blogs", ["deleted_by_id"])
    op.create_index("ix_blogs_deleted_at", "blogs", ["deleted_at"])
    op.create_index("ix_blogs_created_at", "blogs", ["created_at"])

    op.create_table(
        "blog_daily_engagement",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("blog_id", sa.Integer(), sa.ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("blog_id", "date", name="uq_blog_daily_engagement_day"),
    )
    op.create_index("ix_blog_daily_engagement_blog_id", "blog_daily_engagement", ["blog_id"])
    op.create_index("ix_blog_daily_engagement_date", "blog_daily_engagement", ["date"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("tool_id", sa.Integer(), sa.ForeignKey("tools.id"), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False, server_default=""),
        sa.Column("reply", sa.Text(), nullable=True),
        sa.Column("reply_author", sa.String(length=120), nullable=True),
        sa.Column("reply_role", sa.String(length=32), nullable=True),
        sa.Column("status", sa.Enum(*REVIEW_STATUSES, name="reviewstatus"), nullable=False, server_default="visible"),
        sa.Column("is_rating_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_reviews_user_id", "reviews", ["user_id"])
    op.create_index("ix_reviews_tool_id", "reviews", ["tool_id"])
    op.create_index("ix_reviews_status", "reviews", ["status"])
    op.create_index("ix_reviews_is_rating_active", "reviews", ["is_rating_active"])
    op.create_index("ix_reviews_created_at", "reviews", ["created_at"])

    op.create_table(
        "review_replies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("review_id", sa.Integer(), sa.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_review_replies_review_id", "review_replies", ["review_id"])
    op.create_index("ix_review_replies_user_id", "review_replies", ["user_id"])

    op.create_table(
        "recent_views",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("tool_id", sa.Integer(), sa.ForeignKey("tools.id"), nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_recent_views_user_id", "recent_views", ["user_id"])
    op.create_index("ix_recent_views_tool_id", "recent_views", ["tool_id"])
    op.create_index("ix_recent_views_viewed_at", "recent_views", ["viewed_at"])


def downgrade() -> None:
    op.drop_table("recent_views")
    op.drop_table("review_replies")
    op.drop_table("reviews")
    op.drop_table("blog_daily_engagement")
    op.drop_table("blogs")
    op.drop_table("tools")
    op.drop_table("audit_log")
    op.drop_table("user_audit_entries")
    op.drop_table("users")
    bind = op.get_bind()
    for name in ("reviewstatus", "blogstatus", "userrole"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
