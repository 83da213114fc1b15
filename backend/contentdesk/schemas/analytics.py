from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from contentdesk.models.enums import ActivityCategory, EventSource
from contentdesk.schemas.common import ApiModel, StaffSummary, ToolRef, UserRef


# --- activity ---------------------------------------------------------------


class ChangeOut(ApiModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class PerformerOut(ApiModel):
    id: int
    name: str | None = None
    role: str | None = None


class ActivityEventOut(ApiModel):
    id: str
    source_id: str
    entity_type: str
    entity_id: int | None = None
    entity_name: str
    action: str
    category: ActivityCategory
    timestamp: datetime
    changes: list[ChangeOut] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    performed_by: PerformerOut
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    source: EventSource
    description: str | None = None
    label: str | None = None
    color: str | None = None
    category_title: str | None = None


class ActivityFeedEntry(ApiModel):
    id: str
    timestamp: datetime
    staff_id: int
    staff_name: str
    staff_email: str
    staff_role: str
    staff_image: str | None = None
    action: str
    category: ActivityCategory
    entity_type: str
    entity_id: int | None = None
    entity_name: str
    entity_info: dict[str, Any] = Field(default_factory=dict)
    description: str
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    changes: list[ChangeOut] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    source: EventSource


class DateRangeOut(ApiModel):
    start: datetime
    end: datetime


class ActivityFeedSummary(ApiModel):
    total_activities: int
    date_range: DateRangeOut
    staff_count: int


class ActivityFeed(ApiModel):
    activities: list[ActivityFeedEntry]
    summary: ActivityFeedSummary


class ActivityLogsResponse(ApiModel):
    success: bool = True
    data: ActivityFeed


# --- staff ------------------------------------------------------------------


class StaffMetrics(ApiModel):
    total_actions: int = 0
    user_management: int = 0
    tool_management: int = 0
    review_management: int = 0
    blog_moderation: int = 0
    blog_creation: int = 0
    other: int = 0
    blogs_approved: int = 0
    blogs_rejected: int = 0
    blogs_reposted: int = 0
    blogs_trashed: int = 0
    blogs_created: int = 0
    decision_impact_score: int = 0
    total_moderation_actions: int = 0
    recent_blogs: int = 0
    recent_reviews: int = 0
    recent_views: int = 0
    total_activity: float = 0.0
    avg_online_per_day: float = 0.0
    last_action_title: str | None = None
    last_action: datetime | None = None
    last_login: datetime | None = None
    days_since_last_login: int = 999
    login_frequency: str = "Inactive"
    is_online: bool = False


class StaffMemberOut(ApiModel):
    id: int
    name: str
    email: str
    role: str
    image: str | None = None
    last_login: datetime | None = None
    last_action: datetime | None = None


class TimelineDay(ApiModel):
    date: str
    activities: list[ActivityEventOut]


class AuditRecordOut(ApiModel):
    id: int
    timestamp: datetime
    performed_by: PerformerOut
    category: str | None = None
    action: str
    target_type: str
    target_id: int
    target_name: str | None = None
    changes: list[ChangeOut] = Field(default_factory=list)
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class StaffDetailResponse(ApiModel):
    success: bool = True
    staff_member: StaffMemberOut
    stats: StaffMetrics
    activities: list[ActivityEventOut]
    timeline: list[TimelineDay]
    action_breakdown: dict[str, int]
    recent_activity: list[ActivityEventOut]
    moderation_logs: list[ActivityEventOut]
    audit_logs: list[AuditRecordOut]
    time_range: int


class LeaderboardRow(ApiModel):
    id: int
    name: str
    email: str
    role: str
    image: str | None = None
    blogs_approved: int = 0
    blogs_rejected: int = 0
    blogs_reposted: int = 0
    blogs_trashed: int = 0
    blogs_created: int = 0
    tools_approved: int = 0
    decision_impact_score: int = 0
    total_moderation_actions: int = 0
    recent_blogs: int = 0
    recent_reviews: int = 0
    recent_views: int = 0
    total_activity: float = 0.0
    last_login: datetime | None = None
    days_since_last_login: int = 999
    login_frequency: str = "Inactive"
    created_at: datetime | None = None


class RoleStatsRow(ApiModel):
    count: int = 0
    blogs: int = 0
    reviews: int = 0
    views: int = 0
    moderation_actions: int = 0
    avg_blogs_per_writer: float | None = None  # writer only
    tools_added: int | None = None  # manager/admin only


class DailyBucket(ApiModel):
    date: str
    blogs: int = 0
    reviews: int = 0
    views: int = 0
    moderation_actions: int = 0
    active_users: int = 0
    writer_activity: int = 0
    manager_activity: int = 0
    admin_activity: int = 0


class StaffOverviewTotals(ApiModel):
    total_staff: int = 0
    total_writers: int = 0
    total_managers: int = 0
    total_admins: int = 0
    active_staff_in_window: int = 0
    total_moderation_actions: int = 0
    avg_decision_impact: float = 0.0
    total_blogs_approved: int = 0
    total_blogs_rejected: int = 0
    total_blogs_trashed: int = 0
    total_blogs_reposted: int = 0
    total_tools_approved: int = 0
    avg_activity_per_staff: float = 0.0
    avg_moderation_actions_per_staff: float = 0.0


class LoginRow(ApiModel):
    id: int
    name: str
    email: str
    role: str
    image: str | None = None
    last_login: datetime | None = None


class NewStaffRow(ApiModel):
    id: int
    name: str
    email: str
    role: str
    image: str | None = None
    created_at: datetime | None = None


class InactiveWriterRow(ApiModel):
    id: int
    name: str
    email: str
    image: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None
    days_since_last_login: int = 999


class StaleDraftRow(ApiModel):
    id: int
    title: str
    author: UserRef | None = None
    created_at: datetime | None = None
    last_updated: datetime | None = None
    days_since_update: int = 0


class StaffByRole(ApiModel):
    writers: list[StaffSummary] = Field(default_factory=list)
    managers: list[StaffSummary] = Field(default_factory=list)
    admins: list[StaffSummary] = Field(default_factory=list)


class StaffAnalytics(ApiModel):
    overview: StaffOverviewTotals = Field(default_factory=StaffOverviewTotals)
    role_stats: dict[str, RoleStatsRow] = Field(default_factory=dict)
    staff_leaderboard: list[LeaderboardRow] = Field(default_factory=list)
    most_active_staff: list[LeaderboardRow] = Field(default_factory=list)
    daily_stats: list[DailyBucket] = Field(default_factory=list)
    recent_activity: list[ActivityEventOut] = Field(default_factory=list)
    recent_logins: list[LoginRow] = Field(default_factory=list)
    new_staff_members: list[NewStaffRow] = Field(default_factory=list)
    inactive_writers: list[InactiveWriterRow] = Field(default_factory=list)
    stale_drafts: list[StaleDraftRow] = Field(default_factory=list)
    staff_by_role: StaffByRole = Field(default_factory=StaffByRole)
    login_frequency_distribution: dict[str, int] = Field(default_factory=dict)


class StaffOverviewResponse(ApiModel):
    success: bool = True
    time_range: int
    analytics: StaffAnalytics


# --- blog -------------------------------------------------------------------


class BlogOverview(ApiModel):
    total_posts: int = 0
    published_posts: int = 0
    draft_posts: int = 0
    pending_posts: int = 0
    rejected_posts: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    avg_views_per_post: int = 0
    avg_likes_per_post: int = 0
    engagement_rate: float = 0.0


class PostRow(ApiModel):
    id: int
    title: str
    slug: str
    status: str
    views: int = 0
    likes: int = 0
    comments: int = 0
    categories: list[str] = Field(default_factory=list)
    author: UserRef | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None


class TopPosts(ApiModel):
    by_views: list[PostRow] = Field(default_factory=list)
    by_likes: list[PostRow] = Field(default_factory=list)


class TagCount(ApiModel):
    tag: str
    count: int


class CategoryPerformanceRow(ApiModel):
    name: str
    posts: int = 0
    views: int = 0
    likes: int = 0
    comments: int = 0


class BlogDailyStat(ApiModel):
    date: str
    posts: int = 0
    published: int = 0
    views: int = 0
    likes: int = 0
    comments: int = 0
    is_today: bool = False


class HourlyViews(ApiModel):
    hour: str
    label: str
    views: int
    timestamp: int  # epoch millis
    is_today: bool
    is_yesterday: bool
    date: str


class BlogAnalytics(ApiModel):
    overview: BlogOverview = Field(default_factory=BlogOverview)
    top_posts: TopPosts = Field(default_factory=TopPosts)
    trending_tags: list[TagCount] = Field(default_factory=list)
    inactive_writers: list[InactiveWriterRow] = Field(default_factory=list)
    stale_drafts: list[StaleDraftRow] = Field(default_factory=list)
    category_performance: list[CategoryPerformanceRow] = Field(default_factory=list)
    most_discussed_blogs: list[PostRow] = Field(default_factory=list)
    daily_stats: list[BlogDailyStat] = Field(default_factory=list)
    recent_activity: list[PostRow] = Field(default_factory=list)
    hourly_views: list[HourlyViews] = Field(default_factory=list)


class BlogAnalyticsResponse(ApiModel):
    success: bool = True
    time_range: int
    analytics: BlogAnalytics


# --- writers ----------------------------------------------------------------


class WriterRow(ApiModel):
    id: int
    name: str
    email: str
    image: str | None = None
    role: str
    total_posts: int = 0
    published_posts: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    engagement_rate: float = 0.0
    avg_views_per_post: int = 0
    avg_likes_per_post: int = 0


class WritersAnalyticsResponse(ApiModel):
    success: bool = True
    time_range: int
    writers: list[WriterRow]


class WriterDetail(ApiModel):
    author: UserRef
    overview: BlogOverview = Field(default_factory=BlogOverview)
    all_time_overview: BlogOverview = Field(default_factory=BlogOverview)
    top_posts: TopPosts = Field(default_factory=TopPosts)
    recent_activity: list[PostRow] = Field(default_factory=list)
    daily_stats: list[BlogDailyStat] = Field(default_factory=list)
    category_performance: list[CategoryPerformanceRow] = Field(default_factory=list)


class WriterDetailResponse(ApiModel):
    success: bool = True
    time_range: int
    analytics: WriterDetail


# --- tools ------------------------------------------------------------------


class ToolsOverview(ApiModel):
    total_tools: int = 0
    total_reviews: int = 0
    total_views: int = 0
    avg_rating: float = 0.0
    avg_reviews_per_tool: float = 0.0
    avg_views_per_tool: float = 0.0


class ToolRow(ApiModel):
    id: int
    name: str
    slug: str
    category: str | None = None
    rating: float = 0.0
    review_count: int = 0
    view_count: int | None = None
    image: str | None = None
    description: str | None = None


class TopTools(ApiModel):
    by_rating: list[ToolRow] = Field(default_factory=list)
    by_reviews: list[ToolRow] = Field(default_factory=list)
    by_views: list[ToolRow] = Field(default_factory=list)


class ToolCategoryRow(ApiModel):
    name: str
    tool_count: int = 0
    total_reviews: int = 0
    total_views: int = 0
    avg_rating: float = 0.0


class ToolDailyStat(ApiModel):
    date: str
    reviews: int = 0
    views: int = 0
    avg_rating: float = 0.0


class RecentReviewRow(ApiModel):
    id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    user: UserRef | None = None
    tool: ToolRef | None = None
    type: str = "review"


class RecentViewRow(ApiModel):
    id: int
    viewed_at: datetime
    user: UserRef | None = None
    tool: ToolRef | None = None
    type: str = "view"


class ToolRecentActivity(ApiModel):
    reviews: list[RecentReviewRow] = Field(default_factory=list)
    views: list[RecentViewRow] = Field(default_factory=list)


class ToolsAnalytics(ApiModel):
    overview: ToolsOverview = Field(default_factory=ToolsOverview)
    top_tools: TopTools = Field(default_factory=TopTools)
    category_performance: list[ToolCategoryRow] = Field(default_factory=list)
    daily_stats: list[ToolDailyStat] = Field(default_factory=list)
    recent_activity: ToolRecentActivity = Field(default_factory=ToolRecentActivity)
    rating_distribution: dict[str, int] = Field(default_factory=lambda: {str(r): 0 for r in range(1, 6)})


class ToolsAnalyticsResponse(ApiModel):
    success: bool = True
    time_range: int
    analytics: ToolsAnalytics


# --- dashboard --------------------------------------------------------------


class DashboardResponse(ApiModel):
    success: bool = True
    time_range: int
    tools: ToolsAnalytics
    blog: BlogAnalytics
    staff: StaffAnalytics
    writers: list[WriterRow]
    degraded: list[str] = Field(default_factory=list)
