"""SQLAlchemy models; importing this package registers every table on Base.metadata."""

from contentdesk.models.audit_log import AuditRecord
from contentdesk.models.blog import Blog, BlogDailyEngagement
from contentdesk.models.recent_view import RecentView
from contentdesk.models.review import Review, ReviewReply
from contentdesk.models.tool import Tool
from contentdesk.models.user import User, UserAuditEntry

__all__ = [
    "AuditRecord",
    "Blog",
    "BlogDailyEngagement",
    "RecentView",
    "Review",
    "ReviewReply",
    "Tool",
    "User",
    "UserAuditEntry",
]
