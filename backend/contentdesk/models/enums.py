from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    USER = "user"
    WRITER = "writer"
    MANAGER = "manager"
    ADMIN = "admin"


STAFF_ROLES = (UserRole.WRITER, UserRole.MANAGER, UserRole.ADMIN)
ANALYTICS_ROLES = (UserRole.MANAGER, UserRole.ADMIN)


class AuditAction(str, enum.Enum):
    # User management
    ROLE_CHANGED = "role_changed"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"
    PROFILE_UPDATED = "profile_updated"
    DATA_MODIFIED = "data_modified"
    ACCOUNT_DELETED = "account_deleted"
    # Content
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    HIDDEN = "hidden"
    RESTORED = "restored"
    REPLIED = "replied"
    APPROVED = "approved"
    REJECTED = "rejected"
    REPOSTED = "reposted"
    MOVED_TO_TRASH = "moved_to_trash"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"


class TargetType(str, enum.Enum):
    USER = "user"
    TOOL = "tool"
    REVIEW = "review"
    BLOG = "blog"


class BlogStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    PUBLISHED = "published"
    REJECTED = "rejected"
    UNPUBLISHED = "unpublished"


class ReviewStatus(str, enum.Enum):
    VISIBLE = "visible"
    HIDDEN = "hidden"
    FLAGGED = "flagged"


class ActivityCategory(str, enum.Enum):
    USER_MANAGEMENT = "user_management"
    TOOL_MANAGEMENT = "tool_management"
    REVIEW_MANAGEMENT = "review_management"
    BLOG_MODERATION = "blog_moderation"
    BLOG_CREATION = "blog_creation"
    OTHER = "other"


class EventSource(str, enum.Enum):
    CENTRALIZED_AUDIT = "centralized_audit"
    ENTITY_SNAPSHOT = "entity_snapshot"
    APPROXIMATED = "approximated"
