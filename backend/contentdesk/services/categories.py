"""Activity classification and human-readable labels.

Every (action, entity_type) pair maps to exactly one ActivityCategory. Pairs
outside the table fall into OTHER and are logged, never dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from contentdesk.models.enums import ActivityCategory, AuditAction, TargetType

logger = logging.getLogger(__name__)

_USER_ACTIONS = (
    AuditAction.ROLE_CHANGED,
    AuditAction.BLOCKED,
    AuditAction.UNBLOCKED,
    AuditAction.PROFILE_UPDATED,
    AuditAction.DATA_MODIFIED,
    AuditAction.ACCOUNT_DELETED,
)
_TOOL_ACTIONS = (AuditAction.CREATED, AuditAction.UPDATED, AuditAction.DELETED)
_REVIEW_ACTIONS = (AuditAction.HIDDEN, AuditAction.RESTORED, AuditAction.REPLIED)
_BLOG_MODERATION_ACTIONS = (
    AuditAction.APPROVED,
    AuditAction.REJECTED,
    AuditAction.REPOSTED,
    AuditAction.MOVED_TO_TRASH,
    AuditAction.RESTORED,
)

CATEGORY_TABLE: dict[tuple[str, str], ActivityCategory] = {}
for _a in _USER_ACTIONS:
    CATEGORY_TABLE[(_a.value, TargetType.USER.value)] = ActivityCategory.USER_MANAGEMENT
for _a in _TOOL_ACTIONS:
    CATEGORY_TABLE[(_a.value, TargetType.TOOL.value)] = ActivityCategory.TOOL_MANAGEMENT
for _a in _REVIEW_ACTIONS:
    CATEGORY_TABLE[(_a.value, TargetType.REVIEW.value)] = ActivityCategory.REVIEW_MANAGEMENT
for _a in _BLOG_MODERATION_ACTIONS:
    CATEGORY_TABLE[(_a.value, TargetType.BLOG.value)] = ActivityCategory.BLOG_MODERATION
CATEGORY_TABLE[(AuditAction.CREATED.value, TargetType.BLOG.value)] = ActivityCategory.BLOG_CREATION

CATEGORY_TITLES: dict[ActivityCategory, str] = {
    ActivityCategory.USER_MANAGEMENT: "User Management",
    ActivityCategory.TOOL_MANAGEMENT: "Tool Management",
    ActivityCategory.REVIEW_MANAGEMENT: "Review Management",
    ActivityCategory.BLOG_MODERATION: "Blog Moderation",
    ActivityCategory.BLOG_CREATION: "Blog Creation",
    ActivityCategory.OTHER: "Other",
}


def _value(x: Any) -> str:
    return str(getattr(x, "value", x) or "")


def humanize(action: str) -> str:
    return _value(action).replace("_", " ")


def classify(action: str, entity_type: str) -> ActivityCategory:
    key = (_value(action).lower(), _value(entity_type).lower())
    category = CATEGORY_TABLE.get(key)
    if category is None:
        logger.warning("Unclassified activity action=%s entity_type=%s", key[0], key[1])
        return ActivityCategory.OTHER
    return category


_LAST_ACTION_TITLES: dict[str, str] = {
    "profile_updated": "Updated user profile",
    "role_changed": "Changed user role",
    "blocked": "Blocked user",
    "unblocked": "Unblocked user",
    "data_modified": "Modified user data",
    "account_deleted": "Deleted user account",
    "approved": "Approved blog",
    "rejected": "Rejected blog",
    "reposted": "Re-published blog",
    "moved_to_trash": "Moved blog to trash",
    "deleted": "Deleted content",
    "hidden": "Hidden review",
    "replied": "Replied to review",
}


def last_action_title(action: str, entity_type: str) -> str:
    action = _value(action)
    entity_type = _value(entity_type).lower()
    if action == "created":
        return {"blog": "Created blog", "tool": "Created tool"}.get(entity_type, "Created content")
    if action == "updated":
        return "Edited tool" if entity_type == "tool" else "Updated content"
    if action == "restored":
        return "Restored review" if entity_type == "review" else "Restored blog"
    title = _LAST_ACTION_TITLES.get(action)
    if title:
        return title
    return f"Performed {humanize(action)}"


# (category, action) -> (label, color)
_ACTION_CONFIGS: dict[tuple[ActivityCategory, str], tuple[str, str]] = {
    (ActivityCategory.USER_MANAGEMENT, "role_changed"): ("Changed user role", "blue"),
    (ActivityCategory.USER_MANAGEMENT, "blocked"): ("Blocked user account", "red"),
    (ActivityCategory.USER_MANAGEMENT, "unblocked"): ("Unblocked user account", "green"),
    (ActivityCategory.USER_MANAGEMENT, "profile_updated"): ("Updated user profile", "purple"),
    (ActivityCategory.USER_MANAGEMENT, "data_modified"): ("Modified user data", "orange"),
    (ActivityCategory.USER_MANAGEMENT, "account_deleted"): ("Deleted user account", "red"),
    (ActivityCategory.TOOL_MANAGEMENT, "created"): ("Created new tool", "green"),
    (ActivityCategory.TOOL_MANAGEMENT, "updated"): ("Updated tool information", "blue"),
    (ActivityCategory.TOOL_MANAGEMENT, "deleted"): ("Deleted tool", "red"),
    (ActivityCategory.REVIEW_MANAGEMENT, "hidden"): ("Hidden review", "orange"),
    (ActivityCategory.REVIEW_MANAGEMENT, "restored"): ("Restored review", "green"),
    (ActivityCategory.REVIEW_MANAGEMENT, "replied"): ("Replied to review", "blue"),
    (ActivityCategory.BLOG_MODERATION, "approved"): ("Approved blog post", "green"),
    (ActivityCategory.BLOG_MODERATION, "rejected"): ("Rejected blog post", "red"),
    (ActivityCategory.BLOG_MODERATION, "reposted"): ("Re-published blog post", "green"),
    (ActivityCategory.BLOG_MODERATION, "moved_to_trash"): ("Moved blog to trash", "orange"),
    (ActivityCategory.BLOG_MODERATION, "restored"): ("Restored blog post", "green"),
    (ActivityCategory.BLOG_CREATION, "created"): ("Created blog post", "purple"),
}


def action_config(category: ActivityCategory, action: str) -> dict[str, str]:
    """UI label, color and category title for an activity."""
    action = _value(action)
    found = _ACTION_CONFIGS.get((category, action))
    label, color = found if found else (f"{humanize(action)} on {humanize(category.value)}", "gray")
    return {"label": label, "color": color, "category_title": CATEGORY_TITLES[category]}


def _field_list(changes: list[dict] | None) -> str:
    return ", ".join(str(c.get("field", "")) for c in (changes or []))


def describe(event: Any, entity_info: dict | None = None) -> str:
    """Human description of an activity event.

    `event` only needs action, entity_type, entity_name, changes and reason.
    """
    info = entity_info or {}
    action = _value(event.action)
    entity_type = _value(event.entity_type).lower()
    name = event.entity_name or "Unknown"
    changes = event.changes or []
    fields = _field_list(changes)

    if action == "profile_updated" and changes:
        return f"Updated {name}'s profile ({fields})"
    if action == "role_changed":
        role_change = next((c for c in changes if c.get("field") == "role"), None)
        if role_change:
            return f"Changed {name}'s role from {role_change.get('old_value')} to {role_change.get('new_value')}"

    if entity_type == "blog":
        if action == "created":
            return f'Created blog post "{name}"'
        if action == "updated":
            return f'Updated blog "{name}" ({fields})' if changes else f'Updated blog post "{name}"'
        if action == "approved":
            return f'Approved blog post "{name}" for publication'
        if action == "rejected":
            reason = event.reason or (getattr(event, "details", None) or {}).get("reason")
            return f'Rejected blog post "{name}"' + (f" - {reason}" if reason else "")
        if action == "published":
            return f'Published blog post "{name}"'
        if action == "unpublished":
            return f'Unpublished blog post "{name}"'
        if action == "moved_to_trash":
            return f'Moved blog post "{name}" to trash'
        if action in ("restored", "reposted"):
            return f'Restored blog post "{name}" from trash'
        if action == "deleted":
            return f'Permanently deleted blog post "{name}"'
        return f'Performed {humanize(action)} on blog "{name}"'

    if entity_type == "tool":
        if action == "created":
            category = info.get("category")
            return f'Created tool "{name}"' + (f" in {category}" if category else "")
        if action == "updated":
            return f'Updated tool "{name}" ({fields})' if changes else f'Updated tool "{name}"'
        if action == "verified":
            return f'Verified tool "{name}"'
        if action == "unverified":
            return f'Removed verification from tool "{name}"'
        if action == "deleted":
            return f'Deleted tool "{name}"'
        return f'Performed {humanize(action)} on tool "{name}"'

    if entity_type == "review":
        verbs = {"updated": "Updated", "hidden": "Hid", "restored": "Restored", "replied": "Replied to", "deleted": "Deleted"}
        if action == "created":
            tool = info.get("tool")
            return f"Created {name}" + (f" for {tool}" if tool else "")
        if action in verbs:
            return f"{verbs[action]} {name}"
        return f"Performed {humanize(action)} on {name}"

    if entity_type == "user":
        if action == "blocked":
            return f"Blocked user {name}"
        if action == "unblocked":
            return f"Unblocked user {name}"
        if action == "role_changed":
            return f"Changed {name}'s role"
        if action == "profile_updated":
            return f"Updated {name}'s profile"
        if action == "data_modified":
            return f"Modified {name}'s data" + (f" ({fields})" if changes else "")
        if action == "account_deleted":
            return f"Deleted user account: {name}"
        return f"Performed {humanize(action)} on user {name}"

    return f'Performed {humanize(action)} on {entity_type} "{name}"'
