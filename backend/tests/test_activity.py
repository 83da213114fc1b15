import pytest

from contentdesk.core.errors import InvalidArgumentError, NotFoundError
from contentdesk.models.enums import ActivityCategory, BlogStatus, EventSource, ReviewStatus, UserRole
from contentdesk.services.activity import (
    Performer,
    build_activity_feed,
    dedup_key,
    list_activities_for_staff,
    list_platform_activity,
    make_event,
    merge_events,
)
from contentdesk.services.audit_log import change, record_audit

from helpers import (
    NOW,
    ago,
    make_blog,
    make_reply,
    make_review,
    make_tool,
    make_user,
    make_user_audit,
)


def _window(days=7):
    return ago(days=days), NOW


def test_dedup_key_truncates_to_seconds():
    assert dedup_key("approved", NOW.replace(microsecond=123456), 7) == "approved|2026-03-15T12:00:00+00:00|7"


def test_make_event_classifies_and_lowercases():
    e = make_event(
        source_id="x",
        action="approved",
        entity_type="Blog",
        entity_id=1,
        entity_name=None,
        timestamp=NOW,
        performed_by=Performer(id=1),
        source=EventSource.ENTITY_SNAPSHOT,
    )
    assert e.entity_type == "blog"
    assert e.entity_name == "Unknown"
    assert e.category == ActivityCategory.BLOG_MODERATION


def test_merge_events_first_collected_wins_and_sorts_newest_first():
    def ev(source_id, at, source):
        return make_event(
            source_id=source_id,
            action="approved",
            entity_type="blog",
            entity_id=1,
            entity_name="Post",
            timestamp=at,
            performed_by=Performer(id=1),
            source=source,
        )

    audit = ev("audit-1", NOW.replace(microsecond=100), EventSource.CENTRALIZED_AUDIT)
    snapshot = ev("blog-1-approved", NOW.replace(microsecond=900), EventSource.ENTITY_SNAPSHOT)
    older = ev("audit-2", ago(days=1), EventSource.CENTRALIZED_AUDIT)
    outside = ev("audit-3", ago(days=30), EventSource.CENTRALIZED_AUDIT)

    merged = merge_events([older, audit, snapshot, outside], ago(days=7), NOW.replace(microsecond=999999))
    assert [e.source_id for e in merged] == ["audit-1", "audit-2"]


def test_unknown_staff_member_is_not_found(db):
    start, end = _window()
    with pytest.raises(NotFoundError):
        list_activities_for_staff(db, 12345, start, end)


def test_plain_user_is_not_staff(db):
    user = make_user(db, "Reader")
    start, end = _window()
    with pytest.raises(NotFoundError):
        list_activities_for_staff(db, user.id, start, end)


def test_window_is_validated(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    with pytest.raises(InvalidArgumentError):
        list_activities_for_staff(db, admin.id, NOW, ago(days=1))
    with pytest.raises(InvalidArgumentError):
        list_activities_for_staff(db, admin.id, None, NOW)


def test_staff_activity_merges_all_sources(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    reader = make_user(db, "Rita")

    record_audit(
        db,
        performer=admin,
        action="role_changed",
        target_type="user",
        target_id=writer.id,
        target_name=writer.name,
        changes=[change("role", "user", "writer")],
        timestamp=ago(hours=1),
    )
    make_user_audit(db, reader, admin, "blocked", ago(hours=5), reason="spam")
    make_blog(db, writer, "Draft idea", approved_by_id=admin.id, approved_at=ago(days=1))
    make_tool(db, "Figma", created_by_id=admin.id, created_at=ago(days=2), category="Design")
    make_tool(db, "Zapier", created_at=ago(days=3))
    review = make_review(db, reader, make_tool(db, "Notion"))
    make_reply(db, review, admin, created_at=ago(hours=3))

    start, end = _window()
    events = list_activities_for_staff(db, admin.id, start, end)

    assert [e.action for e in events] == ["role_changed", "replied", "blocked", "approved", "created", "created"]
    assert events[0].source == EventSource.CENTRALIZED_AUDIT
    assert events[0].changes[0]["new_value"] == "writer"
    blocked = events[2]
    assert blocked.entity_name == "Rita"
    assert blocked.reason == "spam"
    assert blocked.source == EventSource.ENTITY_SNAPSHOT
    assert {e.source for e in events[-2:]} == {EventSource.ENTITY_SNAPSHOT, EventSource.APPROXIMATED}


def test_audit_record_wins_over_matching_snapshot(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    blog = make_blog(db, writer, "Launch", created_at=ago(days=30), approved_by_id=admin.id, approved_at=ago(hours=2))
    record_audit(
        db,
        performer=admin,
        action="approved",
        target_type="blog",
        target_id=blog.id,
        target_name=blog.title,
        timestamp=ago(hours=2),
    )

    start, end = _window()
    events = list_activities_for_staff(db, admin.id, start, end)
    approvals = [e for e in events if e.action == "approved"]
    assert len(approvals) == 1
    assert approvals[0].source == EventSource.CENTRALIZED_AUDIT


def test_staff_activity_is_deterministic(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    reader = make_user(db, "Rita")
    blog = make_blog(db, writer, "Launch", created_at=ago(days=30), approved_by_id=admin.id, approved_at=ago(hours=2))
    record_audit(db, performer=admin, action="approved", target_type="blog", target_id=blog.id, timestamp=ago(hours=2))
    record_audit(db, performer=admin, action="blocked", target_type="user", target_id=reader.id, timestamp=ago(hours=4))
    make_user_audit(db, reader, admin, "unblocked", ago(hours=4))
    make_tool(db, "Zapier", created_at=ago(days=2))
    make_reply(db, make_review(db, reader, make_tool(db, "Notion")), admin, created_at=ago(days=1))

    start, end = _window()
    first = list_activities_for_staff(db, admin.id, start, end)
    second = list_activities_for_staff(db, admin.id, start, end)

    assert first == second
    assert len(first) == 5
    assert len({e.id for e in first}) == len(first)
    assert all(a.timestamp >= b.timestamp for a, b in zip(first, first[1:]))
    assert all(start <= e.timestamp <= end for e in first)


def test_snapshot_events_outside_window_are_dropped(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    make_blog(db, writer, "Old", created_at=ago(days=60), approved_by_id=admin.id, approved_at=ago(days=40))

    start, end = _window()
    assert list_activities_for_staff(db, admin.id, start, end) == []


def test_writer_gets_no_review_approximations(db):
    writer = make_user(db, "Wes", UserRole.WRITER)
    reader = make_user(db, "Rita")
    make_review(
        db,
        reader,
        make_tool(db),
        status=ReviewStatus.HIDDEN,
        created_at=ago(days=3),
        updated_at=ago(days=1),
    )
    start, end = _window()
    assert list_activities_for_staff(db, writer.id, start, end) == []


def test_manager_gets_review_approximations(db):
    manager = make_user(db, "Max", UserRole.MANAGER)
    reader = make_user(db, "Rita")
    make_review(
        db,
        reader,
        make_tool(db, "Slack"),
        status=ReviewStatus.HIDDEN,
        created_at=ago(days=3),
        updated_at=ago(days=1),
    )
    start, end = _window()
    [event] = list_activities_for_staff(db, manager.id, start, end)
    assert event.action == "hidden"
    assert event.source == EventSource.APPROXIMATED
    assert event.entity_name == "Review on Slack"
    assert event.details["original_user"] == "Rita"


def test_legacy_reply_attributed_by_name(db):
    manager = make_user(db, "Max", UserRole.MANAGER)
    reader = make_user(db, "Rita")
    make_review(
        db,
        reader,
        make_tool(db),
        reply="Thanks",
        reply_author="Max",
        reply_role="manager",
        created_at=ago(days=3),
        updated_at=ago(days=3),
    )
    start, end = _window()
    [event] = list_activities_for_staff(db, manager.id, start, end)
    assert event.action == "replied"
    assert event.details["reply_content"] == "Thanks"


def test_untracked_tool_is_approximated_with_note(db):
    writer = make_user(db, "Wes", UserRole.WRITER)
    make_tool(db, "Zapier", created_at=ago(days=1))
    start, end = _window()
    [event] = list_activities_for_staff(db, writer.id, start, end)
    assert event.source == EventSource.APPROXIMATED
    assert event.details == {"note": "Approximated - tool created within time range", "has_audit_fields": False}


def test_platform_activity_has_no_approximations_and_honours_limit(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    make_tool(db, "Zapier", created_at=ago(days=1))
    for i in range(4):
        make_blog(db, writer, f"Post {i}", created_at=ago(days=i + 1), status=BlogStatus.DRAFT)
    make_blog(db, writer, "Approved", created_at=ago(days=6), approved_by_id=admin.id, approved_at=ago(hours=1))

    start, end = _window()
    events = list_platform_activity(db, start, end, 3)
    assert len(events) == 3
    assert events[0].action == "approved"
    assert all(e.source != EventSource.APPROXIMATED for e in events)

    with pytest.raises(InvalidArgumentError):
        list_platform_activity(db, start, end, 0)


def test_activity_feed_enriches_entries(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    writer = make_user(db, "Wes", UserRole.WRITER)
    blog = make_blog(db, writer, "Launch", created_at=ago(days=20), status=BlogStatus.REJECTED)
    record_audit(
        db,
        performer=admin,
        action="rejected",
        target_type="blog",
        target_id=blog.id,
        reason="Too short",
        timestamp=ago(hours=2),
    )
    record_audit(
        db,
        performer=admin,
        action="account_deleted",
        target_type="user",
        target_id=4242,
        details={"deleted_user_info": {"name": "Gone", "email": "gone@example.com", "role": "user"}},
        timestamp=ago(hours=1),
    )

    feed = build_activity_feed(db, 7, now=NOW)

    assert feed.summary.total_activities == 2
    assert feed.summary.staff_count == 2
    deleted, rejected = feed.activities
    assert deleted.entity_name == "Gone"
    assert deleted.entity_info == {"email": "gone@example.com", "role": "user"}
    assert deleted.description == "Deleted user account: Gone"
    assert rejected.entity_name == "Launch"
    assert rejected.entity_info == {"author": "Wes", "status": "rejected"}
    assert rejected.description == 'Rejected blog post "Launch" - Too short'
    assert rejected.staff_email == admin.email
    assert rejected.id.startswith("audit-")


def test_activity_feed_requires_positive_days(db):
    with pytest.raises(InvalidArgumentError):
        build_activity_feed(db, 0, now=NOW)
