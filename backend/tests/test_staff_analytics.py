import pytest

from contentdesk.core.errors import InvalidArgumentError, NotFoundError
from contentdesk.models.enums import BlogStatus, UserRole
from contentdesk.services.audit_log import record_audit
from contentdesk.services.staff_analytics import staff_detail, staff_overview

from helpers import NOW, ago, make_blog, make_review, make_tool, make_user, make_view


def _team(db):
    admin = make_user(db, "Ada", UserRole.ADMIN, last_login=ago(minutes=5))
    manager = make_user(db, "Max", UserRole.MANAGER, last_login=ago(days=10))
    writer = make_user(db, "Wes", UserRole.WRITER, last_login=ago(days=3), created_at=ago(days=2))
    idle = make_user(db, "Ivy", UserRole.WRITER)
    reader = make_user(db, "Rita")
    return admin, manager, writer, idle, reader


def test_staff_detail_for_admin(db):
    admin, _, writer, _, reader = _team(db)
    b1 = make_blog(db, writer, "One", approved_by_id=admin.id, approved_at=ago(hours=2))
    make_blog(db, writer, "Two", status=BlogStatus.REJECTED, rejected_by_id=admin.id, rejected_at=ago(days=1))
    make_blog(db, writer, "Three", created_at=ago(days=90), approved_by_id=admin.id, approved_at=ago(days=80))
    record_audit(db, performer=admin, action="blocked", target_type="user", target_id=reader.id, target_name="Rita", timestamp=ago(hours=1))
    make_view(db, admin, make_tool(db))

    detail = staff_detail(db, admin.id, 7, now=NOW)

    assert detail.staff_member.name == "Ada"
    assert [a.action for a in detail.activities] == ["blocked", "approved", "rejected"]
    assert detail.activities[1].entity_id == b1.id
    assert detail.activities[1].label == "Approved blog post"
    assert detail.stats.blogs_approved == 2  # all-time
    assert detail.stats.blogs_rejected == 1
    assert detail.stats.decision_impact_score == 3
    assert detail.stats.user_management == 1
    assert detail.stats.recent_views == 1
    assert detail.stats.is_online is True
    assert detail.stats.last_action_title == "Blocked user"
    assert detail.action_breakdown == {
        "user_management_blocked": 1,
        "blog_moderation_approved": 1,
        "blog_moderation_rejected": 1,
    }
    assert [d.date for d in detail.timeline] == ["2026-03-15", "2026-03-14"]
    assert len(detail.audit_logs) == 1
    assert detail.audit_logs[0].target_name == "Rita"


def test_staff_detail_unknown_member(db):
    with pytest.raises(NotFoundError):
        staff_detail(db, 999, 7, now=NOW)


def test_staff_detail_bad_window(db):
    admin = make_user(db, "Ada", UserRole.ADMIN)
    with pytest.raises(InvalidArgumentError):
        staff_detail(db, admin.id, 0, now=NOW)


def test_staff_overview(db):
    admin, manager, writer, idle, reader = _team(db)
    make_blog(db, writer, "Fresh", approved_by_id=admin.id, approved_at=ago(hours=2), created_at=ago(days=1))
    make_blog(db, writer, "Stale draft", status=BlogStatus.DRAFT, created_at=ago(days=40), updated_at=ago(days=30))
    make_tool(db, "Figma", created_by_id=manager.id, created_at=ago(days=1))
    make_review(db, reader, make_tool(db))

    overview = staff_overview(db, 7, now=NOW)
    a = overview.analytics

    assert overview.time_range == 7
    assert a.overview.total_staff == 4
    assert a.overview.total_writers == 2
    assert a.overview.total_managers == 1
    assert a.overview.total_admins == 1
    assert a.overview.active_staff_in_window == 2
    assert a.overview.total_blogs_approved == 1  # status-based
    assert a.overview.total_tools_approved == 1
    assert a.staff_leaderboard[0].name in {"Ada", "Wes"}
    assert {r.name for r in a.staff_leaderboard} == {"Ada", "Max", "Wes", "Ivy"}
    assert a.role_stats["manager"].tools_added == 1
    assert a.role_stats["writer"].blogs == 1
    assert len(a.daily_stats) == 7
    assert a.daily_stats[-1].moderation_actions == 1
    assert [r.name for r in a.recent_logins] == ["Ada", "Wes"]
    assert [r.name for r in a.new_staff_members] == ["Wes"]
    assert [r.name for r in a.inactive_writers] == ["Ivy"]
    assert [d.title for d in a.stale_drafts] == ["Stale draft"]
    assert a.login_frequency_distribution == {"Very Active": 1, "Active": 1, "Moderate": 1, "Inactive": 1}
    assert [e.action for e in a.recent_activity][:2] == ["approved", "created"]


def test_staff_overview_empty_platform(db):
    a = staff_overview(db, 30, now=NOW).analytics
    assert a.overview.total_staff == 0
    assert a.overview.avg_activity_per_staff == 0.0
    assert a.staff_leaderboard == []
    assert a.role_stats["writer"].avg_blogs_per_writer == 0.0
    assert len(a.daily_stats) == 30
