import datetime as dt

import pytest

from contentdesk.core.config import settings
from contentdesk.models.common import utcnow
from contentdesk.models.enums import UserRole
from contentdesk.models.user import User
from contentdesk.services import dashboard
from contentdesk.services.audit_log import record_audit
from contentdesk.services.users import create_user

from helpers import make_blog, make_user

PASSWORD = "s3cret-pass"


def _login(client, api_db, role=UserRole.ADMIN, email="boss@example.com"):
    create_user(api_db, name="Boss", email=email, password=PASSWORD, role=role)
    res = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert res.status_code == 200, res.text
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_sets_cookies_and_me(client, api_db):
    body = _login(client, api_db)
    assert body["role"] == "admin"
    assert body["csrfToken"]
    assert settings.jwt_cookie_name in client.cookies
    assert settings.csrf_cookie_name in client.cookies

    me = client.get("/auth/me").json()
    assert me["email"] == "boss@example.com"


def test_login_rejects_bad_password(client, api_db):
    create_user(api_db, name="Boss", email="boss@example.com", password=PASSWORD, role=UserRole.ADMIN)
    res = client.post("/auth/login", json={"email": "boss@example.com", "password": "wrong-password"})
    assert res.status_code == 401


def test_analytics_requires_session(client):
    res = client.get("/analytics/staff")
    assert res.status_code == 401
    assert res.json()["detail"] == "Not authenticated"


def test_writers_cannot_read_analytics(client, api_db):
    _login(client, api_db, role=UserRole.WRITER)
    res = client.get("/analytics/blog")
    assert res.status_code == 403
    assert res.json()["detail"] == "Insufficient permissions"


@pytest.mark.parametrize("value", ["0", "366", "abc"])
def test_time_range_is_validated(client, api_db, value):
    _login(client, api_db)
    assert client.get("/analytics/tools", params={"timeRange": value}).status_code == 422


def test_staff_overview_uses_camel_case(client, api_db):
    _login(client, api_db)
    body = client.get("/analytics/staff", params={"timeRange": 7}).json()
    assert body["success"] is True
    assert body["timeRange"] == 7
    assert body["analytics"]["overview"]["totalAdmins"] == 1
    assert "loginFrequencyDistribution" in body["analytics"]


def test_staff_detail_unknown_member(client, api_db):
    _login(client, api_db)
    res = client.get("/analytics/staff", params={"staffId": 9999})
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Staff member not found"}


def test_staff_detail(client, api_db):
    _login(client, api_db)
    writer = make_user(api_db, "Wes", UserRole.WRITER)
    make_blog(api_db, writer, "Hello", created_at=utcnow())
    body = client.get("/analytics/staff", params={"staffId": writer.id, "timeRange": 7}).json()
    assert body["staffMember"]["name"] == "Wes"
    assert body["stats"]["blogsCreated"] == 1
    assert body["actionBreakdown"] == {"blog_creation_created": 1}


def test_unexpected_failure_is_generic(client, api_db, monkeypatch):
    _login(client, api_db)

    def boom(*args, **kwargs):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr("contentdesk.api.routes.analytics.writers_analytics", boom)
    res = client.get("/analytics/writers")
    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Failed to fetch writers analytics data"}


def test_dashboard_degrades_a_failing_section(client, api_db, monkeypatch):
    _login(client, api_db)

    def boom(*args, **kwargs):
        raise RuntimeError("timeout")

    monkeypatch.setattr(dashboard, "tools_analytics", boom)
    body = client.get("/analytics/dashboard", params={"timeRange": 7}).json()
    assert body["degraded"] == ["tools"]
    assert body["tools"]["ratingDistribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
    assert body["staff"]["overview"]["totalAdmins"] == 1


def test_activity_logs(client, api_db):
    body = _login(client, api_db)
    admin_id = body["id"]
    admin = api_db.get(User, admin_id)
    target = make_user(api_db, "Rita")
    record_audit(api_db, performer=admin, action="blocked", target_type="user", target_id=target.id, target_name="Rita")

    res = client.get("/admin/staff-analytics/activity-logs", params={"days": 7})
    data = res.json()["data"]
    assert data["summary"]["totalActivities"] == 1
    assert data["activities"][0]["description"] == "Blocked user Rita"
    assert data["activities"][0]["entityInfo"] == {"email": target.email, "role": "user"}


def test_activity_csv_export(client, api_db):
    body = _login(client, api_db)
    admin = api_db.get(User, body["id"])
    target = make_user(api_db, "Rita")
    record_audit(api_db, performer=admin, action="blocked", target_type="user", target_id=target.id, target_name="Rita")

    res = client.get("/analytics/staff/activity.csv")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert 'filename="staff-activity-complete-' in res.headers["content-disposition"]
    lines = res.content.decode("utf-8-sig").splitlines()
    assert len(lines) == 2
    assert "Blocked user Rita" in lines[1]

    res = client.get("/analytics/staff/activity.csv", params={"role": "writer"})
    assert 'filename="staff-activity-filtered-' in res.headers["content-disposition"]
    assert len(res.content.decode("utf-8-sig").splitlines()) == 1


def test_blog_posts_csv(client, api_db):
    _login(client, api_db)
    res = client.get("/analytics/blog/posts.csv", params={"timeRange": 7})
    assert res.status_code == 200
    assert res.content.startswith(b"\xef\xbb\xbf")
    assert res.content.decode("utf-8-sig").startswith("Title,Status,Category")


def test_writer_reads_own_report_only(client, api_db):
    body = _login(client, api_db, role=UserRole.WRITER, email="wes@example.com")
    make_blog(api_db, api_db.get(User, body["id"]), "Mine", created_at=utcnow(), views=12)
    other = make_user(api_db, "Ola", UserRole.WRITER)

    res = client.get(f"/analytics/writers/{body['id']}", params={"timeRange": 7})
    assert res.status_code == 200
    analytics = res.json()["analytics"]
    assert analytics["overview"]["totalViews"] == 12
    assert len(analytics["dailyStats"]) == 7
    assert analytics["topPosts"]["byViews"][0]["title"] == "Mine"

    res = client.get(f"/analytics/writers/{other.id}")
    assert res.status_code == 403
    assert res.json()["detail"] == "Can only view your own analytics"


def test_manager_reads_any_writer_report(client, api_db):
    _login(client, api_db, role=UserRole.MANAGER)
    writer = make_user(api_db, "Wes", UserRole.WRITER)
    res = client.get(f"/analytics/writers/{writer.id}")
    assert res.status_code == 200
    assert res.json()["analytics"]["author"]["name"] == "Wes"

    res = client.get("/analytics/writers/9999")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Writer not found"}


def test_readers_cannot_open_writer_report(client, api_db):
    body = _login(client, api_db, role=UserRole.USER, email="rita@example.com")
    res = client.get(f"/analytics/writers/{body['id']}")
    assert res.status_code == 403
    assert res.json()["detail"] == "Insufficient permissions"


def test_activity_logs_filters(client, api_db):
    body = _login(client, api_db)
    admin = api_db.get(User, body["id"])
    manager = make_user(api_db, "Max", UserRole.MANAGER)
    rita = make_user(api_db, "Rita")
    bob = make_user(api_db, "Bob")
    now = utcnow()
    record_audit(api_db, performer=admin, action="blocked", target_type="user", target_id=rita.id, target_name="Rita", timestamp=now - dt.timedelta(hours=3))
    record_audit(api_db, performer=admin, action="unblocked", target_type="user", target_id=rita.id, target_name="Rita", timestamp=now - dt.timedelta(hours=2))
    record_audit(api_db, performer=manager, action="blocked", target_type="user", target_id=bob.id, target_name="Bob", timestamp=now - dt.timedelta(hours=1))
    record_audit(api_db, performer=admin, action="blocked", target_type="user", target_id=bob.id, target_name="Bob", timestamp=now - dt.timedelta(days=400))

    def names(**params):
        data = client.get("/admin/staff-analytics/activity-logs", params=params).json()["data"]
        assert data["summary"]["totalActivities"] == len(data["activities"])
        return [(a["staffName"], a["action"], a["entityName"]) for a in data["activities"]]

    assert len(names()) == 3
    assert names(staff=manager.id) == [("Max", "blocked", "Bob")]
    assert names(action="unblocked") == [("Boss", "unblocked", "Rita")]
    assert names(search="BOB") == [("Max", "blocked", "Bob")]
    assert names(staff="all", action="all", role="manager") == [("Max", "blocked", "Bob")]
    assert len(names(days="all")) == 4
    assert names(days="all", search="bob", role="admin") == [("Boss", "blocked", "Bob")]


def test_activity_logs_days_validation(client, api_db):
    _login(client, api_db)
    res = client.get("/admin/staff-analytics/activity-logs", params={"days": 999})
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": f"days must be between 1 and {settings.max_time_range_days}"}
    assert client.get("/admin/staff-analytics/activity-logs", params={"days": "week"}).status_code == 422
    assert client.get("/admin/staff-analytics/activity-logs", params={"staff": "max"}).status_code == 422


def test_csrf_rejects_non_ascii_token(client, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    res = client.post(
        "/auth/me",
        headers={
            "Cookie": f"{settings.jwt_cookie_name}=session; {settings.csrf_cookie_name}=token",
            "X-CSRF-Token": "tokén".encode("latin-1"),
        },
    )
    assert res.status_code == 403
    assert res.json() == {"detail": "CSRF token missing/invalid"}
