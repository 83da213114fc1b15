import codecs
import csv
import datetime as dt
import io

from contentdesk.models.enums import ActivityCategory, BlogStatus, EventSource, UserRole
from contentdesk.schemas.analytics import ActivityFeedEntry, ChangeOut
from contentdesk.services.csv_export import (
    ACTIVITY_HEADERS,
    POST_HEADERS,
    activity_csv,
    activity_filename,
    filter_feed,
    format_changes,
    format_time,
    posts_csv,
)

from helpers import NOW, ago, make_blog, make_user


def _rows(data: bytes) -> list[list[str]]:
    assert data.startswith(codecs.BOM_UTF8)
    return list(csv.reader(io.StringIO(data.decode("utf-8-sig"))))


def _entry(**kw) -> ActivityFeedEntry:
    base = dict(
        id="audit-1",
        timestamp=dt.datetime(2026, 3, 5, 14, 7, 9, tzinfo=dt.timezone.utc),
        staff_id=1,
        staff_name="Ada",
        staff_email="ada@example.com",
        staff_role="admin",
        action="rejected",
        category=ActivityCategory.BLOG_MODERATION,
        entity_type="blog",
        entity_id=7,
        entity_name='Launch, "v2"',
        entity_info={"author": "Wes", "status": "rejected"},
        description='Rejected blog post "Launch, v2"',
        reason="Too short",
        source=EventSource.CENTRALIZED_AUDIT,
    )
    base.update(kw)
    return ActivityFeedEntry(**base)


def test_format_time_twelve_hour_clock():
    assert format_time(dt.datetime(2026, 3, 5, 0, 5, 9)) == "12:05:09 AM"
    assert format_time(dt.datetime(2026, 3, 5, 14, 7, 9)) == "2:07:09 PM"


def test_format_changes():
    changes = [ChangeOut(field="role", old_value="user", new_value="writer"), ChangeOut(field="image", new_value="a.png")]
    assert format_changes(changes) == 'role: "user" → "writer" | image: "" → "a.png"'


def test_activity_csv_header_only_when_empty():
    assert _rows(activity_csv([])) == [ACTIVITY_HEADERS]


def test_activity_csv_row():
    entry = _entry(changes=[ChangeOut(field="status", old_value="pending_approval", new_value="rejected")])
    header, row = _rows(activity_csv([entry]))

    assert header == ACTIVITY_HEADERS
    record = dict(zip(header, row))
    assert record["Date"] == "3/5/2026"
    assert record["Time"] == "2:07:09 PM"
    assert record["Entity Name"] == 'Launch, "v2"'
    assert record["Changes Count"] == "1"
    assert record["Field Changes"] == 'status: "pending_approval" → "rejected"'
    assert record["Author Name"] == "Wes"
    assert record["Rating"] == ""
    assert record["Source"] == "centralized_audit"
    assert record["ISO Timestamp"] == "2026-03-05T14:07:09+00:00"


def test_quoting_is_minimal():
    text = activity_csv([_entry()]).decode("utf-8-sig")
    assert '"Launch, ""v2"""' in text
    assert ",Too short," in text


def test_quoted_fields_read_back_unchanged():
    tricky = 'a,"b"\nc'
    data = activity_csv([_entry(entity_name=tricky, reason="plain")])
    text = data.decode("utf-8-sig")

    assert '"a,""b""\nc"' in text
    assert ",plain," in text
    records = list(csv.DictReader(io.StringIO(text)))
    assert len(records) == 1
    assert records[0]["Entity Name"] == tricky
    assert records[0]["Reason"] == "plain"


def test_filter_feed():
    entries = [
        _entry(),
        _entry(id="audit-2", staff_id=2, staff_name="Max", staff_role="manager", action="hidden", entity_type="review"),
        _entry(id="audit-3", entity_type="tool", action="created", entity_info={"category": "Design"}, reason=None),
    ]
    assert [e.id for e in filter_feed(entries, staff_id=2)] == ["audit-2"]
    assert [e.id for e in filter_feed(entries, role="ADMIN")] == ["audit-1", "audit-3"]
    assert [e.id for e in filter_feed(entries, entity_type="tool")] == ["audit-3"]
    assert [e.id for e in filter_feed(entries, action="hidden")] == ["audit-2"]
    assert [e.id for e in filter_feed(entries, q="design")] == ["audit-3"]
    assert len(filter_feed(entries)) == 3


def test_activity_filename():
    assert activity_filename(False, NOW) == "staff-activity-complete-2026-03-15-12-00-00.csv"
    assert activity_filename(True, NOW) == "staff-activity-filtered-2026-03-15-12-00-00.csv"


def test_posts_csv(db):
    writer = make_user(db, "Wes", UserRole.WRITER)
    make_blog(db, writer, "Hit", views=200, likes=20, comments=10, categories=["AI"], published_at=ago(days=1))
    make_blog(db, writer, "Draft", views=0, status=BlogStatus.DRAFT, created_at=ago(days=3))
    make_blog(db, writer, "Old", views=999, created_at=ago(days=90))

    filename, data = posts_csv(db, 30, now=NOW)
    rows = _rows(data)

    assert filename == "blog-posts-30days-2026-03-15.csv"
    assert rows[0] == POST_HEADERS
    assert rows[1] == ["Hit", "published", "AI", "200", "20", "10", "15.0", "3/14/2026", "3/13/2026", "3/13/2026"]
    assert rows[2][:3] == ["Draft", "draft", "Uncategorized"]
    assert rows[2][6:8] == ["0.0", "Not published"]
    assert len(rows) == 3


def test_posts_csv_empty(db):
    _, data = posts_csv(db, 7, now=NOW)
    assert _rows(data) == [POST_HEADERS]
