import asyncio
import itertools
import logging
import threading

import pytest

from contentdesk.core.errors import InvalidArgumentError
from contentdesk.models.enums import UserRole
from contentdesk.services import dashboard

from helpers import NOW, make_blog, make_tool, make_user


def _seed(session_factory):
    db = session_factory()
    try:
        writer = make_user(db, "Wes", UserRole.WRITER)
        make_blog(db, writer, "Hello", views=40, likes=4)
        make_tool(db, "Figma", rating=4.0)
    finally:
        db.close()


def test_dashboard_loads_all_sections(session_factory):
    _seed(session_factory)
    result = asyncio.run(dashboard.load_dashboard(session_factory, 7, now=NOW))

    assert result.degraded == []
    assert result.time_range == 7
    assert result.blog.overview.total_posts == 1
    assert result.tools.overview.total_tools == 1
    assert result.staff.overview.total_writers == 1
    assert [w.name for w in result.writers] == ["Wes"]


def test_failing_section_degrades_alone(session_factory, monkeypatch, caplog):
    _seed(session_factory)

    def boom(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(dashboard, "blog_analytics", boom)
    with caplog.at_level(logging.WARNING, logger="contentdesk.services.dashboard"):
        result = asyncio.run(dashboard.load_dashboard(session_factory, 7, now=NOW))

    assert result.degraded == ["blog"]
    assert result.blog.overview.total_posts == 0
    assert result.blog.daily_stats == []
    assert result.tools.overview.total_tools == 1
    assert [w.name for w in result.writers] == ["Wes"]
    assert "Dashboard section blog failed" in caplog.text


def test_dashboard_rejects_bad_range(session_factory):
    with pytest.raises(InvalidArgumentError):
        asyncio.run(dashboard.load_dashboard(session_factory, 0, now=NOW))


def test_unopenable_session_degrades_every_section():
    def broken_factory():
        raise RuntimeError("connection pool exhausted")

    result = asyncio.run(dashboard.load_dashboard(broken_factory, 7, now=NOW))

    assert result.degraded == ["tools", "blog", "staff", "writers"]
    assert result.writers == []


def test_one_unopenable_session_degrades_one_section(session_factory):
    _seed(session_factory)
    calls = itertools.count()
    lock = threading.Lock()

    def flaky_factory():
        with lock:
            n = next(calls)
        if n == 0:
            raise RuntimeError("connection refused")
        return session_factory()

    result = asyncio.run(dashboard.load_dashboard(flaky_factory, 7, now=NOW))

    assert len(result.degraded) == 1
    assert set(result.degraded) < {"tools", "blog", "staff", "writers"}
