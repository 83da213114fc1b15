"""Combined dashboard payload.

The four sections load concurrently, each in its own worker thread with its own
session. A failing section is logged and replaced by its empty shape; the
others are unaffected.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from contentdesk.models.common import utcnow
from contentdesk.schemas.analytics import BlogAnalytics, DashboardResponse, StaffAnalytics, ToolsAnalytics
from contentdesk.services.blog_analytics import blog_analytics
from contentdesk.services.metrics import window_bounds
from contentdesk.services.staff_analytics import staff_overview
from contentdesk.services.tool_analytics import tools_analytics
from contentdesk.services.writer_analytics import writers_analytics

logger = logging.getLogger(__name__)


def _sections() -> dict[str, tuple[Callable[[Session, int, dt.datetime], Any], Callable[[], Any]]]:
    # name -> (loader, empty default)
    return {
        "tools": (lambda db, days, now: tools_analytics(db, days, now).analytics, ToolsAnalytics),
        "blog": (lambda db, days, now: blog_analytics(db, days, now).analytics, BlogAnalytics),
        "staff": (lambda db, days, now: staff_overview(db, days, now).analytics, StaffAnalytics),
        "writers": (lambda db, days, now: writers_analytics(db, days, now).writers, list),
    }


def _run_section(session_factory: sessionmaker, name: str, loader, default, days: int, now: dt.datetime):
    db = None
    try:
        db = session_factory()
        return name, loader(db, days, now), False
    except Exception:
        logger.exception("Dashboard section %s failed; serving empty defaults", name)
        return name, default(), True
    finally:
        if db is not None:
            db.close()


async def load_dashboard(session_factory: sessionmaker, days: int, now: dt.datetime | None = None) -> DashboardResponse:
    now = now or utcnow()
    window_bounds(days, now)  # reject a bad range before any section starts

    results = await asyncio.gather(
        *(
            run_in_threadpool(_run_section, session_factory, name, loader, default, days, now)
            for name, (loader, default) in _sections().items()
        )
    )

    payload: dict[str, Any] = {}
    degraded: list[str] = []
    for name, value, failed in results:
        payload[name] = value
        if failed:
            degraded.append(name)
    if degraded:
        logger.warning("Dashboard served with degraded sections: %s", ", ".join(degraded))
    return DashboardResponse(time_range=days, degraded=degraded, **payload)
