from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contentdesk.api.router import api_router
from contentdesk.core.config import settings
from contentdesk.core.errors import AnalyticsError
from contentdesk.core.security import constant_time_equals
from contentdesk.db.init_db import ensure_seeded
from contentdesk.db.session import Base, SessionLocal, engine

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)

    origins = settings.cors_origins
    logger.info("CORS allow_origins=%s", origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.exception_handler(AnalyticsError)
    async def _analytics_error(request: Request, exc: AnalyticsError):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    _CSRF_EXEMPT_PATHS = frozenset({"/auth/login", "/auth/logout"})

    @app.middleware("http")
    async def _csrf_middleware(request: Request, call_next):
        """
        Production CSRF protection for cookie-auth endpoints.
        - Only enforced in production, for unsafe methods, when the session cookie is present.
        - Login and logout are exempt.
        """
        if settings.environment == "production":
            if request.method.upper() in {"POST", "PUT", "PATCH", "DELETE"}:
                path = request.url.path.rstrip("/") or "/"
                if path not in _CSRF_EXEMPT_PATHS and request.cookies.get(settings.jwt_cookie_name):
                    csrf_cookie = request.cookies.get(settings.csrf_cookie_name)
                    csrf_header = request.headers.get("X-CSRF-Token")
                    if not constant_time_equals(csrf_cookie, csrf_header):
                        return JSONResponse(status_code=403, content={"detail": "CSRF token missing/invalid"})
        return await call_next(request)

    @app.on_event("startup")
    def _startup() -> None:
        """
        Local-dev helper: run without Postgres.
        - Creates tables (without Alembic) when DATABASE_URL points at sqlite.
        - Seeds an admin account so login works immediately.
        """
        db_url = settings.database_url or ""
        if settings.environment == "development" and db_url.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
            db = SessionLocal()
            try:
                ensure_seeded(db)
            finally:
                db.close()

    app.include_router(api_router)
    return app


app = create_app()
