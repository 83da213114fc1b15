from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from contentdesk.api.deps import require_auth
from contentdesk.core.config import settings
from contentdesk.core.security import create_access_token, create_csrf_token
from contentdesk.db.session import get_db
from contentdesk.models.user import User
from contentdesk.schemas.auth import LoginRequest, UserOut
from contentdesk.services.users import authenticate_user

router = APIRouter()


@router.post("/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.email, payload.password)
    token = create_access_token(subject=str(user.id), role=user.role.value)
    csrf = create_csrf_token()
    # SameSite=None so the cookie travels on cross-origin dashboard requests.
    samesite = "none" if settings.environment == "production" else "lax"
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=settings.environment == "production",
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    # Readable by JS; echoed back in X-CSRF-Token on unsafe methods in production.
    response.set_cookie(
        settings.csrf_cookie_name,
        csrf,
        httponly=False,
        secure=settings.environment == "production",
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    return UserOut(id=user.id, name=user.name, email=user.email, role=user.role.value, csrf_token=csrf)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_auth)):
    return UserOut(id=user.id, name=user.name, email=user.email, role=user.role.value)
