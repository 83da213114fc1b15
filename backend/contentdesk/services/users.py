from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from contentdesk.core.security import hash_password, verify_password
from contentdesk.models.common import utcnow
from contentdesk.models.enums import UserRole
from contentdesk.models.user import User

logger = logging.getLogger(__name__)


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not user.is_active or user.is_blocked:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    logger.info("Login user_id=%s role=%s", user.id, user.role.value)
    return user


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.USER,
) -> User:
    email = email.strip().lower()
    exists = db.query(User).filter(User.email == email).first()
    if exists:
        return exists
    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
