from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from contentdesk.core.config import settings
from contentdesk.core.security import hash_password
from contentdesk.models.enums import UserRole
from contentdesk.models.user import User
from contentdesk.services.users import create_user

logger = logging.getLogger(__name__)


def upsert_user(db: Session, *, name: str, email: str, password: str, role: UserRole) -> User:
    """
    Seed helper:
    - If the user exists, reset password + role (local dev can recover credentials without wiping the DB).
    - Otherwise create it.
    """
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user:
        user.password_hash = hash_password(password)
        user.role = role
        user.is_active = True
        user.is_blocked = False
        db.commit()
        return user
    return create_user(db, name=name, email=email, password=password, role=role)


def ensure_seeded(db: Session) -> None:
    if db.query(User).first():
        return
    upsert_user(
        db,
        name="Admin",
        email=settings.seed_admin_email,
        password=settings.seed_admin_password,
        role=UserRole.ADMIN,
    )
    logger.info("Seeded admin account %s", settings.seed_admin_email)


if __name__ == "__main__":
    from contentdesk.db.session import SessionLocal

    db = SessionLocal()
    try:
        ensure_seeded(db)
        print("Seeded admin account.")
    finally:
        db.close()
