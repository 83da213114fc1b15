"""Central audit log of staff actions. Append-only."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contentdesk.db.session import Base
from contentdesk.models.common import utcnow


class AuditRecord(Base):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_performer_timestamp", "performed_by_id", "timestamp"),
        Index("ix_audit_log_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    performed_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    performed_by_name: Mapped[str] = mapped_column(String(120))
    performed_by_role: Mapped[str] = mapped_column(String(32))

    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), index=True)
    target_type: Mapped[str] = mapped_column(String(32))
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_name: Mapped[str | None] = mapped_column(String(300), nullable=True)

    changes: Mapped[list | None] = mapped_column(JSON, nullable=True)  # [{field, old_value, new_value}]
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)  # ip_address, user_agent, session_id

    performer = relationship("User")
