"""Writes to the central audit log. Records are append-only."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session

from contentdesk.core.errors import InvalidArgumentError
from contentdesk.models.audit_log import AuditRecord
from contentdesk.models.common import utcnow
from contentdesk.models.enums import AuditAction, TargetType
from contentdesk.models.user import User
from contentdesk.services.categories import classify

logger = logging.getLogger(__name__)


def change(field: str, old_value: Any, new_value: Any) -> dict[str, Any]:
    return {"field": field, "old_value": old_value, "new_value": new_value}


def normalize_change(entry: Any) -> dict[str, Any] | None:
    """Snake-case copy of a change entry, or None when it has no field name."""
    if not isinstance(entry, dict):
        return None
    field = entry.get("field")
    if not isinstance(field, str) or not field:
        return None
    old_value = entry["old_value"] if "old_value" in entry else entry.get("oldValue")
    new_value = entry["new_value"] if "new_value" in entry else entry.get("newValue")
    return change(field, old_value, new_value)


def readable_changes(changes: Iterable[Any] | None) -> list[dict[str, Any]]:
    """Stored changes that can be shown; malformed entries are skipped."""
    out = []
    for entry in changes or ():
        normalized = normalize_change(entry)
        if normalized is None:
            logger.warning("Skipping malformed change entry %r", entry)
            continue
        out.append(normalized)
    return out


def record_audit(
    db: Session,
    *,
    performer: User,
    action: AuditAction | str,
    target_type: TargetType | str,
    target_id: int,
    target_name: str | None = None,
    changes: list[dict] | None = None,
    reason: str | None = None,
    details: dict | None = None,
    meta: dict | None = None,
    timestamp: dt.datetime | None = None,
) -> AuditRecord:
    if performer is None or performer.id is None:
        raise InvalidArgumentError("performer is required")
    if target_id is None:
        raise InvalidArgumentError("target_id is required")
    normalized_changes = []
    for entry in changes or []:
        normalized = normalize_change(entry)
        if normalized is None:
            raise InvalidArgumentError("each change needs a field name")
        normalized_changes.append(normalized)

    action = AuditAction(action).value
    target_type = TargetType(str(getattr(target_type, "value", target_type)).lower()).value
    record = AuditRecord(
        timestamp=timestamp or utcnow(),
        performed_by_id=performer.id,
        performed_by_name=performer.name,
        performed_by_role=performer.role.value,
        category=classify(action, target_type).value,
        action=action,
        target_type=target_type,
        target_id=target_id,
        target_name=target_name,
        changes=normalized_changes,
        reason=reason,
        details=details or {},
        meta=meta or {},
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
