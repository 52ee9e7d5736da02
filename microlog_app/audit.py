"""Audit trail for log sheet changes."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from flask import has_request_context, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import AuditLog, MicrobiologyLog, User

logger = logging.getLogger(__name__)

ACTION_CREATE_LOG = "CREATE_LOG"
ACTION_UPDATE = "UPDATE"
LOGS_TABLE = MicrobiologyLog.__tablename__


def _jsonable(values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not values:
        return None
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in values.items()
    }


def record_audit(
    action: str,
    table_name: str,
    record_id: int | None = None,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> None:
    """Write an audit entry in its own commit.

    Call after the audited change has been committed. Audit entries are
    non-critical: a failure is logged and rolled back, never raised.
    """
    user_id = None
    if current_user and current_user.is_authenticated:
        user_id = current_user.id

    ip_address = "unknown"
    user_agent = ""
    if has_request_context():
        ip_address = request.remote_addr or "unknown"
        user_agent = (request.user_agent.string or "")[:500]

    entry = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to write audit entry %s for %s#%s", action, table_name, record_id)


def history_for(table_name: str, record_id: int, limit: int = 50) -> list[AuditLog]:
    return (
        AuditLog.query.filter_by(table_name=table_name, record_id=record_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def sheet_creators() -> dict[tuple[str, str], Optional[str]]:
    """Creator name per ``(table_name, table_date)``; the first creator wins."""
    entries = (
        db.session.query(AuditLog, User.name)
        .outerjoin(User, User.id == AuditLog.user_id)
        .filter(AuditLog.table_name == LOGS_TABLE, AuditLog.action == ACTION_CREATE_LOG)
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )
    creators: dict[tuple[str, str], Optional[str]] = {}
    for entry, name in entries:
        payload = entry.new_values or {}
        table_name = payload.get("table_name")
        table_date = payload.get("table_date")
        if not table_name or not table_date:
            continue
        creators.setdefault((table_name, table_date), name)
    return creators


def last_editors(record_ids: Iterable[int]) -> dict[int, Optional[str]]:
    """Most recent user to touch each row id."""
    ids = sorted({int(record_id) for record_id in record_ids})
    if not ids:
        return {}
    entries = (
        db.session.query(AuditLog.record_id, User.name)
        .outerjoin(User, User.id == AuditLog.user_id)
        .filter(AuditLog.table_name == LOGS_TABLE, AuditLog.record_id.in_(ids))
        .order_by(AuditLog.record_id.asc(), AuditLog.created_at.desc(), AuditLog.id.desc())
        .all()
    )
    editors: dict[int, Optional[str]] = {}
    for record_id, name in entries:
        editors.setdefault(record_id, name)
    return editors
