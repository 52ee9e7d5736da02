"""Statistics per product and per user."""
from __future__ import annotations

from collections import defaultdict

from flask import Blueprint, abort, request
from flask_login import login_required
from sqlalchemy import func

from .aggregates import summarize_by_product
from .audit import ACTION_CREATE_LOG, ACTION_UPDATE, LOGS_TABLE
from .extensions import db
from .models import AuditLog, MicrobiologyLog, User
from .validation import Validator


statistics_bp = Blueprint("statistics", __name__)


def user_activity() -> list[dict]:
    users = User.query.all()
    created: dict[int, int] = defaultdict(int)
    updated: dict[int, int] = defaultdict(int)
    touched: dict[int, int] = defaultdict(int)

    counts = (
        db.session.query(AuditLog.user_id, AuditLog.action, func.count(AuditLog.id))
        .filter(
            AuditLog.table_name == LOGS_TABLE,
            AuditLog.action.in_([ACTION_CREATE_LOG, ACTION_UPDATE]),
            AuditLog.user_id.isnot(None),
        )
        .group_by(AuditLog.user_id, AuditLog.action)
        .all()
    )
    for user_id, action, total in counts:
        if action == ACTION_CREATE_LOG:
            created[user_id] = total
        else:
            updated[user_id] = total

    # Distinct sheets among the rows each user updated.
    sheets = (
        db.session.query(AuditLog.user_id, MicrobiologyLog.table_name, MicrobiologyLog.table_date)
        .join(MicrobiologyLog, MicrobiologyLog.id == AuditLog.record_id)
        .filter(
            AuditLog.table_name == LOGS_TABLE,
            AuditLog.action == ACTION_UPDATE,
            AuditLog.user_id.isnot(None),
        )
        .distinct()
        .all()
    )
    for user_id, _table_name, _table_date in sheets:
        touched[user_id] += 1

    activity = [
        {
            "id": user.id,
            "name": user.name,
            "tables_created": created[user.id],
            "rows_updated": updated[user.id],
            "tables_touched": touched[user.id],
        }
        for user in users
    ]
    activity.sort(key=lambda item: (-item["tables_created"], -item["rows_updated"], item["name"]))
    return activity


@statistics_bp.route("/", methods=["GET"])
@login_required
def show_statistics():
    validator = Validator()
    product = (request.args.get("product") or "").strip()
    date_from = (request.args.get("date_from") or "").strip()
    date_to = (request.args.get("date_to") or "").strip()
    if not validator.validate_date("date_from", date_from, "From date"):
        abort(400, description=validator.first_error())
    if not validator.validate_date("date_to", date_to, "To date"):
        abort(400, description=validator.first_error())

    query = MicrobiologyLog.query
    if product:
        query = query.filter(MicrobiologyLog.product.contains(product, autoescape=True))
    if date_from:
        query = query.filter(MicrobiologyLog.table_date >= validator.sanitize_date(date_from))
    if date_to:
        query = query.filter(MicrobiologyLog.table_date <= validator.sanitize_date(date_to))
    rows = query.order_by(
        MicrobiologyLog.product,
        MicrobiologyLog.table_date,
        MicrobiologyLog.row_index,
        MicrobiologyLog.id,
    ).all()

    products = summarize_by_product(
        {**row.editable_values(), "table_date": row.table_date} for row in rows
    )
    return {
        "filters": {"product": product, "date_from": date_from, "date_to": date_to},
        "products": [stats.to_dict() for stats in products],
        "users": user_activity(),
    }
