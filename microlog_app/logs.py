"""Log sheet endpoints: create, search, edit and export."""
from __future__ import annotations

import csv
import io
from datetime import date
from typing import Any, Optional

from flask import Blueprint, Response, abort, current_app, request
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from .audit import (
    ACTION_CREATE_LOG,
    ACTION_UPDATE,
    LOGS_TABLE,
    history_for,
    last_editors,
    record_audit,
    sheet_creators,
)
from .extensions import db
from .incubation import INCUBATION_PROFILES, parse_profile_keys
from .models import RESULT_COLUMNS, TEXT_COLUMNS, MicrobiologyLog
from .thresholds import flagged_columns
from .timeutil import local_today
from .validation import Validator


logs_bp = Blueprint("logs", __name__)

RESULT_LABELS = {
    "enterobacteriacea": "Enterobacteriacea",
    "tmc_30": "TMC 30°C",
    "yeasts_molds": "Yeasts / molds",
    "bacillus": "Bacillus",
}
TEXT_LIMITS = {
    "eval_2nd": 500,
    "eval_3rd": 500,
    "eval_4th": 500,
    "stress_test": 500,
    "comments": 1000,
}
ROW_FIELDS = ("product", "code", "expiration_date") + RESULT_COLUMNS + TEXT_COLUMNS


def _is_blank_row(raw: dict[str, Any]) -> bool:
    return all(not str(raw.get(field) or "").strip() for field in ROW_FIELDS)


def _clean_row(validator: Validator, raw: dict[str, Any], prefix: str) -> dict[str, Any]:
    row: dict[str, Any] = {
        "product": validator.sanitize_string(raw.get("product"), 200),
        "code": validator.sanitize_string(raw.get("code"), 100),
    }
    validator.validate_date(f"{prefix}.expiration_date", raw.get("expiration_date"), "Expiration date")
    row["expiration_date"] = validator.sanitize_date(raw.get("expiration_date"))
    for column in RESULT_COLUMNS:
        row[column] = validator.sanitize_result(
            f"{prefix}.{column}", raw.get(column), RESULT_LABELS[column]
        )
    for column in TEXT_COLUMNS:
        row[column] = validator.sanitize_string(raw.get(column), TEXT_LIMITS[column])
    return row


def _as_int(value: Any, fallback: int) -> int:
    if value is None or value == "":
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _date_arg(validator: Validator, name: str, label: str) -> Optional[date]:
    value = (request.args.get(name) or "").strip()
    if not value:
        return None
    if not validator.validate_date(name, value, label):
        abort(400, description=validator.first_error())
    return validator.sanitize_date(value)


def _commit(context: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[%s] DB error", context)
        abort(500, description="Temporary database error. Try again.")


def search_rows(
    table_date: Optional[date] = None,
    product: str = "",
    code: str = "",
    expiration_date: Optional[date] = None,
) -> list[MicrobiologyLog]:
    query = MicrobiologyLog.query
    if table_date:
        query = query.filter(MicrobiologyLog.table_date == table_date)
    if product:
        query = query.filter(MicrobiologyLog.product.contains(product, autoescape=True))
    if code:
        query = query.filter(MicrobiologyLog.code.contains(code, autoescape=True))
    if expiration_date:
        query = query.filter(MicrobiologyLog.expiration_date == expiration_date)
    return query.order_by(
        MicrobiologyLog.product, MicrobiologyLog.code, MicrobiologyLog.row_index
    ).all()


def search_tables(table_date: date, table_name: str = "") -> list[dict[str, Any]]:
    """Rows of ``table_date`` grouped into sheets, with creator and editors."""
    query = MicrobiologyLog.query.filter(MicrobiologyLog.table_date == table_date)
    if table_name:
        query = query.filter(MicrobiologyLog.table_name.contains(table_name, autoescape=True))
    rows = query.order_by(
        MicrobiologyLog.table_name, MicrobiologyLog.row_index, MicrobiologyLog.id
    ).all()

    creators = sheet_creators() if rows else {}
    editors = last_editors(row.id for row in rows)
    groups: dict[tuple[str, str], dict[str, Any]] = {}
    for row in rows:
        key = (row.table_name, row.table_date.isoformat())
        group = groups.get(key)
        if group is None:
            group = groups[key] = {
                "meta": {
                    "table_name": row.table_name,
                    "table_date": row.table_date.isoformat(),
                    "description": row.table_description,
                    "incubation_profile": list(parse_profile_keys(row.incubation_profile)),
                    "created_by": creators.get(key),
                },
                "rows": [],
            }
        payload = row.to_dict()
        payload["last_edited_by"] = editors.get(row.id)
        group["rows"].append(payload)
    return list(groups.values())


@logs_bp.route("/", methods=["POST"])
@login_required
def create_sheet():
    payload = request.get_json(silent=True) or {}
    validator = Validator()

    table_name = validator.sanitize_string(payload.get("table_name"), 200)
    table_date = validator.sanitize_date(payload.get("table_date"))
    description = validator.sanitize_string(payload.get("table_description"), 1000)
    profile_keys = [
        validator.sanitize_string(key, 50)
        for key in parse_profile_keys(payload.get("incubation_profile"))
    ]
    unknown = [key for key in profile_keys if key not in INCUBATION_PROFILES]
    if unknown:
        current_app.logger.info("Storing unknown incubation profile keys %s", unknown)

    if not validator.validate_required("table_name", table_name, "Table name"):
        abort(400, description=validator.first_error())
    if not validator.validate_required("table_date", table_date, "Table date"):
        abort(400, description=validator.first_error())

    raw_rows = payload.get("rows") or []
    if not isinstance(raw_rows, list) or not raw_rows:
        abort(400, description="At least one row is required")

    header = {
        "table_name": table_name,
        "table_description": description,
        "table_date": table_date,
        "incubation_profile": ",".join(key for key in profile_keys if key),
    }
    entries = []
    for position, raw in enumerate(raw_rows):
        if not isinstance(raw, dict) or _is_blank_row(raw):
            continue
        values = _clean_row(validator, raw, f"rows[{position}]")
        values["row_index"] = _as_int(raw.get("row_index"), len(entries) + 1)
        entries.append(MicrobiologyLog(**header, **values))

    if validator.has_errors():
        return {"error": validator.first_error(), "errors": validator.errors}, 400
    if not entries:
        abort(400, description="No non-empty rows to save")

    db.session.add_all(entries)
    _commit("create_sheet")
    ids = [entry.id for entry in entries]
    record_audit(
        ACTION_CREATE_LOG,
        LOGS_TABLE,
        None,
        None,
        {"table_name": table_name, "table_date": table_date, "rows_inserted": len(entries)},
    )
    current_app.logger.info("Created sheet %s (%s) with %d rows", table_name, table_date, len(ids))
    return {"message": "Created", "rows": len(ids), "ids": ids}, 201


@logs_bp.route("/rows", methods=["GET"])
@login_required
def row_search():
    validator = Validator()
    table_date = _date_arg(validator, "table_date", "Table date")
    expiration_date = _date_arg(validator, "expiration_date", "Expiration date")
    product = (request.args.get("product") or "").strip()
    code = (request.args.get("code") or "").strip()

    if not (table_date or product or code or expiration_date):
        abort(400, description="Please set at least one filter for row search.")

    rows = search_rows(table_date, product, code, expiration_date)
    return {"rows": [row.to_dict() for row in rows]}


@logs_bp.route("/tables", methods=["GET"])
@login_required
def table_search():
    validator = Validator()
    table_date = _date_arg(validator, "table_date", "Table date")
    if table_date is None:
        abort(400, description="Date is required for table search.")
    table_name = (request.args.get("table_name") or "").strip()
    return {"tables": search_tables(table_date, table_name)}


@logs_bp.route("/rows", methods=["PUT"])
@login_required
def update_rows():
    payload = request.get_json(silent=True) or {}
    raw_rows = payload.get("rows") or []
    if not isinstance(raw_rows, list) or not raw_rows:
        abort(400, description="No rows to update")

    validator = Validator()
    changes: list[tuple[int, dict[str, Any], dict[str, Any]]] = []
    unchanged = 0
    for position, raw in enumerate(raw_rows):
        if not isinstance(raw, dict):
            continue
        row_id = _as_int(raw.get("id"), 0)
        if row_id <= 0:
            continue
        row = db.session.get(MicrobiologyLog, row_id)
        if row is None:
            continue

        old_values = row.editable_values()
        new_values = _clean_row(validator, raw, f"rows[{position}]")
        new_values["row_index"] = _as_int(raw.get("row_index"), row.row_index)
        changed = {key for key, value in new_values.items() if old_values.get(key) != value}
        if not changed:
            unchanged += 1
            continue

        for key in changed:
            setattr(row, key, new_values[key])
        changes.append(
            (
                row.id,
                {key: old_values[key] for key in sorted(changed)},
                {key: new_values[key] for key in sorted(changed)},
            )
        )

    if validator.has_errors():
        db.session.rollback()
        return {"error": validator.first_error(), "errors": validator.errors}, 400

    _commit("update_rows")
    for row_id, old, new in changes:
        record_audit(ACTION_UPDATE, LOGS_TABLE, row_id, old, new)
    return {"updated": len(changes), "unchanged": unchanged}


@logs_bp.route("/rows/<int:row_id>/history", methods=["GET"])
@login_required
def row_history(row_id: int):
    if db.session.get(MicrobiologyLog, row_id) is None:
        abort(404, description="Row not found")
    return {"history": [entry.to_dict() for entry in history_for(LOGS_TABLE, row_id)]}


@logs_bp.route("/export.csv", methods=["GET"])
@login_required
def export_csv():
    mode = (request.args.get("mode") or "rows").strip().lower()
    validator = Validator()
    table_date = _date_arg(validator, "table_date", "Table date")

    if mode == "rows":
        expiration_date = _date_arg(validator, "expiration_date", "Expiration date")
        product = (request.args.get("product") or "").strip()
        code = (request.args.get("code") or "").strip()
        if not (table_date or product or code or expiration_date):
            abort(400, description="Please set at least one filter for row search.")
        rows = search_rows(table_date, product, code, expiration_date)
    elif mode == "table":
        table_name = (request.args.get("table_name") or "").strip()
        if table_date is None or not table_name:
            abort(400, description="Table name and date are required.")
        rows = (
            MicrobiologyLog.query.filter_by(table_date=table_date, table_name=table_name)
            .order_by(MicrobiologyLog.row_index, MicrobiologyLog.id)
            .all()
        )
    else:
        abort(400, description="Invalid export mode.")

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        [
            "Table",
            "Table date",
            "#",
            "Product",
            "Code",
            "Expiration date",
            *RESULT_LABELS.values(),
            "2nd evaluation",
            "3rd evaluation",
            "4th evaluation",
            "Stress test",
            "Comments",
            "Out of spec",
        ]
    )
    for row in rows:
        values = row.editable_values()
        writer.writerow(
            [
                row.table_name,
                row.table_date.strftime("%d-%m-%Y"),
                row.row_index,
                row.product,
                row.code,
                row.expiration_date.strftime("%d-%m-%Y") if row.expiration_date else "",
                *(values[column] or "" for column in RESULT_COLUMNS),
                *(values[column] for column in TEXT_COLUMNS),
                ", ".join(RESULT_LABELS[column] for column in flagged_columns(values)),
            ]
        )

    output.seek(0)
    filename = f"microbiology_{mode}_{local_today().strftime('%Y%m%d')}.csv"
    return Response(
        output.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
