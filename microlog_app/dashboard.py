"""Dashboard: headline counts, recent sheets and the incubation calendar."""
from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import Blueprint, current_app
from flask_login import login_required
from sqlalchemy import func

from .extensions import db
from .incubation import LogSheet, calendar_days, parse_profile_keys, parse_timestamp, project_due_events
from .models import MicrobiologyLog
from .thresholds import count_out_of_spec
from .timeutil import today_window_start


dashboard_bp = Blueprint("dashboard", __name__)

RECENT_TABLES_LIMIT = 5
OUT_OF_SPEC_DAYS = 30


def headline_stats(today: date) -> dict:
    total_rows = db.session.query(func.count(MicrobiologyLog.id)).scalar() or 0
    today_rows = (
        db.session.query(func.count(MicrobiologyLog.id))
        .filter(MicrobiologyLog.table_date == today)
        .scalar()
        or 0
    )
    last7_rows = (
        db.session.query(func.count(MicrobiologyLog.id))
        .filter(MicrobiologyLog.table_date >= today - timedelta(days=7))
        .scalar()
        or 0
    )
    distinct_products = (
        db.session.query(func.count(func.distinct(MicrobiologyLog.product)))
        .filter(MicrobiologyLog.product != "")
        .scalar()
        or 0
    )

    recent = MicrobiologyLog.query.filter(
        MicrobiologyLog.table_date >= today - timedelta(days=OUT_OF_SPEC_DAYS)
    ).all()
    out_counts = count_out_of_spec(row.editable_values() for row in recent)

    return {
        "total_rows": total_rows,
        "today_rows": today_rows,
        "last7_rows": last7_rows,
        "distinct_products": distinct_products,
        "out_last30": {analyte.value: count for analyte, count in out_counts.items()},
        "out_last30_total": sum(out_counts.values()),
    }


def recent_tables(limit: int = RECENT_TABLES_LIMIT) -> list[dict]:
    rows = (
        db.session.query(
            MicrobiologyLog.table_name,
            MicrobiologyLog.table_date,
            MicrobiologyLog.table_description,
            func.count(MicrobiologyLog.id).label("rows_count"),
        )
        .group_by(
            MicrobiologyLog.table_name,
            MicrobiologyLog.table_date,
            MicrobiologyLog.table_description,
        )
        .order_by(MicrobiologyLog.table_date.desc(), MicrobiologyLog.table_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "table_name": row.table_name,
            "table_date": row.table_date.isoformat(),
            "description": row.table_description,
            "rows_count": row.rows_count,
        }
        for row in rows
    ]


def load_sheets() -> list[LogSheet]:
    """One sheet per header and profile, stamped with its earliest row."""
    rows = (
        db.session.query(
            MicrobiologyLog.table_name,
            MicrobiologyLog.table_date,
            MicrobiologyLog.table_description,
            MicrobiologyLog.incubation_profile,
            func.min(MicrobiologyLog.created_at).label("created_at"),
        )
        .filter(MicrobiologyLog.incubation_profile != "")
        .group_by(
            MicrobiologyLog.table_name,
            MicrobiologyLog.table_date,
            MicrobiologyLog.table_description,
            MicrobiologyLog.incubation_profile,
        )
        .order_by(MicrobiologyLog.table_date, MicrobiologyLog.table_name)
        .all()
    )

    sheets = []
    for row in rows:
        if parse_timestamp(row.created_at) is None:
            current_app.logger.warning(
                "Skipping sheet %s (%s): unparseable created_at %r",
                row.table_name,
                row.table_date,
                row.created_at,
            )
            continue
        sheets.append(
            LogSheet(
                table_name=row.table_name,
                table_date=row.table_date,
                description=row.table_description,
                incubation_profile_keys=parse_profile_keys(row.incubation_profile),
                created_at=row.created_at,
            )
        )
    return sheets


def incubation_calendar(window_start: datetime) -> list[dict]:
    events = project_due_events(load_sheets(), window_start)
    return [
        {
            "key": day.key,
            "label": day.label,
            "events": [event.to_dict() for event in events.get(day.key, [])],
        }
        for day in calendar_days(window_start)
    ]


@dashboard_bp.route("/", methods=["GET"])
@login_required
def show_dashboard():
    window_start = today_window_start()
    return {
        "stats": headline_stats(window_start.date()),
        "recent_tables": recent_tables(),
        "calendar": incubation_calendar(window_start),
    }
