"""Database models."""
from __future__ import annotations

from typing import Any

import bcrypt
from flask_login import UserMixin

from .extensions import db, login_manager
from .thresholds import flag_row
from .timeutil import local_now


ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)

RESULT_COLUMNS = ("enterobacteriacea", "tmc_30", "yeasts_molds", "bacillus")
TEXT_COLUMNS = ("eval_2nd", "eval_3rd", "eval_4th", "stress_test", "comments")


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False, index=True)
    fullname = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)

    def set_password(self, password: str) -> None:
        salt = bcrypt.gensalt()
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def check_password(self, password: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), self.password_hash.encode("utf-8"))

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "fullname": self.fullname,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MicrobiologyLog(db.Model):
    """One sample row of a log sheet.

    Rows sharing ``(table_name, table_date)`` form a sheet; the header columns
    are repeated on every row. Results are kept as entered so that qualified
    readings like ``<1`` are displayed verbatim.
    """

    __tablename__ = "microbiology_logs"

    id = db.Column(db.Integer, primary_key=True)
    table_name = db.Column(db.String(200), nullable=False, index=True)
    table_description = db.Column(db.Text, nullable=False, default="")
    table_date = db.Column(db.Date, nullable=False, index=True)
    incubation_profile = db.Column(db.String(255), nullable=False, default="")
    row_index = db.Column(db.Integer, nullable=False, default=1)
    product = db.Column(db.String(200), nullable=False, default="")
    code = db.Column(db.String(100), nullable=False, default="")
    expiration_date = db.Column(db.Date, nullable=True)
    enterobacteriacea = db.Column(db.String(32), nullable=True)
    tmc_30 = db.Column(db.String(32), nullable=True)
    yeasts_molds = db.Column(db.String(32), nullable=True)
    bacillus = db.Column(db.String(32), nullable=True)
    eval_2nd = db.Column(db.String(500), nullable=False, default="")
    eval_3rd = db.Column(db.String(500), nullable=False, default="")
    eval_4th = db.Column(db.String(500), nullable=False, default="")
    stress_test = db.Column(db.String(500), nullable=False, default="")
    comments = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now)

    def editable_values(self) -> dict[str, Any]:
        values: dict[str, Any] = {
            "row_index": self.row_index,
            "product": self.product,
            "code": self.code,
            "expiration_date": self.expiration_date,
        }
        for column in RESULT_COLUMNS + TEXT_COLUMNS:
            values[column] = getattr(self, column)
        return values

    def to_dict(self) -> dict[str, Any]:
        payload = self.editable_values()
        payload["expiration_date"] = (
            self.expiration_date.isoformat() if self.expiration_date else None
        )
        payload.update(
            {
                "id": self.id,
                "table_name": self.table_name,
                "table_description": self.table_description,
                "table_date": self.table_date.isoformat(),
                "incubation_profile": self.incubation_profile,
                "flags": flag_row(payload),
            }
        )
        return payload


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    action = db.Column(db.String(32), nullable=False, index=True)
    table_name = db.Column(db.String(64), nullable=False)
    record_id = db.Column(db.Integer, nullable=True, index=True)
    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=False, default="unknown")
    user_agent = db.Column(db.String(500), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)

    user = db.relationship("User")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "user": self.user.name if self.user else None,
            "ip_address": self.ip_address,
            "created_at": self.created_at.isoformat(),
        }


@login_manager.user_loader
def load_user(user_id: str) -> User | None:
    return db.session.get(User, int(user_id))
