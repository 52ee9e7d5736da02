"""User administration endpoints (admin only)."""
from __future__ import annotations

from flask import Blueprint, abort, current_app, request

from .extensions import db
from .models import ROLE_USER, ROLES, User
from .security import admin_required
from .validation import Validator


users_bp = Blueprint("users", __name__)

MIN_PASSWORD_LENGTH = 8


@users_bp.route("/", methods=["GET"])
@admin_required
def list_users():
    users = User.query.order_by(User.id.asc()).all()
    return {"users": [user.to_dict() for user in users]}


@users_bp.route("/", methods=["POST"])
@admin_required
def create_user():
    payload = request.get_json(silent=True) or {}
    validator = Validator()
    fullname = validator.sanitize_string(payload.get("fullname"), 255)
    username = validator.sanitize_string(payload.get("username"), 50)
    password = (payload.get("password") or "").strip()
    role = payload.get("role") or ROLE_USER

    if not username or not password:
        abort(400, description="Username and password are required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if role not in ROLES:
        abort(400, description="Invalid role.")
    if User.query.filter_by(name=username).first():
        abort(400, description="Username already exists.")

    user = User(name=username, fullname=fullname, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created user %s with role %s", username, role)
    return {"id": user.id, "message": "User created"}, 201
