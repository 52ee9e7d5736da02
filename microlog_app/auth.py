"""Authentication blueprint."""
from __future__ import annotations

import math

from flask import Blueprint, abort, current_app, request, session
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from .models import User


auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[dict, int]:
    payload = request.get_json(silent=True) or request.form
    username = (payload.get("username") or "").strip()
    password = (payload.get("password") or "").strip()

    if not username or not password:
        abort(400, description="Enter username and password")

    tracker = current_app.failed_login_tracker
    remaining = tracker.lockout_remaining(username)
    if remaining:
        minutes = math.ceil(remaining / 60)
        abort(429, description=f"Too many failed attempts. Please try again in {minutes} minute(s).")

    user = User.query.filter_by(name=username).first()
    if not user or not user.check_password(password):
        tracker.increment(username)
        current_app.logger.warning(
            "Login failed for %s from %s", username, request.remote_addr or "unknown"
        )
        if tracker.is_locked(username):
            abort(
                429,
                description=(
                    "Too many failed attempts. Account locked for "
                    f"{current_app.config['LOGIN_LOCKOUT_MINUTES']} minutes."
                ),
            )
        abort(
            401,
            description=f"Invalid credentials. {tracker.remaining_attempts(username)} attempt(s) remaining.",
        )

    tracker.reset(username)
    session.clear()
    session.permanent = True
    login_user(user)
    current_app.logger.info("User %s logged in", user.name)
    return {"message": "Logged in", "user": user.to_dict()}, 200


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout() -> tuple[dict, int]:
    logout_user()
    session.clear()
    return {"message": "Logged out"}, 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me() -> dict:
    return {"user": current_user.to_dict()}


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token() -> dict:
    return {"csrf_token": generate_csrf()}
