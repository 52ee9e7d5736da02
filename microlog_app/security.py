"""Access control helpers layered on Flask-Login."""
from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import abort
from flask_login import current_user, login_required

from .extensions import login_manager


@login_manager.unauthorized_handler
def unauthorized():
    abort(401, description="Login required")


def admin_required(func: Callable) -> Callable:
    """Restrict a view to authenticated users with the admin role."""

    @wraps(func)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user.is_admin:
            abort(403, description="Admin role required")
        return func(*args, **kwargs)

    return wrapper
