"""Authentication routes: login and logout for operator accounts.

Accepts either form fields or a JSON body; responses are JSON since the only
consumers are the admin API and scripted tooling.
"""

import logging

from flask import Blueprint, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from app.models.models import User

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.route("/login", methods=["POST"])
def login():
    """Case-insensitive username lookup, then Werkzeug hash check."""
    data = request.get_json(silent=True) or request.form
    ident = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not ident or not password:
        return {"error": "username and password required"}, 400
    user = User.query.filter(func.lower(User.username) == ident.lower()).first()
    if not user or not user.check_password(password):
        logging.info("Login failed for identifier=%s", ident)
        return {"error": "invalid credentials"}, 401
    login_user(user)
    return {"username": user.username, "role": user.role}


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    name = current_user.username
    logout_user()
    return {"logged_out": name}
