"""
project: Crawler Depths
module: __init__.py
License: MIT

Flask application and core extensions setup.

This module wires together the Flask app, SQLAlchemy and Flask-Login.
Configuration is sourced from environment variables (optionally loaded from a
.env file) with reasonable defaults for development. A local `instance/`
directory is used for SQLite and the rotating log file.
"""

import logging
import os
import uuid
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy

# Load .env if present so `SECRET_KEY`, `DATABASE_URL`, `DUNGEON_*` etc. can be
# supplied without exporting shell variables during development.
load_dotenv()

app = Flask(__name__, instance_relative_config=True)

try:
    os.makedirs(app.instance_path, exist_ok=True)
except OSError:
    # Read-only installs still work with DATABASE_URL pointing elsewhere
    pass

secret_key = os.getenv("SECRET_KEY", "dev-secret-change-me")
database_url = os.getenv("DATABASE_URL")

if not database_url:
    db_path = Path(app.instance_path) / "crawler.db"
    # Use POSIX path for SQLAlchemy URI compatibility across OS
    database_url = f"sqlite:///{db_path.as_posix()}"

app.config.update(
    SECRET_KEY=secret_key,
    SQLALCHEMY_DATABASE_URI=database_url,
    SQLALCHEMY_TRACK_MODIFICATIONS=False,
)

engine_opts = {}
if database_url.startswith("sqlite:///"):
    engine_opts["connect_args"] = {
        "timeout": 10,  # busy timeout (seconds) for sqlite
        "check_same_thread": False,
    }
db = SQLAlchemy(app, session_options={"expire_on_commit": False}, engine_options=engine_opts)
login_manager = LoginManager(app)


@login_manager.user_loader
def load_user(user_id):  # pragma: no cover - simple loader
    from app.models.models import User

    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


# Register HTTP blueprints (import after app/db created)
from app.routes import auth  # noqa: E402
from app.routes.admin import bp_admin  # noqa: E402

app.register_blueprint(auth.bp)
app.register_blueprint(bp_admin)


def create_app():
    """Return the Flask app instance with every table created.

    Idempotent; the CLI, the server entry point and the test fixtures all call
    it before touching the database.
    """
    from app.models import models as _models  # noqa: F401
    from app.models import dungeon as _dungeon  # noqa: F401

    with app.app_context():
        db.create_all()
    return app


@app.errorhandler(500)
def internal_error(e):
    error_id = uuid.uuid4().hex[:8]
    logging.exception("Unhandled exception (id=%s)", error_id)
    return {"error": "internal server error", "error_id": error_id}, 500
