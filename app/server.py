"""
project: Crawler Depths
module: server.py
License: MIT

Server bootstrap helpers.

Exposes the logging setup shared by the CLI and the web server, database
initialisation (tables plus static floor/faction content), and the
development server entry point.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from app import app, create_app, db

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def start_server(host="0.0.0.0", port=5000, debug: bool = False):  # pragma: no cover (integration / runtime only)
    """Start the Flask development server and ensure DB tables exist."""
    init_db()
    configure_logging()
    try:
        print(f"[INFO] Starting HTTP server on {host}:{port}")
        app.run(host=host, port=port, debug=debug)
    except KeyboardInterrupt:
        print("\n[INFO] Server stopped by user (Ctrl+C)")
        sys.exit(0)


def configure_logging(log_dir=None, level=logging.INFO):
    """Configure logging to both console and a rotating file.

    The file path defaults to instance/app.log. Retains a few backups to avoid
    growth. Calling it again replaces the handlers instead of stacking them.
    """
    log_dir = log_dir or app.instance_path
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        pass
    log_path = os.path.join(log_dir, "app.log")

    root = logging.getLogger()
    root.setLevel(level)

    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))

    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(file_handler)
    root.addHandler(console)
    return log_path


def init_db(seed_content: bool = True):
    """Create tables and (optionally) insert missing floors and factions."""
    create_app()
    with app.app_context():
        db.create_all()
        if seed_content:
            from app.seed_content import seed_all

            return seed_all()
    return {}
