import os
import sys

import pytest

# Ensure repository root importable early
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# In-memory database for the whole session; must be set before `app` is imported
os.environ["DATABASE_URL"] = "sqlite://"

from app import create_app, db  # noqa: E402
from app.models.models import User  # noqa: E402


@pytest.fixture(scope="session")
def test_app():
    app = create_app()
    app.config.update({"TESTING": True, "LOGIN_DISABLED": False})
    return app


@pytest.fixture(autouse=True)
def _push_app_context(test_app, monkeypatch):
    for key in list(os.environ):
        if key.startswith("DUNGEON_"):
            monkeypatch.delenv(key)
    ctx = test_app.app_context()
    ctx.push()
    db.drop_all()
    db.create_all()
    try:
        yield
    finally:
        db.session.remove()
        ctx.pop()


@pytest.fixture()
def client(test_app):
    return test_app.test_client()


def _login_as(client, username, role):
    u = User(username=username, role=role)
    u.set_password("pw")
    db.session.add(u)
    db.session.commit()
    with client.session_transaction() as sess:
        sess["_user_id"] = str(u.id)
        sess["_fresh"] = True
    return u


@pytest.fixture()
def admin_client(client):
    _login_as(client, "overseer", "admin")
    return client


@pytest.fixture()
def user_client(client):
    _login_as(client, "crawler", "user")
    return client


@pytest.fixture()
def seeded(test_app):
    """Floors and factions from the static content roster."""
    from app.seed_content import seed_all

    return seed_all()
