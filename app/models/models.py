"""
project: Crawler Depths
module: models.py
License: MIT

Account and configuration models.

Notes:
- Passwords are stored as hashed values (Werkzeug generate_password_hash).
- GameConfig values are JSON-serializable text edited via the CLI.
"""

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from app import db


class User(UserMixin, db.Model):
    """Operator account; only ``role == 'admin'`` may trigger regeneration.

    Attributes:
        id: Primary key.
        username: Unique handle for login and display.
        password: Hashed password string (never store plaintext).
        role: 'admin' | 'user'
    """

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="user")

    def set_password(self, raw_password: str):
        self.password = generate_password_hash(raw_password)

    def check_password(self, candidate: str) -> bool:
        return check_password_hash(self.password or "", candidate)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class GameConfig(db.Model):
    """Key/value style configuration storage.

    Values are persisted as JSON-serializable text so tunables can change
    without a deploy.

    Example rows:
        key='dungeon_generation', value='{"min_rooms":150,"staircases":2,"unclaimed_percent":0.25}'
    """

    __tablename__ = "game_config"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(80), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=False)

    @staticmethod
    def get(key: str):
        row = GameConfig.query.filter_by(key=key).first()
        return row.value if row else None

    @staticmethod
    def set(key: str, value: str):
        row = GameConfig.query.filter_by(key=key).first()
        if not row:
            row = GameConfig(key=key, value=value)
            db.session.add(row)
        else:
            row.value = value
        db.session.commit()
