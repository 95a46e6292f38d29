"""Admin routes: dungeon regeneration and floor inspection.

Security model:
  * All routes require an authenticated user with role == 'admin'.
  * Unauthenticated requests get 401 JSON, non-admins 403 JSON.

Regeneration runs synchronously inside the request. A fully generated dungeon
returns 200, a run where some floors were skipped or failed returns 207 with
the same summary body, and a setup failure (no floors, unreadable factions)
returns 500.
"""

from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import Blueprint, request
from flask_login import current_user
from sqlalchemy import func

from app import db
from app.dungeon import GenerationConfig, generate_full_dungeon
from app.dungeon.errors import FatalSetupFailure
from app.logging_utils import get_logger
from app.models import Faction, Floor, Room, RoomConnection

bp_admin = Blueprint("admin", __name__, url_prefix="/admin")
log = get_logger("admin")


def admin_required(fn: Callable):
    """Decorator enforcing that current_user is an authenticated admin."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return {"error": "unauthorized"}, 401
        if getattr(current_user, "role", "user") != "admin":
            return {"error": "forbidden"}, 403
        return fn(*args, **kwargs)

    return wrapper


@bp_admin.route("/api/dungeon/regenerate", methods=["POST"])
@admin_required
def regenerate_dungeon():
    """Clear and rebuild every floor.

    Optional JSON body: ``{"seed": int, "floors": int}``.
    """
    data = request.get_json(silent=True) or {}
    overrides = {}
    try:
        if data.get("seed") is not None:
            overrides["seed"] = int(data["seed"])
        if data.get("floors") is not None:
            overrides["floor_count"] = int(data["floors"])
        cfg = GenerationConfig.load(**overrides)
    except (TypeError, ValueError) as exc:
        return {"error": f"invalid parameters: {exc}"}, 400

    log.info(event="regenerate_requested", user=current_user.username, seed=cfg.seed)
    try:
        summary = generate_full_dungeon(config=cfg)
    except FatalSetupFailure as exc:
        log.error(event="regenerate_failed", stage=exc.stage, error=exc.message)
        return {"ok": False, "error": exc.message, "stage": exc.stage}, 500
    if summary.ok:
        return summary.to_dict(), 200
    return summary.to_dict(), (207 if summary.partial else 500)


@bp_admin.route("/api/dungeon/floors")
@admin_required
def floor_counts():
    """Per-floor room / connection / faction-room counts."""
    return {"floors": collect_floor_counts()}


def collect_floor_counts():
    room_counts = dict(db.session.query(Room.floor_id, func.count(Room.id)).group_by(Room.floor_id).all())
    conn_counts = dict(
        db.session.query(Room.floor_id, func.count(RoomConnection.id))
        .join(Room, Room.id == RoomConnection.from_room_id)
        .group_by(Room.floor_id)
        .all()
    )
    faction_names = {f.id: f.name for f in Faction.query.all()}
    claimed = {}
    for floor_id, faction_id, n in (
        db.session.query(Room.floor_id, Room.faction_id, func.count(Room.id))
        .filter(Room.faction_id.isnot(None))
        .group_by(Room.floor_id, Room.faction_id)
        .all()
    ):
        claimed.setdefault(floor_id, {})[faction_names.get(faction_id, str(faction_id))] = n
    out = []
    for floor in Floor.query.order_by(Floor.floor_number).all():
        out.append(
            {
                "floor_number": floor.floor_number,
                "name": floor.name,
                "rooms": room_counts.get(floor.id, 0),
                "connections": conn_counts.get(floor.id, 0),
                "factions": claimed.get(floor.id, {}),
            }
        )
    return out
