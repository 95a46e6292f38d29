"""Generation tunables and their override layering.

Precedence (lowest to highest):
  1. dataclass defaults
  2. GameConfig row ``dungeon_generation`` (JSON object)
  3. ``DUNGEON_<FIELD>`` environment variables
  4. Flask ``app.config['DUNGEON_<FIELD>']`` when an app context is active
  5. keyword overrides passed to :meth:`GenerationConfig.load`
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

FACTION_COUNT_POLICIES = ("per_quota", "density")


@dataclass
class GenerationConfig:
    floor_count: int = 10
    grid_size: int = 20
    min_rooms: int = 200
    keep_probability: float = 0.55
    staircases: int = 3
    safe_rooms: int = 0
    max_placement_attempts: int = 1000
    max_fill_attempts: Optional[int] = None
    unclaimed_percent: float = 0.2
    min_factions: int = 2
    max_factions: Optional[int] = None
    rooms_per_faction: int = 10
    faction_count_policy: str = "per_quota"
    density_divisor: int = 120
    allocation_strategy: str = "contiguous"
    repair_strategy: str = "nearest"
    room_batch_size: int = 50
    connection_batch_size: int = 100
    seed: Optional[int] = None

    @property
    def lattice_size(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def fill_attempt_cap(self) -> int:
        if self.max_fill_attempts is not None:
            return self.max_fill_attempts
        return max(1000, 50 * self.lattice_size)

    def validate(self) -> "GenerationConfig":
        if self.floor_count < 1:
            raise ValueError("floor_count must be >= 1")
        if self.grid_size < 1:
            raise ValueError("grid_size must be >= 1")
        if self.min_rooms < 1:
            raise ValueError("min_rooms must be >= 1")
        if self.min_rooms > self.lattice_size:
            raise ValueError(f"min_rooms {self.min_rooms} exceeds the {self.grid_size}x{self.grid_size} lattice")
        if not 0.0 <= self.keep_probability <= 1.0:
            raise ValueError("keep_probability must be within [0, 1]")
        if not 0.0 <= self.unclaimed_percent <= 1.0:
            raise ValueError("unclaimed_percent must be within [0, 1]")
        if self.staircases < 0 or self.safe_rooms < 0:
            raise ValueError("staircases and safe_rooms must be >= 0")
        if self.max_placement_attempts < 1:
            raise ValueError("max_placement_attempts must be >= 1")
        if self.max_fill_attempts is not None and self.max_fill_attempts < 0:
            raise ValueError("max_fill_attempts must be >= 0")
        if self.min_factions < 0:
            raise ValueError("min_factions must be >= 0")
        if self.max_factions is not None and self.max_factions < self.min_factions:
            raise ValueError("max_factions must be >= min_factions")
        if self.rooms_per_faction < 1 or self.density_divisor < 1:
            raise ValueError("rooms_per_faction and density_divisor must be >= 1")
        if self.faction_count_policy not in FACTION_COUNT_POLICIES:
            raise ValueError(f"unknown faction_count_policy {self.faction_count_policy!r}")
        if self.room_batch_size < 1 or self.connection_batch_size < 1:
            raise ValueError("batch sizes must be >= 1")
        return self

    @classmethod
    def load(cls, **overrides: Any) -> "GenerationConfig":
        """Build a config from every override source, then validate it."""
        cfg = cls()
        cfg = cfg.merged(_game_config_values())
        cfg = cfg.merged(_env_values())
        cfg = cfg.merged(_flask_values())
        cfg = cfg.merged({k: v for k, v in overrides.items() if v is not None})
        return cfg.validate()

    def merged(self, values: Dict[str, Any]) -> "GenerationConfig":
        known = {f.name: f for f in fields(self)}
        changes = {}
        for key, raw in (values or {}).items():
            f = known.get(key)
            if f is None:
                continue
            changes[key] = _coerce(f.name, f.default, raw)
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


_INT_OR_NONE = {"max_fill_attempts", "max_factions", "seed"}


def _coerce(name: str, default: Any, raw: Any) -> Any:
    if name in _INT_OR_NONE:
        if raw is None or (isinstance(raw, str) and raw.strip().lower() in {"", "none", "null"}):
            return None
        return int(raw)
    if isinstance(default, bool):
        if isinstance(raw, str):
            return raw.strip().lower() not in {"0", "false", "no", ""}
        return bool(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def _env_values() -> Dict[str, Any]:
    out = {}
    for f in fields(GenerationConfig):
        key = f"DUNGEON_{f.name.upper()}"
        if key in os.environ:
            out[f.name] = os.environ[key]
    return out


def _flask_values() -> Dict[str, Any]:
    from flask import current_app, has_app_context

    if not has_app_context():
        return {}
    out = {}
    for f in fields(GenerationConfig):
        key = f"DUNGEON_{f.name.upper()}"
        if key in current_app.config:
            out[f.name] = current_app.config[key]
    return out


def _game_config_values() -> Dict[str, Any]:
    """Read the ``dungeon_generation`` GameConfig row; absent tables or bad JSON yield {}."""
    from flask import has_app_context

    if not has_app_context():
        return {}
    from sqlalchemy.exc import SQLAlchemyError

    from app import db
    from app.models import GameConfig

    try:
        raw = GameConfig.get("dungeon_generation")
    except SQLAlchemyError:
        db.session.rollback()
        return {}
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


__all__ = ["GenerationConfig", "FACTION_COUNT_POLICIES"]
