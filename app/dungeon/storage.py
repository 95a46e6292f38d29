"""Persistence collaborators for the generator.

``SQLAlchemyDungeonStorage`` writes through the Flask-SQLAlchemy session and
converts database errors into ``PersistenceFailure`` after rolling back.
``MemoryDungeonStorage`` keeps rows in lists; it backs dry runs, the
diagnostics script, and tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .connectivity import ConnectionSpec
from .errors import PersistenceFailure
from .rooms import FactionProfile, PersistedRoom, RoomSpec


class FloorRecord(NamedTuple):
    id: int
    floor_number: int
    name: str = ""


class DungeonStorage:
    """Batch interface consumed by the floor assembler and pipeline."""

    def get_floors(self) -> List[FloorRecord]:  # pragma: no cover - interface
        raise NotImplementedError

    def get_factions(self) -> List[FactionProfile]:  # pragma: no cover - interface
        raise NotImplementedError

    def clear_dungeon_data(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def clear_floor(self, floor_id: int) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def insert_rooms(self, batch: Sequence[RoomSpec]) -> List[PersistedRoom]:  # pragma: no cover - interface
        raise NotImplementedError

    def insert_connections(self, batch: Sequence[ConnectionSpec]) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class SQLAlchemyDungeonStorage(DungeonStorage):
    def __init__(self, db=None):
        if db is None:
            from app import db as _db

            db = _db
        self.db = db

    def _fail(self, stage: str, exc: Exception) -> PersistenceFailure:
        try:
            self.db.session.rollback()
        except SQLAlchemyError:
            pass
        return PersistenceFailure(f"{stage} failed: {exc}", stage=stage)

    def get_floors(self):
        from app.models import Floor

        try:
            rows = Floor.query.order_by(Floor.floor_number).all()
        except SQLAlchemyError as exc:
            raise self._fail("get_floors", exc) from exc
        return [FloorRecord(f.id, f.floor_number, f.name) for f in rows]

    def get_factions(self):
        from app.models import Faction

        try:
            rows = Faction.query.order_by(Faction.id).all()
        except SQLAlchemyError as exc:
            raise self._fail("get_factions", exc) from exc
        return [
            FactionProfile(
                id=f.id,
                name=f.name,
                description=f.description or "",
                influence=f.influence or 0,
                color=f.color,
                icon=f.icon,
            )
            for f in rows
        ]

    def clear_dungeon_data(self):
        from app.models import Room, RoomConnection

        try:
            self.db.session.query(RoomConnection).delete()
            self.db.session.query(Room).delete()
            self.db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("clear_dungeon_data", exc) from exc

    def clear_floor(self, floor_id):
        from app.models import Room, RoomConnection

        try:
            room_ids = [rid for (rid,) in self.db.session.query(Room.id).filter(Room.floor_id == floor_id)]
            self.db.session.query(RoomConnection).filter(
                RoomConnection.from_room_id.in_(room_ids) | RoomConnection.to_room_id.in_(room_ids)
            ).delete(synchronize_session=False)
            self.db.session.query(Room).filter(Room.floor_id == floor_id).delete(synchronize_session=False)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("clear_floor", exc) from exc

    def insert_rooms(self, batch):
        from app.models import Room

        rows = [Room(**spec.to_row()) for spec in batch]
        try:
            self.db.session.add_all(rows)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("insert_rooms", exc) from exc
        return [PersistedRoom(r.id, r.x, r.y, r.type, r.placement_id) for r in rows]

    def insert_connections(self, batch):
        from app.models import RoomConnection

        try:
            self.db.session.add_all([RoomConnection(**c.to_row()) for c in batch])
            self.db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("insert_connections", exc) from exc


@dataclass
class MemoryDungeonStorage(DungeonStorage):
    floors: List[FloorRecord] = field(default_factory=list)
    factions: List[FactionProfile] = field(default_factory=list)
    rooms: Dict[int, RoomSpec] = field(default_factory=dict)
    connections: List[ConnectionSpec] = field(default_factory=list)
    room_batches: int = 0
    connection_batches: int = 0
    _next_id: int = 1

    @classmethod
    def with_floors(cls, count: int, factions: Optional[Sequence[FactionProfile]] = None) -> "MemoryDungeonStorage":
        return cls(
            floors=[FloorRecord(n, n, f"Floor {n}") for n in range(1, count + 1)],
            factions=list(factions or []),
        )

    def get_floors(self):
        return sorted(self.floors, key=lambda f: f.floor_number)

    def get_factions(self):
        return list(self.factions)

    def clear_dungeon_data(self):
        self.rooms.clear()
        self.connections.clear()

    def clear_floor(self, floor_id):
        doomed = {rid for rid, r in self.rooms.items() if r.floor_id == floor_id}
        self.connections = [
            c for c in self.connections if c.from_room_id not in doomed and c.to_room_id not in doomed
        ]
        for rid in doomed:
            del self.rooms[rid]

    def insert_rooms(self, batch):
        taken = {(r.floor_id, r.x, r.y) for r in self.rooms.values()}
        out = []
        for spec in batch:
            key = (spec.floor_id, spec.x, spec.y)
            if key in taken:
                raise PersistenceFailure(f"duplicate room at {key}", stage="insert_rooms")
            taken.add(key)
            rid = self._next_id
            self._next_id += 1
            self.rooms[rid] = replace(spec)
            out.append(PersistedRoom(rid, spec.x, spec.y, spec.type, spec.placement_id))
        self.room_batches += 1
        return out

    def insert_connections(self, batch):
        for c in batch:
            if c.from_room_id not in self.rooms or c.to_room_id not in self.rooms:
                raise PersistenceFailure(f"connection references unknown room: {c}", stage="insert_connections")
        self.connections.extend(batch)
        self.connection_batches += 1

    def rooms_on_floor(self, floor_id: int) -> Dict[int, RoomSpec]:
        return {rid: r for rid, r in self.rooms.items() if r.floor_id == floor_id}

    def connections_on_floor(self, floor_id: int) -> List[ConnectionSpec]:
        ids = set(self.rooms_on_floor(floor_id))
        return [c for c in self.connections if c.from_room_id in ids]


__all__ = [
    "FloorRecord",
    "DungeonStorage",
    "SQLAlchemyDungeonStorage",
    "MemoryDungeonStorage",
]
