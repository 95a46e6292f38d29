"""Dungeon geometry tables: floors, factions, rooms and room connections."""
import datetime

from app import db


class Floor(db.Model):
    __tablename__ = "floors"
    id = db.Column(db.Integer, primary_key=True)
    floor_number = db.Column(db.Integer, unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    difficulty = db.Column(db.Integer, nullable=False, default=1)
    min_recommended_level = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<Floor {self.floor_number} {self.name!r}>"


class Faction(db.Model):
    __tablename__ = "factions"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    influence = db.Column(db.Integer, nullable=False, default=1)
    color = db.Column(db.String(16), nullable=True)
    icon = db.Column(db.String(40), nullable=True)

    def __repr__(self):
        return f"<Faction {self.id} {self.name!r} influence={self.influence}>"


class Room(db.Model):
    __tablename__ = "rooms"
    __table_args__ = (db.UniqueConstraint("floor_id", "x", "y", name="uq_room_floor_xy"),)
    id = db.Column(db.Integer, primary_key=True)
    floor_id = db.Column(db.Integer, db.ForeignKey("floors.id"), nullable=False, index=True)
    x = db.Column(db.Integer, nullable=False)
    y = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    # normal | entrance | stairs | safe
    type = db.Column(db.String(30), nullable=False, default="normal")
    is_safe = db.Column(db.Boolean, nullable=False, default=False)
    has_loot = db.Column(db.Boolean, nullable=False, default=False)
    is_explored = db.Column(db.Boolean, nullable=False, default=False)
    faction_id = db.Column(db.Integer, db.ForeignKey("factions.id"), nullable=True)
    # Index within the generated floor; -1 means not placed by the generator
    placement_id = db.Column(db.Integer, nullable=False, default=-1)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f"<Room {self.id} floor={self.floor_id} ({self.x},{self.y}) {self.type}>"


class RoomConnection(db.Model):
    __tablename__ = "room_connections"
    id = db.Column(db.Integer, primary_key=True)
    from_room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False, index=True)
    to_room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False)
    # north | south | east | west | secret
    direction = db.Column(db.String(10), nullable=False)
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f"<RoomConnection {self.from_room_id}->{self.to_room_id} {self.direction}>"
