"""Room records exchanged between the generator stages and storage."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import NamedTuple, Optional, Tuple

ENTRANCE = "entrance"
STAIRS = "stairs"
SAFE = "safe"
NORMAL = "normal"

# Never claimed by a faction regardless of geometry
SPECIAL_ROOM_TYPES = frozenset({ENTRANCE, STAIRS, SAFE})

UNCLAIMED_SUFFIX = "This area is wild and unclaimed."


@dataclass
class RoomSpec:
    """A room before persistence; ``placement_id`` is its index within the floor."""

    floor_id: int
    x: int
    y: int
    name: str
    description: str
    type: str = NORMAL
    is_safe: bool = False
    has_loot: bool = False
    faction_id: Optional[int] = None
    placement_id: int = -1

    @property
    def pos(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def claimable(self) -> bool:
        return self.type not in SPECIAL_ROOM_TYPES and not self.is_safe

    def to_row(self) -> dict:
        return asdict(self)


class PersistedRoom(NamedTuple):
    id: int
    x: int
    y: int
    type: str = NORMAL
    placement_id: int = -1


@dataclass(frozen=True)
class FactionProfile:
    """Read-only view of a faction row used by territory allocation."""

    id: int
    name: str
    description: str = ""
    influence: int = 1
    color: Optional[str] = None
    icon: Optional[str] = None


def join_description(base: str, suffix: str) -> str:
    base = (base or "").rstrip()
    if not base:
        return suffix
    if base[-1] not in ".!?":
        base += "."
    return f"{base} {suffix}"


def faction_themed(name: str, description: str, faction: Optional[FactionProfile]) -> Tuple[str, str]:
    """Return (name, description) rewritten for the owning faction, or the neutral variant."""
    if faction is None:
        return name, join_description(description, UNCLAIMED_SUFFIX)
    influence_note = f"This area is under the influence of the {faction.name}"
    if faction.description:
        influence_note += f": {faction.description}"
    return f"{faction.name} {name}", join_description(description, influence_note)


__all__ = [
    "ENTRANCE",
    "STAIRS",
    "SAFE",
    "NORMAL",
    "SPECIAL_ROOM_TYPES",
    "RoomSpec",
    "PersistedRoom",
    "FactionProfile",
    "faction_themed",
    "join_description",
]
