# Model package init
from .dungeon import Faction, Floor, Room, RoomConnection  # noqa: F401 re-export
from .models import GameConfig, User  # noqa: F401 re-export

__all__ = [
    "Faction",
    "Floor",
    "GameConfig",
    "Room",
    "RoomConnection",
    "User",
]
