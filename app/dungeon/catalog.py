"""Floor themes and weighted room-type sampling.

Each floor number maps to one immutable theme whose room types carry relative
sampling weights. Only ``normal`` rooms draw from the catalog.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .errors import CatalogMissing


@dataclass(frozen=True)
class RoomType:
    name: str
    description: str
    weight: float = 1


@dataclass(frozen=True)
class FloorTheme:
    floor_number: int
    name: str
    description: str
    room_types: Tuple[RoomType, ...]


FLOOR_THEMES: Tuple[FloorTheme, ...] = (
    FloorTheme(1, "Ruined Castle Grounds", "Crumbling battlements and overgrown courtyards", (
        RoomType("Collapsed Watchtower", "Stone debris blocks most passages", 2),
        RoomType("Overgrown Courtyard", "Weeds grow through cracked flagstones", 4),
        RoomType("Ruined Barracks", "Rotting wooden bunks and rusted weapons", 3),
        RoomType("Old Armory", "Empty weapon racks and broken shields", 1),
    )),
    FloorTheme(2, "Ancient Crypts", "Stone tombs and burial chambers", (
        RoomType("Burial Chamber", "Ancient sarcophagi line the walls", 3),
        RoomType("Ossuary", "Bones arranged in intricate patterns", 2),
        RoomType("Tomb Antechamber", "Carved reliefs tell forgotten stories", 2),
        RoomType("Catacombs", "Narrow passages between burial niches", 4),
    )),
    FloorTheme(3, "Alchemical Laboratories", "Chambers filled with strange apparatus and bubbling concoctions", (
        RoomType("Distillation Chamber", "Complex glassware covers every surface", 3),
        RoomType("Reagent Storage", "Shelves of mysterious bottles and powders", 3),
        RoomType("Experimentation Lab", "Tables scarred by acid and fire", 2),
        RoomType("Transmutation Circle", "Arcane symbols etched into the floor", 1),
    )),
    FloorTheme(4, "Prison Complex", "Cells and interrogation chambers", (
        RoomType("Prison Cell", "Iron bars and moldy straw", 5),
        RoomType("Guard Station", "Keys hang from hooks on the wall", 2),
        RoomType("Interrogation Room", "Ominous stains mark the floor", 2),
        RoomType("Solitary Confinement", "A small, windowless chamber", 1),
    )),
    FloorTheme(5, "Flooded Caverns", "Water-filled chambers with slippery surfaces", (
        RoomType("Underground Pool", "Dark water reflects the ceiling", 3),
        RoomType("Dripping Grotto", "Constant water droplets echo endlessly", 3),
        RoomType("Flooded Passage", "Ankle-deep water covers the floor", 4),
        RoomType("Underground River", "Fast-moving water blocks the way", 1),
    )),
    FloorTheme(6, "Mechanical Workshop", "Halls filled with gears, pistons, and steam", (
        RoomType("Gear Chamber", "Massive clockwork mechanisms fill the space", 3),
        RoomType("Steam Engine Room", "Pipes release jets of hot vapor", 3),
        RoomType("Assembly Line", "Conveyor belts and robotic arms", 2),
        RoomType("Control Room", "Dozens of levers and gauges", 1),
    )),
    FloorTheme(7, "Crystal Mines", "Sparkling chambers carved from living rock", (
        RoomType("Crystal Cavern", "Brilliant gems illuminate the walls", 3),
        RoomType("Mining Shaft", "Pick marks score the tunnel walls", 4),
        RoomType("Gem Processing", "Cutting tools and polishing stations", 2),
        RoomType("Crystal Formation", "Natural crystals grow in impossible shapes", 2),
    )),
    FloorTheme(8, "Ancient Temple", "Sacred halls dedicated to forgotten gods", (
        RoomType("Prayer Hall", "Rows of stone pews face an altar", 3),
        RoomType("Shrine Room", "Offerings lie before weathered statues", 3),
        RoomType("Ceremonial Chamber", "Ritual circles mark the floor", 2),
        RoomType("Sanctum", "The most sacred space, radiating power", 1),
    )),
    FloorTheme(9, "Dragon's Lair", "Scorched chambers reeking of sulfur", (
        RoomType("Treasure Hoard", "Piles of gold and precious objects", 1),
        RoomType("Sleeping Chamber", "Massive indentations in the stone floor", 2),
        RoomType("Scorched Hall", "Walls blackened by dragonfire", 4),
        RoomType("Bone Yard", "Remains of unfortunate adventurers", 3),
    )),
    FloorTheme(10, "Cosmic Observatory", "Chambers focused on celestial observation", (
        RoomType("Star Chart Room", "Constellation maps cover the ceiling", 3),
        RoomType("Telescope Chamber", "Massive brass instruments point skyward", 3),
        RoomType("Astrolabe Workshop", "Precise instruments for celestial navigation", 2),
        RoomType("Portal Nexus", "Swirling energies connect to distant realms", 1),
    )),
)


class RoomTypeCatalog:
    """Lookup of floor themes by floor number plus weighted room-type draws."""

    def __init__(self, themes: Iterable[FloorTheme] = FLOOR_THEMES):
        self._themes: Dict[int, FloorTheme] = {t.floor_number: t for t in themes}

    def __contains__(self, floor_number: int) -> bool:
        return floor_number in self._themes

    def __len__(self) -> int:
        return len(self._themes)

    def theme_for(self, floor_number: int) -> FloorTheme:
        theme = self._themes.get(floor_number)
        if theme is None:
            raise CatalogMissing(f"no theme for floor {floor_number}", floor_number=floor_number, stage="theme")
        return theme

    def find(self, floor_number: int) -> Optional[FloorTheme]:
        return self._themes.get(floor_number)

    @staticmethod
    def sample(theme: FloorTheme, rng: Optional[random.Random] = None) -> RoomType:
        """Weighted draw; every call is independent.

        Walks the room types accumulating weight and returns the first whose
        cumulative weight reaches ``r ~ U(0, total)``. A zero total returns the
        first entry.
        """
        if not theme.room_types:
            raise CatalogMissing(f"theme {theme.name!r} has no room types", floor_number=theme.floor_number)
        rng = rng or random
        total = sum(rt.weight for rt in theme.room_types)
        if total <= 0:
            return theme.room_types[0]
        r = rng.uniform(0, total)
        cumulative = 0.0
        for rt in theme.room_types:
            cumulative += rt.weight
            if r <= cumulative:
                return rt
        # float accumulation can leave r a hair above the final cumulative weight
        return theme.room_types[-1]


__all__ = ["RoomType", "FloorTheme", "FLOOR_THEMES", "RoomTypeCatalog"]
