"""Per-floor assembly: place rooms, theme them by faction, persist, connect.

Order matters: territory allocation runs before persistence because faction
theming rewrites room names and descriptions, and adjacency is built after
persistence because connections reference database ids.
"""
from __future__ import annotations

import random
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set

from .catalog import FloorTheme, RoomTypeCatalog
from .config import GenerationConfig
from .connectivity import (
    SECRET,
    ConnectionSpec,
    ConnectivityRepairStrategy,
    build_adjacency_edges,
    dedupe_connections,
    get_repair_strategy,
)
from .errors import DungeonGenerationError, PlacementExhausted
from .metrics import init_metrics
from .rooms import (
    ENTRANCE,
    NORMAL,
    SAFE,
    STAIRS,
    FactionProfile,
    PersistedRoom,
    RoomSpec,
    faction_themed,
)
from .sampler import Coord, GridSampler
from .storage import DungeonStorage, FloorRecord
from .territory import TerritoryAllocationStrategy, TerritoryAssignment, get_allocation_strategy

ORIGIN: Coord = (0, 0)


def chunks(items: Sequence, size: int) -> Iterator[Sequence]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


@dataclass
class FloorPlan:
    floor_number: int
    floor_id: int
    theme: FloorTheme
    rooms: List[RoomSpec]
    assignment: TerritoryAssignment

    @property
    def entrance(self) -> RoomSpec:
        return self.rooms[0]

    def of_type(self, room_type: str) -> List[RoomSpec]:
        return [r for r in self.rooms if r.type == room_type]


@dataclass
class FloorResult:
    floor_number: int
    floor_id: int
    rooms: int = 0
    connections: int = 0
    repairs: int = 0
    secret_passages: int = 0
    faction_rooms: Dict[int, int] = field(default_factory=dict)
    unclaimed: int = 0
    metrics: Dict[str, Any] = field(default_factory=init_metrics)
    phase_ms: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "floor_number": self.floor_number,
            "floor_id": self.floor_id,
            "rooms": self.rooms,
            "connections": self.connections,
            "repairs": self.repairs,
            "secret_passages": self.secret_passages,
            "faction_rooms": {str(k): v for k, v in self.faction_rooms.items()},
            "unclaimed": self.unclaimed,
            "metrics": dict(self.metrics),
            "phase_ms": dict(self.phase_ms),
        }


class _Phases:
    """Times named stages and stamps the stage onto generation errors."""

    def __init__(self):
        self.ms: Dict[str, int] = {}
        self.current: Optional[str] = None

    def run(self, label: str, fn: Callable, *a, **k):
        self.current = label
        start = time.perf_counter()
        try:
            return fn(*a, **k)
        except DungeonGenerationError as exc:
            if exc.stage is None:
                exc.stage = label
            raise
        finally:
            self.ms[label] = self.ms.get(label, 0) + int((time.perf_counter() - start) * 1000)


class FloorAssembler:
    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        catalog: Optional[RoomTypeCatalog] = None,
        allocator: Optional[TerritoryAllocationStrategy] = None,
        repair: Optional[ConnectivityRepairStrategy] = None,
    ):
        self.config = config or GenerationConfig()
        self.catalog = catalog or RoomTypeCatalog()
        self.allocator = allocator or get_allocation_strategy(self.config)
        self.repair = repair or get_repair_strategy(self.config.repair_strategy)
        self.phases = _Phases()

    @property
    def stage(self) -> Optional[str]:
        return self.phases.current

    # ------------------------------------------------------------------ planning
    def plan_floor(
        self,
        floor_number: int,
        floor_id: int,
        factions: Sequence[FactionProfile],
        rng: Optional[random.Random] = None,
        metrics: Optional[Dict[str, Any]] = None,
    ) -> FloorPlan:
        """Steps 2-7: sample, place special rooms, fill, allocate territory, theme."""
        rng = rng or random.Random()
        cfg = self.config
        metrics = metrics if metrics is not None else init_metrics()
        phase = self.phases.run

        theme = phase("theme", self.catalog.theme_for, floor_number)
        sampler = GridSampler(cfg.grid_size, cfg.min_rooms, cfg.keep_probability, cfg.fill_attempt_cap, rng)
        positions = phase("sample_positions", sampler.sample)
        if ORIGIN not in set(positions):
            positions.append(ORIGIN)
        metrics['positions_sampled'] = len(positions)

        rooms: List[RoomSpec] = [self.entrance_room(theme, floor_number, floor_id)]
        taken: Set[Coord] = {ORIGIN}
        stair_count = cfg.staircases if floor_number < cfg.floor_count else 0
        stairs = phase("place_stairs", self.place_special, positions, stair_count, taken, rng, STAIRS)
        for x, y in stairs:
            rooms.append(self.stairs_room(floor_number, floor_id, x, y))
        safe = phase("place_safe_rooms", self.place_special, positions, cfg.safe_rooms, taken, rng, SAFE)
        for x, y in safe:
            rooms.append(self.safe_room(theme, floor_id, x, y))
        metrics['staircases_placed'] = len(stairs)
        metrics['safe_rooms_placed'] = len(safe)

        for x, y in positions:
            if (x, y) in taken:
                continue
            rt = self.catalog.sample(theme, rng)
            rooms.append(RoomSpec(floor_id, x, y, rt.name, rt.description, NORMAL))
        for idx, room in enumerate(rooms):
            room.placement_id = idx

        claimable = [r for r in rooms if r.claimable]
        assignment = phase("allocate_territory", self.allocator.allocate, claimable, factions, rng)
        phase("theme_rooms", self.apply_territory, rooms, assignment, factions)
        metrics['claimed_rooms'] = assignment.claimed_count
        metrics['unclaimed_rooms'] = len(claimable) - assignment.claimed_count
        return FloorPlan(floor_number, floor_id, theme, rooms, assignment)

    def place_special(
        self,
        positions: Sequence[Coord],
        count: int,
        taken: Set[Coord],
        rng: random.Random,
        label: str = "special",
    ) -> List[Coord]:
        """Rejection-sample ``count`` distinct positions not in ``taken`` (updated in place)."""
        chosen: List[Coord] = []
        attempts = 0
        limit = self.config.max_placement_attempts
        while len(chosen) < count:
            if attempts >= limit or not positions:
                raise PlacementExhausted(
                    f"placed {len(chosen)}/{count} {label} rooms after {attempts} attempts",
                )
            attempts += 1
            pos = positions[rng.randrange(len(positions))]
            if pos in taken:
                continue
            taken.add(pos)
            chosen.append(pos)
        return chosen

    def entrance_room(self, theme: FloorTheme, floor_number: int, floor_id: int) -> RoomSpec:
        return RoomSpec(
            floor_id, 0, 0,
            name=f"{theme.name} Entrance",
            description=f"Entry point to the {theme.description.lower()}",
            type=ENTRANCE,
            is_safe=floor_number == 1,
        )

    def stairs_room(self, floor_number: int, floor_id: int, x: int, y: int) -> RoomSpec:
        below = self.catalog.find(floor_number + 1)
        return RoomSpec(
            floor_id, x, y,
            name=f"Descent to {below.name if below else 'Deeper Levels'}",
            description=f"Stairs leading down to level {floor_number + 1}",
            type=STAIRS,
        )

    def safe_room(self, theme: FloorTheme, floor_id: int, x: int, y: int) -> RoomSpec:
        return RoomSpec(
            floor_id, x, y,
            name=f"{theme.name} Sanctuary",
            description="A quiet refuge where crawlers can rest undisturbed",
            type=SAFE,
            is_safe=True,
        )

    @staticmethod
    def apply_territory(rooms: Sequence[RoomSpec], assignment: TerritoryAssignment,
                        factions: Sequence[FactionProfile]) -> None:
        by_id = {f.id: f for f in factions}
        owners = assignment.owners()
        for room in rooms:
            if not room.claimable:
                room.faction_id = None
                continue
            faction = by_id.get(owners.get(room.placement_id))
            room.name, room.description = faction_themed(room.name, room.description, faction)
            room.faction_id = faction.id if faction else None

    # --------------------------------------------------------------- persistence
    def persist_rooms(self, storage: DungeonStorage, rooms: Sequence[RoomSpec],
                      metrics: Dict[str, Any]) -> List[PersistedRoom]:
        persisted: List[PersistedRoom] = []
        for batch in chunks(rooms, self.config.room_batch_size):
            persisted.extend(storage.insert_rooms(batch))
            metrics['room_batches'] += 1
        metrics['rooms_inserted'] = len(persisted)
        return persisted

    def persist_connections(self, storage: DungeonStorage, connections: Sequence[ConnectionSpec],
                            metrics: Dict[str, Any]) -> None:
        for batch in chunks(connections, self.config.connection_batch_size):
            storage.insert_connections(batch)
            metrics['connection_batches'] += 1
        metrics['connections_inserted'] = len(connections)

    def connect(self, persisted: Sequence[PersistedRoom], metrics: Dict[str, Any]) -> List[ConnectionSpec]:
        """Steps 9-11 minus the insert: adjacency, repair, dedupe."""
        phase = self.phases.run
        entrance_id = next(r.id for r in persisted if (r.x, r.y) == ORIGIN)
        edges = phase("adjacency", build_adjacency_edges, persisted)
        metrics['edges_adjacent'] = len(edges)
        repaired = phase("repair_connectivity", self.repair.repair, persisted, edges, entrance_id)
        metrics['repairs_performed'] = self.repair.added
        unique = phase("dedupe_connections", dedupe_connections, repaired)
        metrics['duplicate_edges_dropped'] = len(repaired) - len(unique)
        metrics['secret_passages'] = sum(1 for e in unique if e.direction == SECRET) // 2
        return unique

    def build_floor(
        self,
        storage: DungeonStorage,
        floor: FloorRecord,
        factions: Sequence[FactionProfile],
        rng: Optional[random.Random] = None,
    ) -> FloorResult:
        """Plan, persist and connect one floor; errors carry floor number and stage."""
        self.phases = _Phases()
        metrics = init_metrics()
        start = time.perf_counter()
        try:
            plan = self.plan_floor(floor.floor_number, floor.id, factions, rng, metrics)
            persisted = self.phases.run("insert_rooms", self.persist_rooms, storage, plan.rooms, metrics)
            connections = self.connect(persisted, metrics)
            self.phases.run("insert_connections", self.persist_connections, storage, connections, metrics)
        except DungeonGenerationError as exc:
            if exc.floor_number is None:
                exc.floor_number = floor.floor_number
            raise
        metrics['runtime_ms'] = int((time.perf_counter() - start) * 1000)
        counts = Counter(r.faction_id for r in plan.rooms if r.faction_id is not None)
        return FloorResult(
            floor_number=floor.floor_number,
            floor_id=floor.id,
            rooms=len(persisted),
            connections=len(connections),
            repairs=metrics['repairs_performed'],
            secret_passages=metrics['secret_passages'],
            faction_rooms=dict(counts),
            unclaimed=sum(1 for r in plan.rooms if r.claimable and r.faction_id is None),
            metrics=metrics,
            phase_ms=dict(self.phases.ms),
        )


__all__ = ["FloorAssembler", "FloorPlan", "FloorResult", "chunks", "ORIGIN"]
