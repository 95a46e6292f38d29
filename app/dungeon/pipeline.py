"""Full-dungeon regeneration.

``generate_full_dungeon`` clears all existing rooms and connections, then
assembles each floor independently. Setup failures (floors or factions
unreadable, nothing to generate, the initial wipe failing) raise
``FatalSetupFailure``. Anything that goes wrong inside one floor is logged with
floor and stage context, the floor's partial rows are removed, and the loop
moves on.
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from app.logging_utils import get_logger

from .assembler import FloorAssembler, FloorResult
from .catalog import RoomTypeCatalog
from .config import GenerationConfig
from .errors import CatalogMissing, FatalSetupFailure
from .rooms import FactionProfile
from .storage import DungeonStorage, FloorRecord, SQLAlchemyDungeonStorage

log = get_logger("dungeon")


class FloorIssue(NamedTuple):
    floor_number: int
    stage: Optional[str]
    error: str


@dataclass
class GenerationSummary:
    seed: int
    floors: List[FloorResult] = field(default_factory=list)
    skipped: List[FloorIssue] = field(default_factory=list)
    failed: List[FloorIssue] = field(default_factory=list)
    runtime_ms: int = 0

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.failed

    @property
    def partial(self) -> bool:
        """Some floors were generated and some were skipped or failed."""
        return not self.ok and bool(self.floors)

    @property
    def failed_all(self) -> bool:
        return not self.floors

    @property
    def rooms(self) -> int:
        return sum(f.rooms for f in self.floors)

    @property
    def connections(self) -> int:
        return sum(f.connections for f in self.floors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "ok": self.ok,
            "partial": self.partial,
            "failed_all": self.failed_all,
            "rooms": self.rooms,
            "connections": self.connections,
            "runtime_ms": self.runtime_ms,
            "floors": [f.to_dict() for f in self.floors],
            "skipped": [i._asdict() for i in self.skipped],
            "failed": [i._asdict() for i in self.failed],
        }


def floor_seed(seed: int, floor_number: int) -> int:
    """Stable per-floor seed so one floor's draws never shift another's."""
    return (seed * 1_000_003 + floor_number) & 0xFFFFFFFF


def _setup(label: str, fn, *a):
    try:
        return fn(*a)
    except Exception as exc:
        raise FatalSetupFailure(f"{label} failed: {exc}", stage=label) from exc


def generate_full_dungeon(
    factions: Optional[Sequence[FactionProfile]] = None,
    *,
    storage: Optional[DungeonStorage] = None,
    config: Optional[GenerationConfig] = None,
    catalog: Optional[RoomTypeCatalog] = None,
    assembler: Optional[FloorAssembler] = None,
) -> GenerationSummary:
    """Clear and rebuild every floor; returns per-floor results plus skipped/failed floors."""
    cfg = config or GenerationConfig.load()
    storage = storage or SQLAlchemyDungeonStorage()
    assembler = assembler or FloorAssembler(cfg, catalog)
    seed = cfg.seed if cfg.seed is not None else random.randint(1, 1_000_000)
    summary = GenerationSummary(seed=seed)
    start = time.perf_counter()

    floors: List[FloorRecord] = _setup("get_floors", storage.get_floors)
    if not floors:
        raise FatalSetupFailure("no floor rows found; seed floors before generating", stage="get_floors")
    if factions is None:
        factions = _setup("get_factions", storage.get_factions)
    by_number = {f.floor_number: f for f in floors}

    log.info(
        event="dungeon_generation_start",
        seed=seed,
        floors=cfg.floor_count,
        factions=len(factions),
        grid=cfg.grid_size,
        min_rooms=cfg.min_rooms,
    )
    _setup("clear_dungeon_data", storage.clear_dungeon_data)

    for number in range(1, cfg.floor_count + 1):
        floor_log = log.bind(floor=number)
        floor = by_number.get(number)
        if floor is None:
            summary.skipped.append(FloorIssue(number, "floor_lookup", "no floor row"))
            floor_log.warn(event="floor_skipped", stage="floor_lookup", reason="no_floor_row")
            continue
        rng = random.Random(floor_seed(seed, number))
        try:
            result = assembler.build_floor(storage, floor, factions, rng)
        except CatalogMissing as exc:
            stage = exc.stage or assembler.stage
            summary.skipped.append(FloorIssue(number, stage, exc.message))
            floor_log.warn(event="floor_skipped", stage=stage, reason="catalog_missing", error=exc.message)
            _cleanup(storage, floor, floor_log)
            continue
        except Exception as exc:
            stage = getattr(exc, "stage", None) or assembler.stage
            message = getattr(exc, "message", None) or str(exc)
            summary.failed.append(FloorIssue(number, stage, f"{type(exc).__name__}: {message}"))
            floor_log.error(event="floor_failed", stage=stage, error_type=type(exc).__name__, error=message)
            _cleanup(storage, floor, floor_log)
            continue
        summary.floors.append(result)
        floor_log.info(
            event="floor_generated",
            rooms=result.rooms,
            connections=result.connections,
            repairs=result.repairs,
            secret=result.secret_passages,
            factions=len(result.faction_rooms),
            unclaimed=result.unclaimed,
            ms=result.metrics['runtime_ms'],
        )

    summary.runtime_ms = int((time.perf_counter() - start) * 1000)
    fields = dict(
        event="dungeon_generation_complete",
        seed=seed,
        generated=len(summary.floors),
        skipped=len(summary.skipped),
        failed=len(summary.failed),
        rooms=summary.rooms,
        connections=summary.connections,
        ms=summary.runtime_ms,
    )
    if summary.ok:
        log.info(**fields)
    elif summary.failed_all:
        log.error(**fields)
    else:
        log.warn(**fields)
    return summary


def _cleanup(storage: DungeonStorage, floor: FloorRecord, floor_log) -> None:
    try:
        storage.clear_floor(floor.id)
    except Exception as exc:
        floor_log.error(event="floor_cleanup_failed", error=str(exc))


__all__ = ["GenerationSummary", "FloorIssue", "generate_full_dungeon", "floor_seed"]
