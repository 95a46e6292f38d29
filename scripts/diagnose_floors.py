#!/usr/bin/env python3
"""Structural diagnostics for generated floors, run entirely in memory.

Usage:
  python scripts/diagnose_floors.py 292372 730727
  DUNGEON_MIN_ROOMS=120 DUNGEON_GRID_SIZE=14 python scripts/diagnose_floors.py 7

If no seeds are provided as CLI args, a default list is used. For each floor
checks entrance reachability, duplicate edges and that special rooms carry no
faction. Exits with non-zero status if structural issues are detected.
"""

from __future__ import annotations

import json
import os
import sys
from collections import Counter
from typing import List

# Ensure project root on path if executed directly
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.dungeon import (  # noqa: E402 import after path fix
    FactionProfile,
    GenerationConfig,
    MemoryDungeonStorage,
    generate_full_dungeon,
    reachable_from,
)
from app.dungeon.rooms import ENTRANCE  # noqa: E402
from app.seed_content import FACTIONS  # noqa: E402

DEFAULT_SEEDS = [292372, 730727]


def roster() -> List[FactionProfile]:
    return [
        FactionProfile(id=i, name=name, description=desc, influence=influence, color=color, icon=icon)
        for i, (name, desc, influence, color, icon) in enumerate(FACTIONS, start=1)
    ]


def floor_issues(storage: MemoryDungeonStorage, floor_id: int) -> dict:
    rooms = storage.rooms_on_floor(floor_id)
    edges = storage.connections_on_floor(floor_id)
    entrance = next((rid for rid, r in rooms.items() if r.type == ENTRANCE), None)
    reached = reachable_from(rooms, edges, entrance) if entrance is not None else set()
    dupes = sum(n - 1 for n in Counter(e.key for e in edges).values() if n > 1)
    return {
        "missing_entrance": int(entrance is None),
        "unreachable_rooms": len(rooms) - len(reached),
        "duplicate_edges": dupes,
        "claimed_special_rooms": sum(1 for r in rooms.values() if not r.claimable and r.faction_id is not None),
    }


def run_for_seed(seed: int) -> dict:
    cfg = GenerationConfig.load(seed=seed)
    storage = MemoryDungeonStorage.with_floors(cfg.floor_count, roster())
    summary = generate_full_dungeon(storage=storage, config=cfg)
    floors = {}
    for result in summary.floors:
        floors[result.floor_number] = floor_issues(storage, result.floor_id)
    ok = summary.ok and all(v == 0 for f in floors.values() for v in f.values())
    return {
        "seed": seed,
        "rooms": summary.rooms,
        "connections": summary.connections,
        "skipped": len(summary.skipped),
        "failed": len(summary.failed),
        "floors": floors,
        "ok": ok,
    }


def main(argv: List[str]) -> int:
    seeds = [int(a) for a in argv] if argv else DEFAULT_SEEDS
    results = [run_for_seed(s) for s in seeds]
    print(json.dumps({"results": results}, indent=2))
    if not all(r["ok"] for r in results):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
