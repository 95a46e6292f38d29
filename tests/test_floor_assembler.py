import math
import random

import pytest

from app.dungeon import FloorAssembler, MemoryDungeonStorage, NearestNeighborRepair
from app.dungeon.errors import PlacementExhausted
from app.dungeon.rooms import ENTRANCE, NORMAL, STAIRS, UNCLAIMED_SUFFIX
from tests.dungeon_test_utils import all_reachable, factions, small_config


def _build(cfg, floor_number=1, seed=0, roster=None, assembler=None):
    roster = roster if roster is not None else factions(3, 2, 1, 1)
    storage = MemoryDungeonStorage.with_floors(cfg.floor_count, roster)
    assembler = assembler or FloorAssembler(cfg)
    floor = storage.get_floors()[floor_number - 1]
    result = assembler.build_floor(storage, floor, roster, random.Random(seed))
    return storage, floor, result


def test_small_lattice_scenario_places_entrance_stairs_and_connects():
    cfg = small_config()
    for seed in range(15):
        storage, floor, result = _build(cfg, seed=seed)
        rooms = storage.rooms_on_floor(floor.id)
        edges = storage.connections_on_floor(floor.id)
        assert len(rooms) >= 50
        assert result.rooms == len(rooms)
        types = [r.type for r in rooms.values()]
        assert types.count(ENTRANCE) == 1
        assert types.count(STAIRS) == 1
        entrance_id = next(rid for rid, r in rooms.items() if r.type == ENTRANCE)
        assert (rooms[entrance_id].x, rooms[entrance_id].y) == (0, 0)
        assert all_reachable(list(rooms), edges, entrance_id)


def test_rooms_occupy_distinct_positions():
    storage, floor, _ = _build(small_config(), seed=3)
    positions = [(r.x, r.y) for r in storage.rooms_on_floor(floor.id).values()]
    assert len(positions) == len(set(positions))


def test_first_floor_entrance_is_safe_later_floors_are_not():
    cfg = small_config()
    plan1 = FloorAssembler(cfg).plan_floor(1, 1, factions(1, 1), random.Random(1))
    plan2 = FloorAssembler(cfg).plan_floor(2, 2, factions(1, 1), random.Random(1))
    assert plan1.entrance.is_safe is True
    assert plan2.entrance.is_safe is False
    assert plan1.entrance.name == "Ruined Castle Grounds Entrance"
    assert plan1.entrance.description == "Entry point to the crumbling battlements and overgrown courtyards"


def test_final_floor_has_no_stairs():
    cfg = small_config(floor_count=3, staircases=2)
    plan = FloorAssembler(cfg).plan_floor(3, 3, factions(1, 1), random.Random(5))
    assert plan.of_type(STAIRS) == []
    plan = FloorAssembler(cfg).plan_floor(2, 2, factions(1, 1), random.Random(5))
    assert len(plan.of_type(STAIRS)) == 2
    stairs = plan.of_type(STAIRS)[0]
    assert stairs.name == "Descent to Alchemical Laboratories"
    assert stairs.description == "Stairs leading down to level 3"


def test_optional_safe_rooms_are_placed_and_unclaimed():
    cfg = small_config(safe_rooms=2)
    plan = FloorAssembler(cfg).plan_floor(2, 2, factions(1, 1, 1), random.Random(12))
    safe = plan.of_type("safe")
    assert len(safe) == 2
    assert all(r.is_safe and r.faction_id is None for r in safe)


def test_special_rooms_never_receive_a_faction():
    cfg = small_config(safe_rooms=1)
    for seed in range(6):
        plan = FloorAssembler(cfg).plan_floor(1, 1, factions(2, 2, 2), random.Random(seed))
        for room in plan.rooms:
            if room.type != NORMAL:
                assert room.faction_id is None
        owned = set(plan.assignment.owners())
        assert not owned & {r.placement_id for r in plan.rooms if r.type != NORMAL}


def test_claimed_rooms_are_themed_by_faction():
    roster = factions(2, 1)
    plan = FloorAssembler(small_config()).plan_floor(1, 1, roster, random.Random(8))
    names = {f.id: f.name for f in roster}
    claimed = [r for r in plan.rooms if r.faction_id is not None]
    assert claimed
    for room in claimed:
        assert room.name.startswith(names[room.faction_id] + " ")
        assert f"under the influence of the {names[room.faction_id]}" in room.description
    for room in plan.rooms:
        if room.type == NORMAL and room.faction_id is None:
            assert room.description.endswith(UNCLAIMED_SUFFIX)


def test_placement_ids_match_room_order():
    plan = FloorAssembler(small_config()).plan_floor(1, 1, factions(1, 1), random.Random(2))
    assert [r.placement_id for r in plan.rooms] == list(range(len(plan.rooms)))
    assert plan.rooms[0].type == ENTRANCE


def test_stair_placement_exhaustion_reports_floor_and_stage():
    cfg = small_config(staircases=5, max_placement_attempts=1)
    with pytest.raises(PlacementExhausted) as exc:
        _build(cfg, floor_number=1, seed=1)
    assert exc.value.floor_number == 1
    assert exc.value.stage == "place_stairs"


def test_rooms_and_connections_persist_in_batches():
    cfg = small_config(room_batch_size=10, connection_batch_size=25)
    storage, floor, result = _build(cfg, seed=4)
    assert storage.room_batches == math.ceil(result.rooms / 10)
    assert storage.connection_batches == math.ceil(result.connections / 25)
    assert result.metrics["room_batches"] == storage.room_batches
    assert result.metrics["connections_inserted"] == result.connections


class DuplicatingRepair(NearestNeighborRepair):
    def repair(self, rooms, edges, entrance_id):
        out = super().repair(rooms, edges, entrance_id)
        return out + [out[0]]


def test_duplicate_edges_are_persisted_once():
    cfg = small_config()
    assembler = FloorAssembler(cfg, repair=DuplicatingRepair())
    storage, floor, result = _build(cfg, seed=6, assembler=assembler)
    keys = [c.key for c in storage.connections_on_floor(floor.id)]
    assert len(keys) == len(set(keys))
    assert result.metrics["duplicate_edges_dropped"] == 1


def test_result_counts_and_phase_timings():
    storage, floor, result = _build(small_config(), seed=10)
    total_claimed = sum(result.faction_rooms.values())
    normal = sum(1 for r in storage.rooms_on_floor(floor.id).values() if r.type == NORMAL)
    assert total_claimed + result.unclaimed == normal
    for phase in ("sample_positions", "place_stairs", "allocate_territory", "insert_rooms", "repair_connectivity"):
        assert phase in result.phase_ms
    data = result.to_dict()
    assert data["floor_number"] == 1 and data["rooms"] == result.rooms
