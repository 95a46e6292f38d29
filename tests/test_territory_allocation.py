import random
from collections import deque

from app.dungeon.config import GenerationConfig
from app.dungeon.rooms import ENTRANCE, SAFE, STAIRS, RoomSpec
from app.dungeon.territory import (
    UNCLAIMED,
    ContiguousGrowthAllocator,
    clamp_faction_count,
    density_faction_count,
    get_allocation_strategy,
    influence_quotas,
    quota_faction_count,
)
from tests.dungeon_test_utils import factions, grid_coords, normal_rooms


def _assigned_ids(assignment):
    ids = [rid for region in assignment.regions.values() for rid in region]
    return ids + list(assignment.unclaimed)


def _is_contiguous(region, pos_of):
    if not region:
        return True
    members = set(region)
    seen = {region[0]}
    q = deque([region[0]])
    by_pos = {pos_of[r]: r for r in members}
    while q:
        x, y = pos_of[q.popleft()]
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nb = by_pos.get((x + dx, y + dy))
            if nb is not None and nb not in seen:
                seen.add(nb)
                q.append(nb)
    return seen == members


def test_influence_quotas_sum_exactly():
    assert influence_quotas(factions(1, 1, 1), 10) == {1: 4, 2: 3, 3: 3}
    assert influence_quotas(factions(3, 1), 7) == {1: 5, 2: 2}
    for total in range(0, 60, 7):
        quotas = influence_quotas(factions(5, 3, 2, 1), total)
        assert sum(quotas.values()) == total


def test_zero_influence_splits_evenly():
    assert influence_quotas(factions(0, 0), 5) == {1: 3, 2: 2}
    assert influence_quotas([], 5) == {}


def test_faction_count_policies():
    assert clamp_faction_count(10, 3, 2) == 3
    assert clamp_faction_count(0, 8, 2) == 2
    assert clamp_faction_count(7, 8, 2, max_factions=4) == 4
    assert quota_faction_count(25, 10, 2, 10) == 3
    assert quota_faction_count(5, 10, 2, 10) == 2
    assert density_faction_count(250, 10, 2, 120) == 2
    assert density_faction_count(600, 10, 2, 120) == 5


def test_partition_covers_every_room_exactly_once():
    rooms = normal_rooms(grid_coords(10, 10))
    allocator = ContiguousGrowthAllocator(unclaimed_percent=0.2, min_factions=2, rooms_per_faction=10)
    for seed in range(8):
        assignment = allocator.allocate(rooms, factions(3, 2, 1, 1, 4), random.Random(seed))
        ids = _assigned_ids(assignment)
        assert len(ids) == len(set(ids)) == 100
        assert set(ids) == {r.placement_id for r in rooms}
        assert assignment.total == 100
        assert len(assignment.reserved) == 20
        assert sum(assignment.quotas.values()) == 80
        counts = assignment.counts()
        assert sum(counts.values()) == 100 and UNCLAIMED in counts
        owners = assignment.owners()
        assert len(owners) == assignment.claimed_count
        assert not set(owners) & set(assignment.unclaimed)


def test_regions_grow_contiguously_within_quota():
    rooms = normal_rooms(grid_coords(12, 12))
    pos_of = {r.placement_id: (r.x, r.y) for r in rooms}
    allocator = ContiguousGrowthAllocator(unclaimed_percent=0.0, min_factions=3, rooms_per_faction=30)
    assignment = allocator.allocate(rooms, factions(2, 2, 1, 1), random.Random(21))
    assert len(assignment.regions) >= 3
    for fid, region in assignment.regions.items():
        assert len(region) <= assignment.quotas[fid]
        assert region[0] == assignment.seeds[fid]
        assert _is_contiguous(region, pos_of)


def test_special_rooms_are_never_claimed():
    rooms = normal_rooms(grid_coords(6, 6))
    rooms[0].type = ENTRANCE
    rooms[7].type = STAIRS
    rooms[14].type = SAFE
    rooms[14].is_safe = True
    rooms[20].is_safe = True
    special = {0, 7, 14, 20}
    allocator = ContiguousGrowthAllocator(unclaimed_percent=0.0)
    assignment = allocator.allocate(rooms, factions(1, 1, 1), random.Random(4))
    owners = assignment.owners()
    assert not special & set(owners)
    assert special <= set(assignment.unclaimed)
    assert assignment.total == len(rooms)


def test_factions_without_influence_are_not_selected():
    rooms = normal_rooms(grid_coords(5, 5))
    allocator = ContiguousGrowthAllocator(unclaimed_percent=0.0)
    assignment = allocator.allocate(rooms, factions(0, 0), random.Random(2))
    assert assignment.regions == {}
    assert sorted(assignment.unclaimed) == list(range(25))


def test_isolated_rooms_fall_back_to_unclaimed():
    # a checkerboard has no 4-adjacent pairs, so only seeds get claimed
    coords = [(x, y) for x, y in grid_coords(6, 6) if (x + y) % 2 == 0]
    rooms = normal_rooms(coords)
    allocator = ContiguousGrowthAllocator(unclaimed_percent=0.0, min_factions=2)
    assignment = allocator.allocate(rooms, factions(1, 1), random.Random(8))
    assert all(len(region) == 1 for region in assignment.regions.values())
    assert len(assignment.unclaimed) == len(rooms) - len(assignment.regions)


def test_allocation_is_deterministic_for_a_seed():
    rooms = normal_rooms(grid_coords(9, 9))
    allocator = ContiguousGrowthAllocator()
    a = allocator.allocate(rooms, factions(3, 2, 1), random.Random(99))
    b = allocator.allocate(rooms, factions(3, 2, 1), random.Random(99))
    assert a.as_mapping() == b.as_mapping()


def test_allocator_built_from_config():
    cfg = GenerationConfig(unclaimed_percent=0.35, min_factions=3, rooms_per_faction=12, faction_count_policy="density")
    allocator = get_allocation_strategy(cfg)
    assert isinstance(allocator, ContiguousGrowthAllocator)
    assert allocator.unclaimed_percent == 0.35
    assert allocator.faction_count(claimable=500, remaining=300, available=10) == 4


def test_room_ids_follow_placement_ids():
    rooms = [RoomSpec(1, x, 0, "Hall", "", placement_id=100 + x) for x in range(5)]
    assignment = ContiguousGrowthAllocator(unclaimed_percent=0.0).allocate(rooms, factions(1, 1), random.Random(0))
    assert set(_assigned_ids(assignment)) == {100, 101, 102, 103, 104}
