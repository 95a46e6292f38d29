import pytest

from app.dungeon.connectivity import (
    EAST,
    NORTH,
    SECRET,
    SOUTH,
    WEST,
    ComponentBridgeRepair,
    ConnectionSpec,
    NearestNeighborRepair,
    build_adjacency_edges,
    connected_components,
    dedupe_connections,
    direction_between,
    get_repair_strategy,
    manhattan,
)
from tests.dungeon_test_utils import all_reachable, persisted


def test_direction_between_unit_steps_and_secret():
    assert direction_between((0, 0), (0, 1)) == NORTH
    assert direction_between((0, 0), (0, -1)) == SOUTH
    assert direction_between((0, 0), (1, 0)) == EAST
    assert direction_between((0, 0), (-1, 0)) == WEST
    assert direction_between((0, 0), (1, 1)) == SECRET
    assert direction_between((0, 0), (2, 0)) == SECRET


def test_nearest_repair_anchors_on_manhattan_closest_room():
    assert manhattan((0, 0), (2, -3)) == 5
    # entrance cluster at x=0..1; the stranded room at (4, 0) is 3 from (1, 0) and 4 from (0, 0)
    rooms = persisted((0, 0), (1, 0), (4, 0))
    edges = build_adjacency_edges(rooms)
    out = NearestNeighborRepair().repair(rooms, edges, entrance_id=1)
    added = {(e.from_room_id, e.to_room_id) for e in out} - {(e.from_room_id, e.to_room_id) for e in edges}
    assert added == {(3, 2), (2, 3)}

def test_adjacency_edges_are_bidirectional():
    rooms = persisted((0, 0), (0, 1))
    edges = build_adjacency_edges(rooms)
    assert set(e.key for e in edges) == {(1, 2, NORTH), (2, 1, SOUTH)}


def test_adjacency_edges_on_square_block():
    rooms = persisted((0, 0), (1, 0), (0, 1), (1, 1))
    edges = build_adjacency_edges(rooms)
    # four adjacencies, each in both directions
    assert len(edges) == 8
    assert len(connected_components(rooms, edges)) == 1


def test_diagonal_rooms_are_not_adjacent():
    rooms = persisted((0, 0), (1, 1))
    assert build_adjacency_edges(rooms) == []
    assert len(connected_components(rooms, [])) == 2


@pytest.mark.parametrize("strategy", [NearestNeighborRepair, ComponentBridgeRepair])
def test_two_clusters_two_apart_get_one_secret_pair(strategy):
    rooms = persisted((0, 0), (1, 0), (2, 0), (4, 0), (5, 0), (6, 0))
    edges = build_adjacency_edges(rooms)
    assert len(connected_components(rooms, edges)) == 2

    repair = strategy()
    repaired = repair.repair(rooms, edges, entrance_id=1)
    added = repaired[len(edges):]

    assert repair.added == 1
    assert len(added) == 2
    assert {e.direction for e in added} == {SECRET}
    assert {(e.from_room_id, e.to_room_id) for e in added} == {(4, 3), (3, 4)}
    assert all_reachable([r.id for r in rooms], repaired, 1)


def test_repair_labels_axis_adjacent_link_with_cardinal_direction():
    rooms = persisted((0, 0), (0, 1))
    repaired = NearestNeighborRepair().repair(rooms, [], entrance_id=1)
    assert {e.key for e in repaired} == {(2, 1, SOUTH), (1, 2, NORTH)}


def test_repair_chains_across_several_islands():
    rooms = persisted((0, 0), (3, 0), (6, 0), (9, 0), (9, 3))
    repair = NearestNeighborRepair()
    repaired = repair.repair(rooms, [], entrance_id=1)
    assert repair.added == 4
    assert all_reachable([r.id for r in rooms], repaired, 1)


def test_connected_floor_needs_no_repair():
    rooms = persisted((0, 0), (1, 0), (2, 0))
    edges = build_adjacency_edges(rooms)
    repair = NearestNeighborRepair()
    assert repair.repair(rooms, edges, entrance_id=1) == edges
    assert repair.added == 0


def test_unknown_entrance_rejected():
    with pytest.raises(ValueError):
        NearestNeighborRepair().repair(persisted((0, 0)), [], entrance_id=99)


def test_dedupe_keeps_first_occurrence():
    dup = ConnectionSpec(1, 2, NORTH)
    edges = [dup, ConnectionSpec(2, 1, SOUTH), ConnectionSpec(1, 2, NORTH), ConnectionSpec(1, 2, SECRET)]
    out = dedupe_connections(edges)
    assert out == [dup, ConnectionSpec(2, 1, SOUTH), ConnectionSpec(1, 2, SECRET)]
    assert sum(1 for e in out if e.key == (1, 2, NORTH)) == 1


def test_reversed_connection_uses_opposite_direction():
    assert ConnectionSpec(1, 2, EAST).reversed() == ConnectionSpec(2, 1, WEST)
    assert ConnectionSpec(1, 2, SECRET).reversed() == ConnectionSpec(2, 1, SECRET)


def test_repair_strategy_lookup():
    assert isinstance(get_repair_strategy("nearest"), NearestNeighborRepair)
    assert isinstance(get_repair_strategy("bridge"), ComponentBridgeRepair)
    with pytest.raises(ValueError):
        get_repair_strategy("teleport")
