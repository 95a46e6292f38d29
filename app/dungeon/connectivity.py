"""Room adjacency edges and connectivity repair.

Edges are directional ``ConnectionSpec`` records generated in both directions
for each adjacency; traversal treats them as undirected. Repair guarantees
every room is reachable from the entrance by appending bidirectional edges,
labelled with the cardinal direction when the two rooms are axis-adjacent and
``secret`` otherwise.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .rooms import PersistedRoom

NORTH = "north"
SOUTH = "south"
EAST = "east"
WEST = "west"
SECRET = "secret"

DIRECTIONS = (NORTH, SOUTH, EAST, WEST, SECRET)

# (dx, dy, direction); +y is north
CARDINAL_STEPS: Tuple[Tuple[int, int, str], ...] = (
    (0, 1, NORTH),
    (0, -1, SOUTH),
    (1, 0, EAST),
    (-1, 0, WEST),
)

OPPOSITE = {NORTH: SOUTH, SOUTH: NORTH, EAST: WEST, WEST: EAST, SECRET: SECRET}


@dataclass(frozen=True)
class ConnectionSpec:
    from_room_id: int
    to_room_id: int
    direction: str

    @property
    def key(self) -> Tuple[int, int, str]:
        return (self.from_room_id, self.to_room_id, self.direction)

    def reversed(self) -> "ConnectionSpec":
        return ConnectionSpec(self.to_room_id, self.from_room_id, OPPOSITE[self.direction])

    def to_row(self) -> dict:
        return {"from_room_id": self.from_room_id, "to_room_id": self.to_room_id, "direction": self.direction}


def direction_between(src: Tuple[int, int], dst: Tuple[int, int]) -> str:
    """Cardinal direction for a unit step from ``src`` to ``dst``; anything else is ``secret``."""
    dx, dy = dst[0] - src[0], dst[1] - src[1]
    for sx, sy, name in CARDINAL_STEPS:
        if (dx, dy) == (sx, sy):
            return name
    return SECRET


def manhattan(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def build_adjacency_edges(rooms: Sequence[PersistedRoom]) -> List[ConnectionSpec]:
    """Directed edges for every pair of rooms at Manhattan distance 1, in both directions."""
    by_pos = {(r.x, r.y): r for r in rooms}
    edges: List[ConnectionSpec] = []
    for room in rooms:
        for dx, dy, direction in CARDINAL_STEPS:
            neighbor = by_pos.get((room.x + dx, room.y + dy))
            if neighbor is not None:
                edges.append(ConnectionSpec(room.id, neighbor.id, direction))
    return edges


def adjacency_map(room_ids: Iterable[int], edges: Iterable[ConnectionSpec]) -> Dict[int, Set[int]]:
    adj: Dict[int, Set[int]] = {rid: set() for rid in room_ids}
    for e in edges:
        adj.setdefault(e.from_room_id, set()).add(e.to_room_id)
        adj.setdefault(e.to_room_id, set()).add(e.from_room_id)
    return adj


def _flood(adj: Dict[int, Set[int]], start: int, visited: Set[int]) -> List[int]:
    """BFS from ``start`` adding newly reached ids to ``visited``; returns them in visit order."""
    reached = []
    if start not in visited:
        visited.add(start)
        reached.append(start)
    q = deque([start])
    while q:
        cur = q.popleft()
        for nxt in adj.get(cur, ()):
            if nxt not in visited:
                visited.add(nxt)
                reached.append(nxt)
                q.append(nxt)
    return reached


def reachable_from(room_ids: Iterable[int], edges: Iterable[ConnectionSpec], start: int) -> Set[int]:
    adj = adjacency_map(room_ids, edges)
    visited: Set[int] = set()
    _flood(adj, start, visited)
    return visited


def connected_components(rooms: Sequence[PersistedRoom], edges: Iterable[ConnectionSpec]) -> List[List[int]]:
    adj = adjacency_map((r.id for r in rooms), edges)
    visited: Set[int] = set()
    components = []
    for r in rooms:
        if r.id not in visited:
            components.append(_flood(adj, r.id, visited))
    return components


def dedupe_connections(edges: Iterable[ConnectionSpec]) -> List[ConnectionSpec]:
    """Drop repeated ``(from, to, direction)`` triples, keeping first occurrence order."""
    seen = set()
    out = []
    for e in edges:
        if e.key in seen:
            continue
        seen.add(e.key)
        out.append(e)
    return out


class ConnectivityRepairStrategy:
    """Interface: return ``edges`` plus whatever is needed to reach every room from the entrance."""

    name = "base"
    added = 0

    def repair(
        self,
        rooms: Sequence[PersistedRoom],
        edges: List[ConnectionSpec],
        entrance_id: int,
    ) -> List[ConnectionSpec]:  # pragma: no cover - interface
        raise NotImplementedError

    @staticmethod
    def _link(stranded: PersistedRoom, anchor: PersistedRoom) -> Tuple[ConnectionSpec, ConnectionSpec]:
        forward = ConnectionSpec(stranded.id, anchor.id, direction_between((stranded.x, stranded.y), (anchor.x, anchor.y)))
        return forward, forward.reversed()

    @staticmethod
    def _check_entrance(rooms: Sequence[PersistedRoom], entrance_id: int) -> None:
        if not any(r.id == entrance_id for r in rooms):
            raise ValueError(f"entrance room {entrance_id} is not among the floor's rooms")


class NearestNeighborRepair(ConnectivityRepairStrategy):
    """Attach each stranded room, in input order, to its nearest reachable room.

    After a stranded room is attached its whole component (via existing edges)
    becomes reachable, so later stranded rooms in the same component need no
    extra edge and later components can chain off it.
    """

    name = "nearest"

    def repair(self, rooms, edges, entrance_id):
        self._check_entrance(rooms, entrance_id)
        out = list(edges)
        adj = adjacency_map((r.id for r in rooms), out)
        visited: Set[int] = set()
        _flood(adj, entrance_id, visited)
        by_id = {r.id: r for r in rooms}
        connected: List[PersistedRoom] = [r for r in rooms if r.id in visited]
        self.added = 0
        for room in rooms:
            if room.id in visited:
                continue
            anchor = self._nearest(room, connected)
            fwd, back = self._link(room, anchor)
            out.extend((fwd, back))
            adj[room.id].add(anchor.id)
            adj[anchor.id].add(room.id)
            self.added += 1
            for rid in _flood(adj, room.id, visited):
                connected.append(by_id[rid])
        return out

    @staticmethod
    def _nearest(room: PersistedRoom, candidates: Sequence[PersistedRoom]) -> PersistedRoom:
        best: Optional[PersistedRoom] = None
        best_d = None
        for c in candidates:
            d = manhattan((c.x, c.y), (room.x, room.y))
            if best_d is None or d < best_d:
                best, best_d = c, d
        return best


class ComponentBridgeRepair(ConnectivityRepairStrategy):
    """Repeatedly bridge the globally closest (stranded, reachable) pair.

    Quadratic per bridged component; each bridge is the shortest passage
    available at that point.
    """

    name = "bridge"

    def repair(self, rooms, edges, entrance_id):
        self._check_entrance(rooms, entrance_id)
        out = list(edges)
        adj = adjacency_map((r.id for r in rooms), out)
        visited: Set[int] = set()
        _flood(adj, entrance_id, visited)
        self.added = 0
        while True:
            stranded = [r for r in rooms if r.id not in visited]
            if not stranded:
                break
            connected = [r for r in rooms if r.id in visited]
            best = None
            for s in stranded:
                for c in connected:
                    d = manhattan((c.x, c.y), (s.x, s.y))
                    if best is None or d < best[0]:
                        best = (d, s, c)
            _d, s, c = best
            fwd, back = self._link(s, c)
            out.extend((fwd, back))
            adj[s.id].add(c.id)
            adj[c.id].add(s.id)
            self.added += 1
            _flood(adj, s.id, visited)
        return out


REPAIR_STRATEGIES = {
    NearestNeighborRepair.name: NearestNeighborRepair,
    ComponentBridgeRepair.name: ComponentBridgeRepair,
}


def get_repair_strategy(name: str) -> ConnectivityRepairStrategy:
    try:
        return REPAIR_STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"unknown repair strategy {name!r}") from None


__all__ = [
    "NORTH",
    "SOUTH",
    "EAST",
    "WEST",
    "SECRET",
    "DIRECTIONS",
    "OPPOSITE",
    "ConnectionSpec",
    "direction_between",
    "manhattan",
    "build_adjacency_edges",
    "reachable_from",
    "connected_components",
    "dedupe_connections",
    "ConnectivityRepairStrategy",
    "NearestNeighborRepair",
    "ComponentBridgeRepair",
    "REPAIR_STRATEGIES",
    "get_repair_strategy",
]
