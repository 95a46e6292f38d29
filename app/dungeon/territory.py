"""Faction territory allocation.

Partitions a floor's claimable rooms among a random subset of factions in
proportion to influence. Regions grow outward from one seed room per faction,
one BFS ring per round with all factions taking turns, so territories stay
contiguous and interleave instead of one faction flooding the floor first.
Rooms never reached (reserved, isolated pockets, or quota leftovers) are
``unclaimed``; entrance, stairs and safe rooms are always unclaimed.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .config import GenerationConfig
from .rooms import FactionProfile, RoomSpec

UNCLAIMED = "unclaimed"

_STEPS: Tuple[Tuple[int, int], ...] = ((0, 1), (0, -1), (1, 0), (-1, 0))


@dataclass
class TerritoryAssignment:
    """Faction id -> room ids, plus the ``unclaimed`` bucket.

    Room ids are whatever identifier the caller used (the floor assembler
    passes placement ids since database ids do not exist yet).
    """

    regions: Dict[int, List[int]] = field(default_factory=dict)
    unclaimed: List[int] = field(default_factory=list)
    quotas: Dict[int, int] = field(default_factory=dict)
    reserved: List[int] = field(default_factory=list)
    seeds: Dict[int, int] = field(default_factory=dict)

    def as_mapping(self) -> Dict[Union[int, str], List[int]]:
        out: Dict[Union[int, str], List[int]] = {fid: list(ids) for fid, ids in self.regions.items()}
        out[UNCLAIMED] = list(self.unclaimed)
        return out

    def owners(self) -> Dict[int, int]:
        return {rid: fid for fid, ids in self.regions.items() for rid in ids}

    @property
    def claimed_count(self) -> int:
        return sum(len(ids) for ids in self.regions.values())

    @property
    def total(self) -> int:
        return self.claimed_count + len(self.unclaimed)

    def counts(self) -> Dict[Union[int, str], int]:
        return {k: len(v) for k, v in self.as_mapping().items()}


def clamp_faction_count(wanted: int, available: int, min_factions: int, max_factions: Optional[int] = None) -> int:
    """``max(min_factions, min(upper, wanted))`` where upper is the available (and optional max) count."""
    upper = available if max_factions is None else min(available, max_factions)
    return max(min_factions, min(upper, wanted))


def quota_faction_count(remaining: int, available: int, min_factions: int, rooms_per_faction: int,
                        max_factions: Optional[int] = None) -> int:
    return clamp_faction_count(math.ceil(remaining / rooms_per_faction), available, min_factions, max_factions)


def density_faction_count(claimable: int, available: int, min_factions: int, density_divisor: int,
                          max_factions: Optional[int] = None) -> int:
    return clamp_faction_count(claimable // density_divisor, available, min_factions, max_factions)


def influence_quotas(factions: Sequence[FactionProfile], total: int) -> Dict[int, int]:
    """Split ``total`` rooms by influence share; the result always sums to ``total``.

    Shares are floored and the leftover rooms go one each to the largest
    fractional remainders (ties to the earlier faction).
    """
    if not factions:
        return {}
    influence = sum(f.influence for f in factions)
    if influence <= 0:
        base, extra = divmod(total, len(factions))
        return {f.id: base + (1 if i < extra else 0) for i, f in enumerate(factions)}
    raw = [(f.id, total * f.influence / influence) for f in factions]
    quotas = {fid: int(math.floor(share)) for fid, share in raw}
    leftover = total - sum(quotas.values())
    by_remainder = sorted(range(len(raw)), key=lambda i: (-(raw[i][1] - quotas[raw[i][0]]), i))
    for i in by_remainder[:leftover]:
        quotas[raw[i][0]] += 1
    return quotas


class TerritoryAllocationStrategy:
    """Interface: partition ``rooms`` (by ``placement_id``) among ``factions``."""

    name = "base"

    def allocate(
        self,
        rooms: Sequence[RoomSpec],
        factions: Sequence[FactionProfile],
        rng: Optional[random.Random] = None,
    ) -> TerritoryAssignment:  # pragma: no cover - interface
        raise NotImplementedError


class ContiguousGrowthAllocator(TerritoryAllocationStrategy):
    """Proportional-quota seeded region growth."""

    name = "contiguous"

    def __init__(
        self,
        unclaimed_percent: float = 0.2,
        min_factions: int = 2,
        rooms_per_faction: int = 10,
        max_factions: Optional[int] = None,
        faction_count_policy: str = "per_quota",
        density_divisor: int = 120,
    ):
        self.unclaimed_percent = unclaimed_percent
        self.min_factions = min_factions
        self.rooms_per_faction = rooms_per_faction
        self.max_factions = max_factions
        self.faction_count_policy = faction_count_policy
        self.density_divisor = density_divisor

    @classmethod
    def from_config(cls, config: GenerationConfig) -> "ContiguousGrowthAllocator":
        return cls(
            unclaimed_percent=config.unclaimed_percent,
            min_factions=config.min_factions,
            rooms_per_faction=config.rooms_per_faction,
            max_factions=config.max_factions,
            faction_count_policy=config.faction_count_policy,
            density_divisor=config.density_divisor,
        )

    def faction_count(self, claimable: int, remaining: int, available: int) -> int:
        if self.faction_count_policy == "density":
            return density_faction_count(claimable, available, self.min_factions, self.density_divisor, self.max_factions)
        return quota_faction_count(remaining, available, self.min_factions, self.rooms_per_faction, self.max_factions)

    def allocate(self, rooms, factions, rng=None):
        rng = rng or random.Random()
        result = TerritoryAssignment()
        claimable = [r for r in rooms if r.claimable]
        special_ids = [r.placement_id for r in rooms if not r.claimable]

        shuffled = list(claimable)
        rng.shuffle(shuffled)
        reserve = int(math.floor(self.unclaimed_percent * len(shuffled)))
        result.reserved = [r.placement_id for r in shuffled[:reserve]]
        pool = shuffled[reserve:]

        eligible = [f for f in factions if f.influence > 0]
        wanted = self.faction_count(len(claimable), len(pool), len(eligible))
        picked = rng.sample(eligible, min(wanted, len(eligible))) if eligible else []
        result.quotas = influence_quotas(picked, len(pool))
        result.regions = {f.id: [] for f in picked}

        by_pos = {r.pos: r.placement_id for r in pool}
        pos_of = {r.placement_id: r.pos for r in pool}
        owner: Dict[int, int] = {}

        # One random seed per faction with a non-zero quota
        open_ids = [r.placement_id for r in pool]
        frontiers: Dict[int, List[int]] = {}
        for f in picked:
            if not open_ids or result.quotas[f.id] <= 0:
                frontiers[f.id] = []
                continue
            idx = rng.randrange(len(open_ids))
            open_ids[idx], open_ids[-1] = open_ids[-1], open_ids[idx]
            seed = open_ids.pop()
            owner[seed] = f.id
            result.regions[f.id].append(seed)
            result.seeds[f.id] = seed
            frontiers[f.id] = [seed]

        grew = True
        while grew:
            grew = False
            for f in picked:
                region = result.regions[f.id]
                quota = result.quotas[f.id]
                frontier = frontiers[f.id]
                if not frontier or len(region) >= quota:
                    frontiers[f.id] = []
                    continue
                ring: List[int] = []
                for rid in frontier:
                    x, y = pos_of[rid]
                    steps = list(_STEPS)
                    rng.shuffle(steps)
                    for dx, dy in steps:
                        nb = by_pos.get((x + dx, y + dy))
                        if nb is None or nb in owner:
                            continue
                        owner[nb] = f.id
                        region.append(nb)
                        ring.append(nb)
                        if len(region) >= quota:
                            break
                    if len(region) >= quota:
                        break
                frontiers[f.id] = ring
                if ring:
                    grew = True

        result.unclaimed = list(result.reserved)
        result.unclaimed.extend(r.placement_id for r in pool if r.placement_id not in owner)
        result.unclaimed.extend(special_ids)
        return result


ALLOCATION_STRATEGIES = {ContiguousGrowthAllocator.name: ContiguousGrowthAllocator}


def get_allocation_strategy(config: GenerationConfig) -> TerritoryAllocationStrategy:
    try:
        cls = ALLOCATION_STRATEGIES[config.allocation_strategy]
    except KeyError:
        raise ValueError(f"unknown allocation strategy {config.allocation_strategy!r}") from None
    return cls.from_config(config)


__all__ = [
    "UNCLAIMED",
    "TerritoryAssignment",
    "TerritoryAllocationStrategy",
    "ContiguousGrowthAllocator",
    "ALLOCATION_STRATEGIES",
    "get_allocation_strategy",
    "clamp_faction_count",
    "quota_faction_count",
    "density_faction_count",
    "influence_quotas",
]
