"""Randomized lattice sampling for room placement."""
from __future__ import annotations

import random
from typing import List, Optional, Set, Tuple

from .errors import InsufficientSpace

Coord = Tuple[int, int]


def lattice_bounds(grid_size: int) -> Tuple[int, int]:
    """Half-open ``[lo, hi)`` range covering ``grid_size`` cells centred on 0."""
    lo = -(grid_size // 2)
    return lo, lo + grid_size


class GridSampler:
    """Keeps each lattice cell with probability ``keep_probability`` then tops up to ``min_rooms``.

    The top-up loop draws uniform random cells and is capped at
    ``max_fill_attempts`` draws; exhausting the cap raises ``InsufficientSpace``.
    """

    def __init__(
        self,
        grid_size: int,
        min_rooms: int,
        keep_probability: float = 0.55,
        max_fill_attempts: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.grid_size = grid_size
        self.min_rooms = min_rooms
        self.keep_probability = keep_probability
        cells = grid_size * grid_size
        self.max_fill_attempts = max_fill_attempts if max_fill_attempts is not None else max(1000, 50 * cells)
        self.rng = rng or random.Random()

    @property
    def capacity(self) -> int:
        return self.grid_size * self.grid_size

    def sample(self) -> List[Coord]:
        if self.min_rooms > self.capacity:
            raise InsufficientSpace(
                f"{self.min_rooms} rooms requested but a {self.grid_size}x{self.grid_size} lattice holds {self.capacity}",
                stage="sample_positions",
            )
        lo, hi = lattice_bounds(self.grid_size)
        rng = self.rng
        positions: List[Coord] = []
        seen: Set[Coord] = set()
        for x in range(lo, hi):
            for y in range(lo, hi):
                if rng.random() < self.keep_probability:
                    positions.append((x, y))
                    seen.add((x, y))
        attempts = 0
        while len(positions) < self.min_rooms:
            if attempts >= self.max_fill_attempts:
                raise InsufficientSpace(
                    f"only {len(positions)}/{self.min_rooms} positions after {attempts} fill attempts",
                    stage="sample_positions",
                )
            attempts += 1
            cell = (rng.randrange(lo, hi), rng.randrange(lo, hi))
            if cell in seen:
                continue
            positions.append(cell)
            seen.add(cell)
        return positions


__all__ = ["GridSampler", "lattice_bounds", "Coord"]
