import random

import pytest

from app.dungeon.errors import InsufficientSpace
from app.dungeon.sampler import GridSampler, lattice_bounds


def test_lattice_bounds_cover_grid_size_cells():
    assert lattice_bounds(8) == (-4, 4)
    assert lattice_bounds(5) == (-2, 3)
    lo, hi = lattice_bounds(20)
    assert hi - lo == 20 and lo <= 0 < hi


def test_sample_meets_minimum_with_distinct_in_bounds_cells():
    for seed in range(10):
        positions = GridSampler(8, 50, rng=random.Random(seed)).sample()
        assert len(positions) >= 50
        assert len(set(positions)) == len(positions)
        lo, hi = lattice_bounds(8)
        assert all(lo <= x < hi and lo <= y < hi for x, y in positions)


def test_keep_probability_one_takes_every_cell():
    positions = GridSampler(6, 1, keep_probability=1.0, rng=random.Random(3)).sample()
    assert len(positions) == 36


def test_top_up_fills_when_nothing_is_kept():
    positions = GridSampler(5, 25, keep_probability=0.0, rng=random.Random(9)).sample()
    assert sorted(positions) == sorted((x, y) for x in range(-2, 3) for y in range(-2, 3))


def test_min_rooms_above_capacity_raises():
    with pytest.raises(InsufficientSpace) as exc:
        GridSampler(4, 17).sample()
    assert exc.value.stage == "sample_positions"


def test_fill_attempt_cap_exhaustion_raises():
    sampler = GridSampler(4, 10, keep_probability=0.0, max_fill_attempts=0, rng=random.Random(1))
    with pytest.raises(InsufficientSpace):
        sampler.sample()


def test_same_seed_same_positions():
    a = GridSampler(10, 60, rng=random.Random(77)).sample()
    b = GridSampler(10, 60, rng=random.Random(77)).sample()
    assert a == b
