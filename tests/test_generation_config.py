import json

import pytest

from app.dungeon.config import GenerationConfig
from app.models.models import GameConfig


def test_defaults():
    cfg = GenerationConfig()
    assert (cfg.floor_count, cfg.grid_size, cfg.min_rooms, cfg.staircases) == (10, 20, 200, 3)
    assert cfg.unclaimed_percent == 0.2
    assert (cfg.min_factions, cfg.rooms_per_faction) == (2, 10)
    assert (cfg.room_batch_size, cfg.connection_batch_size) == (50, 100)
    assert cfg.lattice_size == 400
    assert cfg.fill_attempt_cap == 20_000
    assert GenerationConfig(max_fill_attempts=5).fill_attempt_cap == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"floor_count": 0},
        {"keep_probability": 1.5},
        {"unclaimed_percent": -0.1},
        {"max_placement_attempts": 0},
        {"min_factions": 3, "max_factions": 2},
        {"faction_count_policy": "vibes"},
        {"room_batch_size": 0},
        {"grid_size": 8, "min_rooms": 65},
    ],
)
def test_validate_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        GenerationConfig(**overrides).validate()


def test_layered_precedence(test_app, monkeypatch):
    GameConfig.set(
        "dungeon_generation",
        json.dumps({"min_rooms": 150, "grid_size": 18, "staircases": 2, "unclaimed_percent": 0.3}),
    )
    monkeypatch.setenv("DUNGEON_MIN_ROOMS", "120")
    monkeypatch.setenv("DUNGEON_GRID_SIZE", "16")
    monkeypatch.setitem(test_app.config, "DUNGEON_GRID_SIZE", 14)

    cfg = GenerationConfig.load(staircases=4, seed=None)
    assert cfg.unclaimed_percent == 0.3  # game config only
    assert cfg.min_rooms == 120  # env beats game config
    assert cfg.grid_size == 14  # flask config beats env
    assert cfg.staircases == 4  # keyword beats everything
    assert cfg.seed is None


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("DUNGEON_KEEP_PROBABILITY", "0.4")
    monkeypatch.setenv("DUNGEON_MAX_FACTIONS", "none")
    monkeypatch.setenv("DUNGEON_SEED", "42")
    monkeypatch.setenv("DUNGEON_REPAIR_STRATEGY", "bridge")
    cfg = GenerationConfig.load()
    assert cfg.keep_probability == 0.4
    assert cfg.max_factions is None
    assert cfg.seed == 42
    assert cfg.repair_strategy == "bridge"


def test_bad_game_config_json_is_ignored():
    GameConfig.set("dungeon_generation", "{not json")
    assert GenerationConfig.load().min_rooms == 200
    GameConfig.set("dungeon_generation", json.dumps([1, 2, 3]))
    assert GenerationConfig.load().min_rooms == 200


def test_unknown_keys_are_ignored_and_invalid_merge_raises():
    cfg = GenerationConfig().merged({"no_such_field": 1, "min_rooms": "75"})
    assert cfg.min_rooms == 75
    with pytest.raises(ValueError):
        GenerationConfig.load(grid_size=0)


def test_to_dict_round_trips_through_merged():
    cfg = GenerationConfig(min_rooms=80, seed=7)
    assert GenerationConfig().merged(cfg.to_dict()) == cfg
