"""Public dungeon package interface.

Floor generation stages (sampling, catalog, territory, connectivity), the
per-floor assembler and the full-dungeon pipeline.
"""

from .assembler import FloorAssembler, FloorPlan, FloorResult  # noqa: F401
from .catalog import FLOOR_THEMES, FloorTheme, RoomType, RoomTypeCatalog  # noqa: F401
from .config import GenerationConfig  # noqa: F401
from .connectivity import (  # noqa: F401
    ComponentBridgeRepair,
    ConnectionSpec,
    NearestNeighborRepair,
    build_adjacency_edges,
    dedupe_connections,
    reachable_from,
)
from .errors import (  # noqa: F401
    CatalogMissing,
    DungeonGenerationError,
    FatalSetupFailure,
    InsufficientSpace,
    PersistenceFailure,
    PlacementExhausted,
)
from .pipeline import GenerationSummary, generate_full_dungeon  # noqa: F401
from .rooms import FactionProfile, PersistedRoom, RoomSpec  # noqa: F401
from .sampler import GridSampler  # noqa: F401
from .storage import DungeonStorage, MemoryDungeonStorage, SQLAlchemyDungeonStorage  # noqa: F401
from .territory import ContiguousGrowthAllocator, TerritoryAssignment  # noqa: F401

__all__ = [
    "FloorAssembler",
    "FloorPlan",
    "FloorResult",
    "FLOOR_THEMES",
    "FloorTheme",
    "RoomType",
    "RoomTypeCatalog",
    "GenerationConfig",
    "ConnectionSpec",
    "NearestNeighborRepair",
    "ComponentBridgeRepair",
    "build_adjacency_edges",
    "dedupe_connections",
    "reachable_from",
    "DungeonGenerationError",
    "CatalogMissing",
    "InsufficientSpace",
    "PlacementExhausted",
    "PersistenceFailure",
    "FatalSetupFailure",
    "GenerationSummary",
    "generate_full_dungeon",
    "FactionProfile",
    "PersistedRoom",
    "RoomSpec",
    "GridSampler",
    "DungeonStorage",
    "MemoryDungeonStorage",
    "SQLAlchemyDungeonStorage",
    "ContiguousGrowthAllocator",
    "TerritoryAssignment",
]
