"""Error taxonomy for floor generation.

Per-floor errors are caught at the floor loop boundary by the pipeline and
logged with floor/stage context; ``FatalSetupFailure`` aborts the whole run.
"""
from __future__ import annotations

from typing import Optional


class DungeonGenerationError(Exception):
    """Base class; carries the floor number and pipeline stage when known."""

    def __init__(self, message: str, *, floor_number: Optional[int] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.floor_number = floor_number
        self.stage = stage

    def __str__(self) -> str:
        base = super().__str__()
        ctx = []
        if self.floor_number is not None:
            ctx.append(f"floor={self.floor_number}")
        if self.stage:
            ctx.append(f"stage={self.stage}")
        return f"{base} ({', '.join(ctx)})" if ctx else base


class CatalogMissing(DungeonGenerationError):
    """A floor number has no floor row or no theme."""


class InsufficientSpace(DungeonGenerationError):
    """The lattice cannot hold the requested minimum number of rooms."""


class PlacementExhausted(DungeonGenerationError):
    """A special room could not be placed within the attempt cap."""


class PersistenceFailure(DungeonGenerationError):
    """A storage call failed."""


class FatalSetupFailure(DungeonGenerationError):
    """Floors or factions could not be read before the floor loop started."""


__all__ = [
    "DungeonGenerationError",
    "CatalogMissing",
    "InsufficientSpace",
    "PlacementExhausted",
    "PersistenceFailure",
    "FatalSetupFailure",
]
