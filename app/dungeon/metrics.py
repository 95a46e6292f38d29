from typing import Dict


def init_metrics() -> Dict[str, int | float]:
    """Per-floor generation counters reported in ``FloorResult.metrics``."""
    return {
        'positions_sampled': 0,
        'staircases_placed': 0,
        'safe_rooms_placed': 0,
        'rooms_inserted': 0,
        'room_batches': 0,
        'claimed_rooms': 0,
        'unclaimed_rooms': 0,
        'edges_adjacent': 0,
        'repairs_performed': 0,
        'secret_passages': 0,
        'duplicate_edges_dropped': 0,
        'connections_inserted': 0,
        'connection_batches': 0,
        'runtime_ms': 0.0,
    }
