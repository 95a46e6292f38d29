"""Static content seeding for floors and factions.

Both helpers are idempotent: existing rows (matched by floor number or
faction name) are left untouched and only missing ones are inserted.

Usage (programmatic):
    from app.seed_content import seed_floors, seed_factions
    with app.app_context():
        seed_floors()
        seed_factions()

CLI:
    python run.py seed-content
"""

from __future__ import annotations

from typing import Iterable

from app import db
from app.dungeon.catalog import FLOOR_THEMES, FloorTheme
from app.logging_utils import get_logger

log = get_logger("seed")

# name, description, influence, color, icon
FACTIONS = [
    ("Iron Legion", "Disciplined soldiers who hold ground with shield walls", 5, "#8a8f98", "shield"),
    ("Ashen Covenant", "Cultists who tend fires that never go out", 4, "#b5532a", "flame"),
    ("Gloomspore Colony", "A creeping fungal mind that spreads through damp stone", 3, "#6f8b3a", "mushroom"),
    ("Silent Hand", "Thieves and assassins who trade in secrets", 3, "#3b3f5c", "dagger"),
    ("Rattlebone Horde", "Restless dead stirred by old necromancy", 4, "#d8d2b4", "skull"),
    ("Gearwright Guild", "Tinkerers who keep the deep machines running", 2, "#b08d3c", "cog"),
    ("Tidecallers", "Drowned priests who whisper to underground waters", 2, "#2f6f8f", "wave"),
    ("Crystal Choir", "Mineral beings that hum in resonant chorus", 2, "#9e7fd6", "gem"),
    ("Wyrmblood Clan", "Kobolds devoted to the dragon below", 3, "#a4262c", "claw"),
    ("Wandering Merchants", "Traders who bargain with anyone who pays", 1, "#d1a441", "coin"),
]


def seed_floors(themes: Iterable[FloorTheme] = FLOOR_THEMES) -> int:
    """Insert one floor row per theme; difficulty tracks the floor number."""
    from app.models import Floor

    existing = {f.floor_number for f in Floor.query.all()}
    created = 0
    for theme in themes:
        if theme.floor_number in existing:
            continue
        db.session.add(
            Floor(
                floor_number=theme.floor_number,
                name=theme.name,
                description=theme.description,
                difficulty=theme.floor_number,
                min_recommended_level=max(1, (theme.floor_number - 1) * 2 + 1),
            )
        )
        created += 1
    if created:
        db.session.commit()
    log.info(event="floors_seeded", created=created, existing=len(existing))
    return created


def seed_factions(roster=FACTIONS) -> int:
    from app.models import Faction

    existing = {f.name for f in Faction.query.all()}
    created = 0
    for name, description, influence, color, icon in roster:
        if name in existing:
            continue
        db.session.add(Faction(name=name, description=description, influence=influence, color=color, icon=icon))
        created += 1
    if created:
        db.session.commit()
    log.info(event="factions_seeded", created=created, existing=len(existing))
    return created


def seed_all() -> dict:
    return {"floors": seed_floors(), "factions": seed_factions()}
