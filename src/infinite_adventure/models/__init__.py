"""World model schemas: locations, items, actors, player and combat state."""

from __future__ import annotations

from infinite_adventure.models.combat import CombatState, Combatant, StatusEffect, StatusType
from infinite_adventure.models.items import (
    ConsumedState,
    DamagedState,
    EquippedState,
    Item,
    ItemProperties,
    ItemState,
    ItemType,
    LockedState,
    NormalState,
    OpenState,
)
from infinite_adventure.models.world import (
    Actor,
    Coordinate,
    Direction,
    Location,
    Player,
    World,
    create_world,
    format_coordinate_key,
    parse_coordinate_key,
)


__all__ = [
    # Combat
    "CombatState",
    "Combatant",
    "StatusEffect",
    "StatusType",
    # Items
    "ConsumedState",
    "DamagedState",
    "EquippedState",
    "Item",
    "ItemProperties",
    "ItemState",
    "ItemType",
    "LockedState",
    "NormalState",
    "OpenState",
    # World
    "Actor",
    "Coordinate",
    "Direction",
    "Location",
    "Player",
    "World",
    "create_world",
    "format_coordinate_key",
    "parse_coordinate_key",
]
