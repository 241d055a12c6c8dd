"""Pydantic V2 schemas for the world model.

The World is the single mutable document the engine operates on. Locations
are keyed by integer (x, y) coordinates in memory and by ``"x,y"`` strings
when serialized, since JSON object keys must be text.

Example:
    >>> world = create_world()
    >>> world.current_location().name
    'The Beginning'
    >>> sorted(World.model_validate(world.model_dump(mode="json")).locations)
    [(0, 0)]
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from infinite_adventure.core.constants import (
    DEFAULT_MAX_COMBATANTS,
    DEFAULT_MAX_ITEMS,
    START_LOCATION_DESCRIPTION,
    START_LOCATION_IMAGE_PROMPT,
    START_LOCATION_NAME,
)
from infinite_adventure.core.logging import get_logger
from infinite_adventure.models.combat import CombatState
from infinite_adventure.models.items import Item


logger = get_logger(__name__)

Coordinate = tuple[int, int]


class Direction(StrEnum):
    """Cardinal movement directions. North is +y, east is +x."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"

    @property
    def offset(self) -> Coordinate:
        return _OFFSETS[self]

    @property
    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    def step(self, origin: Coordinate) -> Coordinate:
        """Return the coordinate one step from ``origin`` in this direction."""
        dx, dy = self.offset
        return (origin[0] + dx, origin[1] + dy)


_OFFSETS: dict[Direction, Coordinate] = {
    Direction.NORTH: (0, 1),
    Direction.SOUTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.WEST: (-1, 0),
}

_OPPOSITES: dict[Direction, Direction] = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
}


def format_coordinate_key(position: Coordinate) -> str:
    return f"{position[0]},{position[1]}"


def parse_coordinate_key(key: str) -> Coordinate | None:
    """Parse an ``"x,y"`` key; return None when it is not two integers."""
    parts = key.split(",")
    if len(parts) != 2:
        return None
    try:
        return (int(parts[0].strip()), int(parts[1].strip()))
    except ValueError:
        return None


class Location(BaseModel):
    """One cell of the world grid.

    Attributes:
        name: Display name.
        description: Prose shown on arrival.
        items: Ids of items lying here.
        actors: Ids of actors present.
        exits: Direction name to target coordinate; None marks a blocked exit.
        cached_image_path: Reference to a generated image asset.
        image_prompt: Prompt for image generation.
        visited: Whether the player has been here.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = "Unknown Location"
    description: str = "An unknown place."
    items: list[str] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    exits: dict[str, Coordinate | None] = Field(default_factory=dict)
    cached_image_path: str | None = None
    image_prompt: str = "A mysterious location"
    visited: bool = False


class Actor(BaseModel):
    """A persistent non-player character."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    current_pos: Coordinate = (0, 0)
    inventory: list[str] = Field(default_factory=list)
    money: int = Field(default=0, ge=0)


class Player(BaseModel):
    """The player's persistent state."""

    model_config = ConfigDict(extra="ignore")

    inventory: list[str] = Field(default_factory=list)
    money: int = Field(default=0, ge=0)


class World(BaseModel):
    """The complete, persistable game state.

    Attributes:
        current_pos: Player coordinate.
        locations: Grid cells keyed by coordinate.
        items: Global item registry, the sole owner of Item records.
        actors: Actor registry.
        player: Player record.
        combat: Combat sub-state.
        max_items: Reported item capacity.
        max_combatants: Combatant cap including the player.
    """

    model_config = ConfigDict(extra="ignore")

    current_pos: Coordinate = (0, 0)
    locations: dict[Coordinate, Location] = Field(default_factory=dict)
    items: dict[str, Item] = Field(default_factory=dict)
    actors: dict[str, Actor] = Field(default_factory=dict)
    player: Player = Field(default_factory=Player)
    combat: CombatState = Field(default_factory=CombatState)
    max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=0)
    max_combatants: int = Field(default=DEFAULT_MAX_COMBATANTS, ge=1)

    @field_validator("locations", mode="before")
    @classmethod
    def decode_location_keys(cls, value: Any) -> Any:
        """Turn ``"x,y"`` keys back into coordinates, dropping unparseable ones."""
        if not isinstance(value, dict):
            return value
        decoded: dict[Any, Any] = {}
        for key, location in value.items():
            if isinstance(key, str):
                position = parse_coordinate_key(key)
                if position is None:
                    logger.warning("Dropping location with unparseable key", key=key)
                    continue
                decoded[position] = location
            else:
                decoded[key] = location
        return decoded

    @field_serializer("locations")
    def encode_location_keys(self, locations: dict[Coordinate, Location]) -> dict[str, Location]:
        return {format_coordinate_key(position): location for position, location in locations.items()}

    def current_location(self) -> Location | None:
        return self.locations.get(self.current_pos)

    def neighbour_position(self, direction: Direction) -> Coordinate:
        return direction.step(self.current_pos)

    def item_names(self, item_ids: list[str]) -> list[str]:
        """Resolve item ids to display names, skipping unregistered ids."""
        return [self.items[item_id].name for item_id in item_ids if item_id in self.items]

    def actor_names(self, actor_ids: list[str]) -> list[str]:
        return [self.actors[actor_id].name for actor_id in actor_ids if actor_id in self.actors]


def create_world(
    *,
    max_items: int = DEFAULT_MAX_ITEMS,
    max_combatants: int = DEFAULT_MAX_COMBATANTS,
) -> World:
    """Create a new world containing only the visited starting location."""
    start = Location(
        name=START_LOCATION_NAME,
        description=START_LOCATION_DESCRIPTION,
        image_prompt=START_LOCATION_IMAGE_PROMPT,
        visited=True,
    )
    return World(
        locations={(0, 0): start},
        max_items=max_items,
        max_combatants=max_combatants,
    )


__all__ = [
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
