"""On-demand procedural expansion of the location grid.

When the player moves onto a coordinate with no Location, the WorldGenerator
asks the generation service for one. Whatever the service returns, the
engine owns connectivity: generated exits are discarded and the two exits
between origin and target are linked here. If generation fails for any
reason (transport error, timeout, truncated or malformed output) a fixed
fallback location is inserted instead, so movement is never blocked.
"""

from __future__ import annotations

import asyncio

from infinite_adventure.core.constants import (
    FALLBACK_LOCATION_DESCRIPTION,
    FALLBACK_LOCATION_IMAGE_PROMPT,
)
from infinite_adventure.core.exceptions import AIControlError
from infinite_adventure.core.logging import get_logger
from infinite_adventure.llm.client import GenerationClient
from infinite_adventure.models.world import Coordinate, Direction, Location, World


logger = get_logger(__name__)

LOCATION_SYSTEM_PROMPT = (
    "You are a world generator for a text adventure game. "
    "Create interesting, thematically consistent locations. "
    "You MUST output valid JSON only."
)

LOCATION_PROMPT_TEMPLATE = """Current Location: {name} at ({x}, {y})
Description: {description}

The player is heading {direction} toward coordinates ({tx}, {ty}).
This grid cell is currently EMPTY and needs to be generated.

Create a new location at ({tx}, {ty}) that fits thematically with current location.
IMPORTANT: All exits must be null (blocked). The game will create actual exit connections automatically.

Return ONLY a valid JSON object:
{{
  "name": "Location name",
  "description": "Description of what the player sees",
  "image_prompt": "Visual description for generating an image",
  "exits": {{"north": null, "south": null, "east": null, "west": null}},
  "items": [],
  "actors": []
}}

CRITICAL:
- exits MUST be null objects (blocked), NOT strings or booleans
- items MUST be an empty array []
- actors MUST be an empty array []
- NO narrative text, NO extra commentary

Just the JSON. Nothing else."""


def fallback_location(position: Coordinate) -> Location:
    """The deterministic location used when generation fails."""
    return Location(
        name=f"Mysterious area ({position[0]}, {position[1]})",
        description=FALLBACK_LOCATION_DESCRIPTION,
        image_prompt=FALLBACK_LOCATION_IMAGE_PROMPT,
        visited=True,
    )


def link_exits(
    world: World,
    origin: Coordinate,
    direction: Direction,
    target: Coordinate,
    *,
    overwrite: bool = True,
) -> None:
    """Link ``origin`` to ``target`` via ``direction`` and back via its opposite.

    With ``overwrite`` False only missing exit entries are filled in; entries
    already present, including blocked ones, are kept.
    """
    links = (
        (world.locations.get(origin), direction, target),
        (world.locations.get(target), direction.opposite, origin),
    )
    for location, exit_direction, destination in links:
        if location is None:
            continue
        if overwrite or exit_direction.value not in location.exits:
            location.exits[exit_direction.value] = destination


class WorldGenerator:
    """Creates locations for unexplored coordinates.

    Args:
        client: Generation service; None generates fallback locations only.
        timeout_seconds: Budget for one generation request.
    """

    def __init__(
        self,
        client: GenerationClient | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds

    def build_prompt(self, world: World, origin: Coordinate, direction: Direction) -> str:
        target = direction.step(origin)
        current = world.locations.get(origin) or Location()
        return LOCATION_PROMPT_TEMPLATE.format(
            name=current.name,
            x=origin[0],
            y=origin[1],
            description=current.description,
            direction=direction.value,
            tx=target[0],
            ty=target[1],
        )

    async def expand(self, world: World, origin: Coordinate, direction: Direction) -> Location:
        """Insert a location one step from ``origin`` and link it both ways.

        Never raises for generation failures; cancellation propagates.

        Returns:
            The inserted location.
        """
        target = direction.step(origin)
        location = await self._generate(world, origin, direction, target)

        location.visited = True
        location.exits = {}
        location.items = [item_id for item_id in location.items if item_id in world.items]
        location.actors = [actor_id for actor_id in location.actors if actor_id in world.actors]

        world.locations[target] = location
        link_exits(world, origin, direction, target)

        logger.info(
            "Location created",
            x=target[0],
            y=target[1],
            name=location.name,
            direction=direction.value,
        )
        return location

    async def _generate(
        self,
        world: World,
        origin: Coordinate,
        direction: Direction,
        target: Coordinate,
    ) -> Location:
        if self.client is None:
            logger.info("No generation client, using fallback location", x=target[0], y=target[1])
            return fallback_location(target)

        prompt = self.build_prompt(world, origin, direction)
        try:
            request = self.client.generate_location(LOCATION_SYSTEM_PROMPT, prompt)
            if self.timeout_seconds is not None:
                return await asyncio.wait_for(request, timeout=self.timeout_seconds)
            return await request
        except (AIControlError, TimeoutError) as exc:
            logger.warning(
                "Location generation failed, using fallback",
                x=target[0],
                y=target[1],
                error=str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
            )
            return fallback_location(target)


__all__ = [
    "LOCATION_PROMPT_TEMPLATE",
    "LOCATION_SYSTEM_PROMPT",
    "WorldGenerator",
    "fallback_location",
    "link_exits",
]
