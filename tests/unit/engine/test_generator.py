"""Tests for on-demand location generation."""

from __future__ import annotations

import asyncio

import pytest
from conftest import HANG, FakeGenerationClient

from infinite_adventure.core.exceptions import AIConnectionError, IncompleteOutputError, MalformedOutputError
from infinite_adventure.engine.generator import WorldGenerator, fallback_location, link_exits
from infinite_adventure.models import Direction, Location, World


def expand(generator: WorldGenerator, world: World, direction: Direction) -> Location:
    return asyncio.run(generator.expand(world, world.current_pos, direction))


class TestFallbackLocation:
    """Tests for the fallback location."""

    def test_named_after_coordinate(self) -> None:
        """Test the fallback is named after its coordinate."""
        location = fallback_location((3, -1))

        assert location.name == "Mysterious area (3, -1)"
        assert location.description == "A mysterious place that appeared suddenly."
        assert location.visited is True


class TestLinkExits:
    """Tests for exit linking."""

    def test_links_both_ways(self, world: World) -> None:
        """Test origin and target point at each other."""
        world.locations[(-1, 0)] = Location(name="West")
        link_exits(world, (0, 0), Direction.WEST, (-1, 0))

        assert world.locations[(0, 0)].exits["west"] == (-1, 0)
        assert world.locations[(-1, 0)].exits["east"] == (0, 0)

    def test_keep_existing_entries(self, world: World) -> None:
        """Test existing entries survive when not overwriting."""
        world.locations[(-1, 0)] = Location(name="West", exits={"east": None})
        link_exits(world, (0, 0), Direction.WEST, (-1, 0), overwrite=False)

        assert world.locations[(-1, 0)].exits["east"] is None
        assert world.locations[(0, 0)].exits["west"] == (-1, 0)


class TestWorldGenerator:
    """Tests for WorldGenerator.expand."""

    def test_generated_location_inserted(self, world: World) -> None:
        """Test a generated location is inserted and linked."""
        client = FakeGenerationClient(locations=[Location(name="Sunken Library")])

        location = expand(WorldGenerator(client), world, Direction.NORTH)

        assert location.name == "Sunken Library"
        assert world.locations[(0, 1)] is location
        assert location.visited is True
        assert location.exits == {"south": (0, 0)}
        assert world.locations[(0, 0)].exits["north"] == (0, 1)

    def test_prompt_mentions_origin_and_target(self, world: World) -> None:
        """Test the prompt describes where the player is heading."""
        client = FakeGenerationClient()
        expand(WorldGenerator(client), world, Direction.EAST)

        prompt = client.location_prompts[0]
        assert "The Beginning at (0, 0)" in prompt
        assert "heading east toward coordinates (1, 0)" in prompt

    def test_generated_exits_discarded(self, world: World) -> None:
        """Test the engine, not the model, decides connectivity."""
        generated = Location(name="Maze", exits={"north": (0, 9), "west": None})
        client = FakeGenerationClient(locations=[generated])

        location = expand(WorldGenerator(client), world, Direction.SOUTH)

        assert location.exits == {"north": (0, 0)}

    def test_unregistered_references_dropped(self, world: World) -> None:
        """Test generated item and actor ids must already exist."""
        generated = Location(name="Camp", items=["tent"], actors=["ranger"])
        client = FakeGenerationClient(locations=[generated])

        location = expand(WorldGenerator(client), world, Direction.NORTH)

        assert location.items == []
        assert location.actors == []

    @pytest.mark.parametrize(
        "failure",
        [
            AIConnectionError("Connection refused"),
            IncompleteOutputError("Truncated"),
            MalformedOutputError("Not JSON"),
        ],
    )
    def test_failure_falls_back(self, world: World, failure: Exception) -> None:
        """Test any generation failure inserts the linked fallback location."""
        client = FakeGenerationClient(locations=[failure])

        location = expand(WorldGenerator(client), world, Direction.WEST)

        assert location.name == "Mysterious area (-1, 0)"
        assert world.locations[(0, 0)].exits["west"] == (-1, 0)
        assert world.locations[(-1, 0)].exits["east"] == (0, 0)

    def test_timeout_falls_back(self, world: World) -> None:
        """Test a generation request that never answers falls back."""
        client = FakeGenerationClient(locations=[HANG])

        location = expand(WorldGenerator(client, timeout_seconds=0.01), world, Direction.NORTH)

        assert location.name == "Mysterious area (0, 1)"

    def test_no_client_uses_fallback(self, world: World) -> None:
        """Test a generator without a client always falls back."""
        location = expand(WorldGenerator(), world, Direction.EAST)
        assert location.name == "Mysterious area (1, 0)"
