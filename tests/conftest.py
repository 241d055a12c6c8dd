"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Infinite Adventure test suite.
"""

from __future__ import annotations

import asyncio
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from infinite_adventure.core.config import GameSettings, GenerationSettings, Settings, StorageSettings
from infinite_adventure.llm.client import ChatReply, ToolCall, ToolFunction
from infinite_adventure.models import (
    Actor,
    ConsumedState,
    EquippedState,
    Item,
    ItemProperties,
    ItemType,
    Location,
    World,
    create_world,
)


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Reset the settings cache and keep default save dirs inside tmp_path."""
    from infinite_adventure.core.config import clear_settings_cache

    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "INFINITE_ADVENTURE_API_KEY": "test-key",
        "INFINITE_ADVENTURE_MODEL": "test-model",
        "INFINITE_ADVENTURE_DEBUG": "true",
        "INFINITE_ADVENTURE_LOG_LEVEL": "DEBUG",
        "INFINITE_ADVENTURE_GAME_MAX_TURN_ATTEMPTS": "3",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with no retry backoff and a short turn budget."""
    return Settings(
        generation=GenerationSettings(location_timeout_seconds=1.0),
        game=GameSettings(
            turn_timeout_seconds=5.0,
            max_turn_attempts=3,
            retry_backoff_seconds=0.0,
            retry_backoff_max_seconds=0.0,
        ),
        storage=StorageSettings(save_dir=tmp_path / "saves"),
    )


# =============================================================================
# Test Doubles
# =============================================================================


class ScriptedRoller:
    """Roller returning scripted totals in order, then a fixed default.

    Attributes:
        expressions: Every expression that was rolled, in order.
    """

    def __init__(self, *totals: int, default: int = 10) -> None:
        self._totals = deque(totals)
        self.default = default
        self.expressions: list[str] = []

    def roll(self, expression: str) -> int:
        self.expressions.append(expression)
        if self._totals:
            return self._totals.popleft()
        return self.default


HANG = object()
"""Scripted response that never completes, for timeout tests."""


class FakeGenerationClient:
    """GenerationClient double replaying scripted replies.

    Each scripted entry is returned in order; an exception instance is raised
    instead, and ``HANG`` blocks until the caller gives up.

    Attributes:
        requests: Keyword arguments of every ``complete`` call.
        location_prompts: Prompts passed to ``generate_location``.
    """

    def __init__(
        self,
        replies: list[Any] | None = None,
        locations: list[Any] | None = None,
    ) -> None:
        self.replies = deque(replies or [])
        self.locations = deque(locations or [])
        self.requests: list[dict[str, Any]] = []
        self.location_prompts: list[str] = []

    async def _resolve(self, entry: Any) -> Any:
        if entry is HANG:
            await asyncio.Event().wait()
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply:
        self.requests.append({"messages": messages, "tools": tools, "max_tokens": max_tokens})
        if not self.replies:
            return ChatReply(content="")
        return await self._resolve(self.replies.popleft())

    async def generate_location(self, system_prompt: str, prompt: str) -> Location:
        self.location_prompts.append(prompt)
        if not self.locations:
            return Location(name="Generated Glade", description="Tall grass sways.")
        return await self._resolve(self.locations.popleft())


def make_call(name: str, arguments: str = "{}", call_id: str | None = None) -> ToolCall:
    """Build a ToolCall as the generation service would send it."""
    return ToolCall(id=call_id or f"call_{name}", function=ToolFunction(name=name, arguments=arguments))


@pytest.fixture
def roller() -> ScriptedRoller:
    """Roller that always returns 10."""
    return ScriptedRoller()


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    """Generation client with nothing scripted."""
    return FakeGenerationClient()


# =============================================================================
# World Fixtures
# =============================================================================


@pytest.fixture
def world() -> World:
    """A fresh world holding only the starting location."""
    return create_world()


@pytest.fixture
def sword() -> Item:
    """An equipped weapon dealing 12 damage."""
    return Item(
        id="sword",
        name="Iron Sword",
        item_type=ItemType.WEAPON,
        state=EquippedState(),
        properties=ItemProperties(damage=12, equip_slot="weapon"),
    )


@pytest.fixture
def leather_armor() -> Item:
    """An equipped armor granting 3 defense."""
    return Item(
        id="leather_armor",
        name="Leather Armor",
        item_type=ItemType.ARMOR,
        state=EquippedState(),
        properties=ItemProperties(defense=3, equip_slot="armor"),
    )


@pytest.fixture
def potion() -> Item:
    """A usable healing potion with two charges."""
    return Item(
        id="potion",
        name="Healing Potion",
        item_type=ItemType.CONSUMABLE,
        state=ConsumedState(charges=2, max_charges=2),
        properties=ItemProperties(usable=True),
    )


@pytest.fixture
def goblin_world(world: World) -> World:
    """A world with two goblins standing at the starting location."""
    for actor_id, name in (("goblin", "Goblin"), ("goblin_2", "Goblin Scout")):
        world.actors[actor_id] = Actor(id=actor_id, name=name, description="Snarling.")
        world.locations[(0, 0)].actors.append(actor_id)
    return world


@pytest.fixture
def armed_world(goblin_world: World, sword: Item, leather_armor: Item, potion: Item) -> World:
    """Goblin world where the player carries a sword, armor and a potion."""
    for item in (sword, leather_armor, potion):
        goblin_world.items[item.id] = item
        goblin_world.player.inventory.append(item.id)
    return goblin_world
