"""Infinite Adventure - an endless text adventure on a procedural grid.

The world is a two-dimensional grid of locations that grows as the player
walks into unexplored coordinates. A generation service narrates each turn
and proposes changes as tool calls; the engine owns the truth.

ARCHITECTURE:
- Python owns TRUTH (World model, dice rolls via d20, rule validation)
- The generation service handles INTERFACE (narrative, new locations)
- The service NEVER mutates the World directly; every change is a tool call

Example:
    >>> from infinite_adventure import TurnOrchestrator, OpenAIGenerationClient, create_world
    >>>
    >>> world = create_world()
    >>> orchestrator = TurnOrchestrator(world, OpenAIGenerationClient())
    >>> response = await orchestrator.process_turn("walk north")
    >>> print(response.narrative)

Modules:
    core: Configuration, logging, constants and exceptions.
    models: Pydantic V2 schemas for the World.
    engine: Tool dispatch, combat, world expansion and turn orchestration.
    llm: Generation service client and structured-output parsing.
    storage: JSON save files.
"""

from __future__ import annotations

from infinite_adventure.core.config import Settings, get_settings
from infinite_adventure.core.exceptions import AdventureError
from infinite_adventure.core.logging import configure_logging, get_logger
from infinite_adventure.engine import (
    CombatEngine,
    DiceRoller,
    ToolDispatcher,
    TurnOrchestrator,
    TurnResponse,
    WorldGenerator,
)
from infinite_adventure.llm import OpenAIGenerationClient
from infinite_adventure.models import World, create_world
from infinite_adventure.storage import SaveManager


__version__ = "0.1.0"

__all__ = [
    "AdventureError",
    "CombatEngine",
    "DiceRoller",
    "OpenAIGenerationClient",
    "SaveManager",
    "Settings",
    "ToolDispatcher",
    "TurnOrchestrator",
    "TurnResponse",
    "World",
    "WorldGenerator",
    "__version__",
    "configure_logging",
    "get_logger",
    "create_world",
    "get_settings",
]
