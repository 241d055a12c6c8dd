"""Game engine: tool dispatch, combat, world expansion and turn orchestration.

The generation service proposes tool calls; the engine validates and applies
them. The dispatcher is the only writer of the World, and dice are rolled
here, never by the service.

Modules:
    commands: Typed command models, one per operation, and their decoder.
    tools: Operation registry and schemas offered to the generation service.
    dispatcher: Applies decoded commands to the World.
    combat: Initiative, attacks, status effects and round accounting.
    generator: Creates locations for unexplored coordinates.
    agent: Runs one player action end to end.
"""

from __future__ import annotations

from infinite_adventure.engine import commands
from infinite_adventure.engine.agent import (
    TurnOrchestrator,
    TurnResponse,
    TurnStatus,
    build_system_context,
    extract_suggested_actions,
)
from infinite_adventure.engine.combat import CombatEngine, resolve_damage
from infinite_adventure.engine.commands import Command, decode_command
from infinite_adventure.engine.dice import DiceRoller, Roller
from infinite_adventure.engine.dispatcher import ToolDispatcher
from infinite_adventure.engine.generator import WorldGenerator, fallback_location, link_exits
from infinite_adventure.engine.inventory import ChargeOutcome, spend_charge
from infinite_adventure.engine.tools import (
    ToolCategory,
    ToolDefinition,
    get_all_tools,
    get_tool,
    get_tools_as_openai_schema,
    get_tools_by_category,
)


__all__ = [
    "ChargeOutcome",
    "CombatEngine",
    "Command",
    "DiceRoller",
    "Roller",
    "ToolCategory",
    "ToolDefinition",
    "ToolDispatcher",
    "TurnOrchestrator",
    "TurnResponse",
    "TurnStatus",
    "WorldGenerator",
    "build_system_context",
    "commands",
    "decode_command",
    "extract_suggested_actions",
    "fallback_location",
    "get_all_tools",
    "get_tool",
    "get_tools_as_openai_schema",
    "get_tools_by_category",
    "link_exits",
    "resolve_damage",
    "spend_charge",
]
