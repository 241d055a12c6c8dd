"""Turn orchestration: one player action end to end.

For each action the TurnOrchestrator builds a context snapshot of the world,
asks the generation service what happens (retrying transient failures with
tenacity), applies the returned tool calls in order through the dispatcher,
and settles on a narrative. If the service made tool calls without saying
anything, one extra no-tool request asks it to narrate the outcome.

A wall-clock budget wraps the whole turn. Running out of time, or running
out of retries, produces a fixed narrative instead of an exception. Tool
calls applied before that point stay applied.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from infinite_adventure.core.config import Settings, get_settings
from infinite_adventure.core.constants import (
    DEFAULT_SUGGESTED_ACTIONS,
    MAX_ERROR_SUMMARY_LENGTH,
    MAX_SUGGESTED_ACTIONS,
    MAX_SUGGESTION_LENGTH,
    TIMEOUT_NARRATIVE,
    TIMEOUT_SUGGESTED_ACTIONS,
)
from infinite_adventure.core.exceptions import AIControlError
from infinite_adventure.core.logging import DebugLog, get_logger
from infinite_adventure.engine.dice import Roller
from infinite_adventure.engine.dispatcher import ToolDispatcher
from infinite_adventure.engine.generator import WorldGenerator
from infinite_adventure.engine.tools import get_tools_as_openai_schema
from infinite_adventure.llm.client import ChatReply, GenerationClient, ToolResult
from infinite_adventure.models.world import Direction, Location, World


logger = get_logger(__name__)

NARRATION_REQUEST = (
    "Describe what just happened in 2-3 sentences. Do not call any tools, just provide narrative."
)

RULES = """RULES:
1. You can call MULTIPLE tools in ONE response.
2. When calling tools: The narrative you generate should describe what happens AFTER tools execute.
3. For movement: Use move_to(direction). New tiles are auto-generated if needed.
4. For describing location: Use update_location_description(text) to permanently change location's description.
5. For responding to player: Use generate_turn_narrative(text) if you want full control, or let the system generate narrative after your tools execute.
6. If you call tools WITHOUT using generate_turn_narrative or adding narrative content, the system will ask you to describe what happened with the updated world state.
7. End your response with 3-5 suggested actions as bullet lines (in the content, not as a tool).
8. NEVER generate JSON text - use tool calls instead.
9. Items must be created with create_item before they can be placed or picked up."""

TurnCallback = Callable[[World], Awaitable[None] | None]


class TurnStatus(StrEnum):
    """How a turn ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class TurnResponse:
    """What the front end shows after a turn.

    Attributes:
        narrative: Text describing what happened.
        suggested_actions: Up to five follow-up actions.
        tool_results: Results of the tool calls applied this turn, in order.
        status: How the turn ended.
    """

    narrative: str
    suggested_actions: list[str]
    tool_results: list[ToolResult] = field(default_factory=list)
    status: TurnStatus = TurnStatus.COMPLETED


# =============================================================================
# Context and narrative helpers
# =============================================================================


def _format_list(values: list[str]) -> str:
    return ", ".join(values) if values else "nothing"


def build_system_context(world: World) -> str:
    """Render the world snapshot the generation service sees each turn."""
    location = world.current_location() or Location(name="Unknown", description="You are nowhere.")
    x, y = world.current_pos

    adjacent = []
    for direction in Direction:
        neighbour = world.locations.get(direction.step(world.current_pos))
        adjacent.append(f"{direction.value}: {neighbour.name if neighbour else 'unexplored'}")

    lines = [
        "You are Dungeon Master for a text adventure game.",
        f"Current Location: {location.name} at ({x}, {y})",
        f"Description: {location.description}",
        f"Items here: {_format_list(world.item_names(location.items))}",
        f"People here: {_format_list(world.actor_names(location.actors))}",
        f"Player Inventory: {_format_list(world.item_names(world.player.inventory))}",
        f"Player Money: {world.player.money}",
        "",
        f"Adjacent Areas: {', '.join(adjacent)}",
    ]

    combat = world.combat
    if combat.active:
        current = combat.current()
        lines.extend([
            "",
            f"COMBAT ACTIVE - Round {combat.round_number} - Turn: {current.id if current else 'none'}",
            "Combatants:",
        ])
        for combatant in combat.combatants:
            effects = ", ".join(
                f"{effect.effect_type.value}({effect.duration}t)" for effect in combatant.status_effects
            )
            lines.append(
                f"- {combatant.id} ({'PLAYER' if combatant.is_player else 'ENEMY'}): "
                f"HP {combatant.hp}/{combatant.max_hp} | "
                f"Weapon: {_item_label(world, combatant.weapon_id)} | "
                f"Armor: {_item_label(world, combatant.armor_id)} | "
                f"Temp Def: {combatant.temp_defense} | "
                f"Status: {effects or 'none'}"
            )
        lines.extend([
            "",
            "Combat Actions: attack_actor, defend, flee, use_item_in_combat, end_turn, end_combat",
        ])

    lines.extend(["", RULES])
    return "\n".join(lines)


def _item_label(world: World, item_id: str | None) -> str:
    if item_id is None:
        return "none"
    item = world.items.get(item_id)
    return item.name if item else item_id


def extract_suggested_actions(narrative: str) -> list[str]:
    """Pull follow-up actions from bullet lines (``-``, ``*`` or ``•``).

    Returns at most five actions, or the default pair when none are found.
    """
    actions: list[str] = []
    for raw_line in narrative.splitlines():
        line = raw_line.strip()
        if not line.startswith(("-", "*", "•")):
            continue
        action = line.lstrip("-*• ").strip()
        if action and len(action) < MAX_SUGGESTION_LENGTH:
            actions.append(action)
    if not actions:
        return list(DEFAULT_SUGGESTED_ACTIONS)
    return actions[:MAX_SUGGESTED_ACTIONS]


def summarize_error(error: BaseException) -> str:
    text = str(error) or type(error).__name__
    if len(text) > MAX_ERROR_SUMMARY_LENGTH:
        return text[: MAX_ERROR_SUMMARY_LENGTH - 3] + "..."
    return text


# =============================================================================
# Orchestrator
# =============================================================================


class TurnOrchestrator:
    """Drives turns against one world.

    Exactly one turn may be in flight per orchestrator; the orchestrator's
    dispatcher is the world's only writer.

    Args:
        world: The world being played.
        client: Generation service for turns and locations.
        settings: Application settings; defaults to ``get_settings()``. Its
            combatant cap and item capacity are applied to ``world``.
        dice: Dice source for combat.
        on_turn_complete: Called with the world after each completed turn,
            typically to autosave. Failures are logged and ignored.
        debug_log: Bounded log of recent activity for a debug view.

    Example:
        >>> orchestrator = TurnOrchestrator(create_world(), OpenAIGenerationClient())
        >>> response = await orchestrator.process_turn("go north")
        >>> response.narrative
    """

    def __init__(
        self,
        world: World,
        client: GenerationClient,
        *,
        settings: Settings | None = None,
        dice: Roller | None = None,
        on_turn_complete: TurnCallback | None = None,
        debug_log: DebugLog | None = None,
    ) -> None:
        self.world = world
        self.client = client
        self.settings = settings or get_settings()
        world.max_combatants = self.settings.game.max_combatants
        world.max_items = self.settings.game.max_items
        self.on_turn_complete = on_turn_complete
        if debug_log is None:
            debug_log = DebugLog(self.settings.game.debug_log_capacity)
        self.debug_log = debug_log
        self.dispatcher = ToolDispatcher(
            world,
            generator=WorldGenerator(
                client,
                timeout_seconds=self.settings.generation.location_timeout_seconds,
            ),
            dice=dice,
        )
        self._tool_schemas: list[dict[str, Any]] | None = None

    @property
    def tool_schemas(self) -> list[dict[str, Any]]:
        if self._tool_schemas is None:
            self._tool_schemas = get_tools_as_openai_schema()
        return self._tool_schemas

    async def process_turn(self, user_input: str) -> TurnResponse:
        """Process one player action.

        Never raises for generation failures or timeouts; those come back as
        TurnResponse objects with a TIMED_OUT or FAILED status.
        """
        game = self.settings.game
        self.debug_log.add(f"Processing user action: {user_input}")
        logger.info("Turn started", user_input=user_input)
        self.dispatcher.begin_turn()

        applied: list[ToolResult] = []
        try:
            response = await asyncio.wait_for(
                self._run_turn(user_input, applied),
                timeout=game.turn_timeout_seconds,
            )
        except TimeoutError:
            self.debug_log.add(f"Timeout reached ({game.turn_timeout_seconds:g}s)")
            logger.warning(
                "Turn timed out",
                timeout_seconds=game.turn_timeout_seconds,
                applied_tools=len(applied),
            )
            return TurnResponse(
                narrative=TIMEOUT_NARRATIVE,
                suggested_actions=list(TIMEOUT_SUGGESTED_ACTIONS),
                tool_results=applied,
                status=TurnStatus.TIMED_OUT,
            )

        self.debug_log.add(f"Narrative length: {len(response.narrative)} chars")
        if response.status is TurnStatus.COMPLETED:
            await self._persist()
        return response

    async def _run_turn(self, user_input: str, applied: list[ToolResult]) -> TurnResponse:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": build_system_context(self.world)},
            {"role": "user", "content": f"Player Action: {user_input}"},
        ]

        attempts = self.settings.game.max_turn_attempts
        try:
            reply = await self._request_with_retry(messages)
        except AIControlError as exc:
            self.debug_log.add(f"Generation failed after {attempts} attempts: {exc}")
            logger.error("Turn failed", attempts=attempts, error=str(exc))
            return TurnResponse(
                narrative=(
                    f"The spirits are confused. (Failed after {attempts} attempts)\n"
                    f"Error: {summarize_error(exc)}"
                ),
                suggested_actions=list(DEFAULT_SUGGESTED_ACTIONS),
                status=TurnStatus.FAILED,
            )

        if reply.tool_calls:
            self.debug_log.add(f"Got {len(reply.tool_calls)} tool call(s)")
        for call in reply.tool_calls:
            self.debug_log.add(f"Executing tool: {call.function.name} with args: {call.function.arguments}")
            result = await self.dispatcher.execute(call)
            applied.append(result)
            if not result.success:
                self.debug_log.add(f"Tool {call.function.name} failed: {result.content}")

        narrative = self.dispatcher.turn_narrative
        if narrative:
            return self._respond(narrative, applied)

        if reply.tool_calls and not reply.text:
            narration = await self._request_narration(user_input, reply, applied)
            if narration:
                return self._respond(narration, applied)

        return self._respond(reply.text, applied)

    async def _request_with_retry(self, messages: list[dict[str, Any]]) -> ChatReply:
        game = self.settings.game
        retrying = AsyncRetrying(
            stop=stop_after_attempt(game.max_turn_attempts),
            wait=wait_exponential(
                multiplier=game.retry_backoff_seconds,
                max=game.retry_backoff_max_seconds,
            ),
            retry=retry_if_exception_type(AIControlError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.client.complete(messages, tools=self.tool_schemas)
        raise AIControlError("Generation retries ended without a result")

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.debug_log.add(f"Attempt {retry_state.attempt_number} failed: {error}")
        logger.warning(
            "Generation attempt failed, retrying",
            attempt=retry_state.attempt_number,
            error=str(error),
        )

    async def _request_narration(
        self,
        user_input: str,
        reply: ChatReply,
        applied: list[ToolResult],
    ) -> str | None:
        """Ask once, without tools, for a short narration of the new state."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": build_system_context(self.world)},
            {"role": "user", "content": f"Player Action: {user_input}"},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [call.to_message() for call in reply.tool_calls],
            },
            *(result.to_message() for result in applied),
            {"role": "user", "content": NARRATION_REQUEST},
        ]
        try:
            narration = await self.client.complete(
                messages,
                max_tokens=self.settings.generation.narration_max_tokens,
            )
        except AIControlError as exc:
            self.debug_log.add(f"Narration request failed: {exc}")
            logger.warning("Narration request failed", error=str(exc))
            return None
        return narration.text or None

    def _respond(self, narrative: str, applied: list[ToolResult]) -> TurnResponse:
        return TurnResponse(
            narrative=narrative,
            suggested_actions=extract_suggested_actions(narrative),
            tool_results=applied,
        )

    async def _persist(self) -> None:
        if self.on_turn_complete is None:
            return
        try:
            outcome = self.on_turn_complete(self.world)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            self.debug_log.add(f"Autosave failed: {exc}")
            logger.error("Autosave failed", error=str(exc), error_type=type(exc).__name__)


__all__ = [
    "NARRATION_REQUEST",
    "TurnOrchestrator",
    "TurnResponse",
    "TurnStatus",
    "build_system_context",
    "extract_suggested_actions",
    "summarize_error",
]
