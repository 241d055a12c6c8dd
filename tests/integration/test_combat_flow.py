"""Integration tests for combat flow.

Tests complete combat scenarios from initiative to resolution through the
tool-call interface.
"""

from __future__ import annotations

import asyncio

from conftest import FakeGenerationClient, ScriptedRoller, make_call

from infinite_adventure.core.config import Settings
from infinite_adventure.engine.agent import TurnOrchestrator, build_system_context
from infinite_adventure.engine.dispatcher import ToolDispatcher
from infinite_adventure.llm.client import ChatReply
from infinite_adventure.models import World


def run(dispatcher: ToolDispatcher, name: str, arguments: str) -> str:
    return asyncio.run(dispatcher.dispatch(name, arguments))


class TestCombatFlow:
    """Test complete combat scenarios."""

    def test_fight_to_the_finish(self, armed_world: World) -> None:
        """Start combat, trade blows over rounds, and win."""
        dispatcher = ToolDispatcher(armed_world, dice=ScriptedRoller(17, 4))

        assert run(dispatcher, "start_combat", '{"enemy_ids": ["goblin"]}') == "Started combat with 1 enemies"
        assert armed_world.combat.current().id == "player"

        rounds = 0
        while armed_world.combat.active:
            run(dispatcher, "attack_actor", '{"attacker_id": "player", "target_id": "goblin", "weapon_id": "sword"}')
            run(dispatcher, "end_turn", '{"actor_id": "player"}')
            run(dispatcher, "defend", '{"actor_id": "goblin"}')
            run(dispatcher, "attack_actor", '{"attacker_id": "goblin", "target_id": "player"}')
            run(dispatcher, "end_turn", '{"actor_id": "goblin"}')
            rounds += 1
            assert rounds < 10

        # Defense resets at every end_turn, so each sword blow lands for the full 12
        assert rounds == 5
        assert armed_world.combat.combatants == []
        assert "goblin" in armed_world.actors

    def test_poison_and_potion(self, armed_world: World) -> None:
        """Poison wears the player down and a potion restores them."""
        dispatcher = ToolDispatcher(armed_world, dice=ScriptedRoller(17, 4))
        run(dispatcher, "start_combat", '{"enemy_ids": ["goblin"]}')
        run(dispatcher, "apply_status_effect", '{"target_id": "player", "effect_type": "Poison", "duration": 3, "severity": 10}')

        for _ in range(2):
            run(dispatcher, "end_turn", '{"actor_id": "player"}')
            run(dispatcher, "end_turn", '{"actor_id": "goblin"}')

        player = armed_world.combat.find("player")
        assert player.hp == 80
        assert armed_world.combat.round_number == 3

        run(dispatcher, "use_item_in_combat", '{"user_id": "player", "item_id": "potion"}')
        run(dispatcher, "use_item_in_combat", '{"user_id": "player", "item_id": "potion"}')

        assert player.hp == 100
        assert "potion" not in armed_world.player.inventory
        assert "potion" in armed_world.items

    def test_combat_through_turns(self, armed_world: World, fast_settings: Settings) -> None:
        """The orchestrator applies combat calls and reports failures per call."""
        client = FakeGenerationClient(
            replies=[
                ChatReply(
                    content="Steel rings out!\n- attack\n- flee",
                    tool_calls=[
                        make_call("start_combat", '{"enemy_ids": ["goblin", "goblin_2"]}', "s"),
                        make_call("end_turn", '{"actor_id": "goblin"}', "bad"),
                        make_call("defend", '{"actor_id": "player"}', "d"),
                    ],
                ),
                ChatReply(
                    content="You slip away.",
                    tool_calls=[make_call("flee", '{"actor_id": "player"}', "f")],
                ),
            ],
        )
        orchestrator = TurnOrchestrator(
            armed_world,
            client,
            settings=fast_settings,
            dice=ScriptedRoller(20, 5, 3, 15),
        )

        first = asyncio.run(orchestrator.process_turn("fight"))
        assert [r.success for r in first.tool_results] == [True, False, True]
        assert first.suggested_actions == ["attack", "flee"]
        assert "COMBAT ACTIVE - Round 1 - Turn: player" in build_system_context(armed_world)

        second = asyncio.run(orchestrator.process_turn("run away"))
        assert second.tool_results[0].content == "player fled successfully!"
        assert armed_world.combat.active is False
