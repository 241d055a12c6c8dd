"""Tests for the combat engine."""

from __future__ import annotations

import pytest
from conftest import ScriptedRoller

from infinite_adventure.core.exceptions import CombatPreconditionError
from infinite_adventure.engine.combat import CombatEngine, resolve_damage
from infinite_adventure.models import ConsumedState, StatusEffect, StatusType, World


def started(world: World, *totals: int, enemies: tuple[str, ...] = ("goblin",)) -> CombatEngine:
    engine = CombatEngine(world, ScriptedRoller(*totals))
    engine.start(list(enemies))
    return engine


class TestResolveDamage:
    """Tests for the damage formula."""

    @pytest.mark.parametrize(
        ("weapon", "armor", "temp", "expected"),
        [
            (12, 0, 0, 12),
            (5, 3, 0, 2),
            (5, 3, 5, 1),
            (0, 0, 0, 1),
            (1, 50, 50, 1),
        ],
    )
    def test_minimum_one(self, weapon: int, armor: int, temp: int, expected: int) -> None:
        """Test damage is weapon minus defense, never below one."""
        assert resolve_damage(weapon, armor, temp) == expected


class TestStartCombat:
    """Tests for starting combat."""

    def test_order_by_initiative(self, armed_world: World) -> None:
        """Test combatants are sorted by descending initiative."""
        engine = started(armed_world, 5, 18, 12, enemies=("goblin", "goblin_2"))
        state = armed_world.combat

        assert [c.id for c in state.combatants] == ["goblin", "goblin_2", "player"]
        assert state.active is True
        assert state.current_turn_index == 0
        assert state.round_number == 1
        assert engine.dice.expressions == ["1d20", "1d20", "1d20"]

    def test_ties_keep_insertion_order(self, goblin_world: World) -> None:
        """Test equal initiatives leave the player first, then enemies as listed."""
        started(goblin_world, enemies=("goblin_2", "goblin"))

        assert [c.id for c in goblin_world.combat.combatants] == ["player", "goblin_2", "goblin"]

    def test_combatant_records(self, armed_world: World) -> None:
        """Test hit points and equipment of new combatants."""
        started(armed_world, 15, 12)
        player = armed_world.combat.find("player")
        goblin = armed_world.combat.find("goblin")

        assert (player.hp, player.max_hp) == (100, 100)
        assert (goblin.hp, goblin.max_hp) == (50, 50)
        assert player.weapon_id == "sword"
        assert player.armor_id == "leather_armor"
        assert goblin.weapon_id is None

    def test_size_is_player_plus_enemies(self, goblin_world: World) -> None:
        """Test the fight holds the player plus every named enemy."""
        started(goblin_world, 15, 12, 8, enemies=("goblin", "goblin_2"))
        assert len(goblin_world.combat.combatants) == 3

    def test_duplicate_enemy_ids_rejected(self, goblin_world: World) -> None:
        """Test a repeated enemy id is refused instead of merged."""
        engine = CombatEngine(goblin_world, ScriptedRoller())

        with pytest.raises(CombatPreconditionError):
            engine.start(["goblin", "goblin"])
        assert goblin_world.combat.active is False
        assert goblin_world.combat.combatants == []

    def test_cap_enforced(self, goblin_world: World) -> None:
        """Test the combatant cap includes the player."""
        goblin_world.max_combatants = 2
        engine = CombatEngine(goblin_world, ScriptedRoller())

        with pytest.raises(CombatPreconditionError):
            engine.start(["goblin", "goblin_2"])
        assert goblin_world.combat.active is False

    def test_enemy_elsewhere_rejected(self, goblin_world: World) -> None:
        """Test enemies must stand at the current location."""
        goblin_world.actors["goblin_2"].current_pos = (4, 4)

        with pytest.raises(CombatPreconditionError):
            CombatEngine(goblin_world, ScriptedRoller()).start(["goblin", "goblin_2"])
        assert goblin_world.combat.combatants == []

    @pytest.mark.parametrize("enemies", [[], ["dragon"]])
    def test_invalid_enemies(self, goblin_world: World, enemies: list[str]) -> None:
        """Test empty and unknown enemy lists are rejected."""
        with pytest.raises(CombatPreconditionError):
            CombatEngine(goblin_world, ScriptedRoller()).start(enemies)

    def test_already_active(self, goblin_world: World) -> None:
        """Test combat cannot be started twice."""
        engine = started(goblin_world)
        with pytest.raises(CombatPreconditionError):
            engine.start(["goblin_2"])


class TestAttackAndDefend:
    """Tests for attack_actor and defend."""

    def test_weapon_damage(self, armed_world: World) -> None:
        """Test weapon damage applies against an unarmored target."""
        engine = started(armed_world, 15, 12)

        assert engine.attack("player", "goblin", "sword") == "player attacked goblin for 12 damage"
        assert armed_world.combat.find("goblin").hp == 38

    def test_base_damage_against_armor(self, armed_world: World) -> None:
        """Test the default damage is reduced by the target's armor."""
        engine = started(armed_world, 15, 12)
        engine.attack("goblin", "player")

        assert armed_world.combat.find("player").hp == 98

    def test_defend_floors_at_one(self, armed_world: World) -> None:
        """Test defended attacks still deal one damage."""
        engine = started(armed_world, 15, 12)
        engine.defend("player")
        engine.attack("goblin", "player")

        assert armed_world.combat.find("player").hp == 99

    def test_hp_never_negative(self, armed_world: World) -> None:
        """Test hit points stop at zero."""
        engine = started(armed_world, 15, 12)
        armed_world.combat.find("goblin").hp = 3
        engine.attack("player", "goblin", "sword")

        assert armed_world.combat.find("goblin").hp == 0

    def test_unknown_target(self, goblin_world: World) -> None:
        """Test attacking someone outside the fight."""
        engine = started(goblin_world)
        with pytest.raises(CombatPreconditionError):
            engine.attack("player", "goblin_2")

    def test_inactive(self, goblin_world: World) -> None:
        """Test combat operations require active combat."""
        with pytest.raises(CombatPreconditionError):
            CombatEngine(goblin_world, ScriptedRoller()).attack("player", "goblin")


class TestEndTurn:
    """Tests for turn advancement."""

    def test_temp_defense_reset_for_everyone(self, goblin_world: World) -> None:
        """Test all temporary defense is zero after a turn ends."""
        engine = started(goblin_world, 15, 12)
        engine.defend("player")
        engine.defend("goblin")

        assert engine.end_turn("player") == "Turn ended. Next: goblin"
        assert all(c.temp_defense == 0 for c in goblin_world.combat.combatants)

    def test_out_of_turn(self, goblin_world: World) -> None:
        """Test only the current combatant can end the turn."""
        engine = started(goblin_world, 15, 12)

        with pytest.raises(CombatPreconditionError):
            engine.end_turn("goblin")
        assert goblin_world.combat.current_turn_index == 0

    def test_round_wrap_ticks_effects(self, goblin_world: World) -> None:
        """Test wrapping a round applies damage over time and shortens effects."""
        engine = started(goblin_world, 15, 12)
        engine.apply_status_effect("goblin", StatusType.POISON, 2, 4)
        engine.apply_status_effect("goblin", StatusType.FROZEN, 1, 9)

        engine.end_turn("player")
        assert engine.end_turn("goblin") == "Turn ended. Next: player"

        goblin = goblin_world.combat.find("goblin")
        assert goblin_world.combat.round_number == 2
        assert goblin.hp == 46
        assert [(e.effect_type, e.duration) for e in goblin.status_effects] == [(StatusType.POISON, 1)]

        engine.end_turn("player")
        engine.end_turn("goblin")
        assert goblin.hp == 42
        assert goblin.status_effects == []

    def test_fallen_combatants_end_combat(self, goblin_world: World) -> None:
        """Test a side emptied at the round wrap ends combat."""
        engine = started(goblin_world, 15, 12)
        goblin_world.combat.find("goblin").hp = 3
        engine.apply_status_effect("goblin", StatusType.BURNING, 1, 5)

        engine.end_turn("player")

        assert engine.end_turn("goblin") == "Combat ended"
        assert goblin_world.combat.active is False
        assert goblin_world.combat.combatants == []

    def test_fallen_removed_when_side_remains(self, goblin_world: World) -> None:
        """Test a dead enemy leaves the order while another fights on."""
        engine = started(goblin_world, 15, 12, 8, enemies=("goblin", "goblin_2"))
        goblin_world.combat.find("goblin").hp = 0

        engine.end_turn("player")
        engine.end_turn("goblin")
        engine.end_turn("goblin_2")

        assert [c.id for c in goblin_world.combat.combatants] == ["player", "goblin_2"]
        assert goblin_world.combat.active is True

    def test_stunned_combatant_skipped(self, goblin_world: World) -> None:
        """Test a stunned combatant loses its turn and a round of stun."""
        engine = started(goblin_world, 15, 12, 8, enemies=("goblin", "goblin_2"))
        engine.apply_status_effect("goblin", StatusType.STUNNED, 1)

        assert engine.end_turn("player") == "Turn ended. Next: goblin_2"
        assert not goblin_world.combat.find("goblin").is_stunned

    def test_stunned_first_combatant_skipped_after_wrap(self, goblin_world: World) -> None:
        """Test the new round starts with the first combatant that can act."""
        engine = started(goblin_world, 15, 12)
        engine.apply_status_effect("player", StatusType.STUNNED, 2)

        engine.end_turn("player")

        assert engine.end_turn("goblin") == "Turn ended. Next: goblin"
        assert goblin_world.combat.current().id == "goblin"
        player = goblin_world.combat.find("player")
        assert [(e.effect_type, e.duration) for e in player.status_effects] == [(StatusType.STUNNED, 1)]

    def test_wrap_ticks_stun_exactly_once(self, goblin_world: World) -> None:
        """Test a full round takes one round off a stun, then the stunned player acts again."""
        engine = started(goblin_world, 15, 12)
        engine.apply_status_effect("player", StatusType.STUNNED, 3)
        player = goblin_world.combat.find("player")

        engine.end_turn("player")
        engine.end_turn("goblin")
        assert [e.duration for e in player.status_effects] == [2]

        engine.end_turn("goblin")
        assert [e.duration for e in player.status_effects] == [1]
        assert goblin_world.combat.current().id == "goblin"

        assert engine.end_turn("goblin") == "Turn ended. Next: player"
        assert player.status_effects == []
        assert goblin_world.combat.round_number == 4


class TestFlee:
    """Tests for fleeing."""

    def test_low_roll_fails(self, goblin_world: World) -> None:
        """Test a roll below ten keeps the combatant in the fight."""
        engine = started(goblin_world, 15, 12, 9)

        assert engine.flee("player") == "player failed to flee"
        assert goblin_world.combat.find("player") is not None
        assert engine.dice.expressions[-1] == "1d20-1"

    def test_player_escape_ends_combat(self, goblin_world: World) -> None:
        """Test a successful player escape empties the player side."""
        engine = started(goblin_world, 15, 12, 10)

        assert engine.flee("player") == "player fled successfully!"
        assert goblin_world.combat.active is False

    def test_enemy_escape_keeps_turn_on_next_actor(self, goblin_world: World) -> None:
        """Test removing an earlier combatant keeps the same current actor."""
        engine = started(goblin_world, 15, 12, 8, 19, enemies=("goblin", "goblin_2"))
        engine.end_turn("player")
        engine.end_turn("goblin")
        assert goblin_world.combat.current().id == "goblin_2"

        engine.flee("goblin")

        assert goblin_world.combat.active is True
        assert goblin_world.combat.current().id == "goblin_2"


class TestCombatItems:
    """Tests for use_item_in_combat and status effects."""

    def test_heal_and_spend_charge(self, armed_world: World) -> None:
        """Test a usable item heals and spends a charge."""
        engine = started(armed_world, 15, 12)
        armed_world.combat.find("player").hp = 70

        engine.use_item("player", "potion")

        assert armed_world.combat.find("player").hp == 90
        assert armed_world.items["potion"].state == ConsumedState(charges=1, max_charges=2)

    def test_heal_capped(self, armed_world: World) -> None:
        """Test healing never exceeds maximum hit points."""
        engine = started(armed_world, 15, 12)
        armed_world.combat.find("player").hp = 95

        engine.use_item("player", "potion")

        assert armed_world.combat.find("player").hp == 100

    def test_item_must_be_carried_and_usable(self, armed_world: World) -> None:
        """Test preconditions on the item."""
        engine = started(armed_world, 15, 12)

        with pytest.raises(CombatPreconditionError):
            engine.use_item("player", "sword")
        armed_world.player.inventory.remove("potion")
        with pytest.raises(CombatPreconditionError):
            engine.use_item("player", "potion")

    def test_status_effect_recorded(self, goblin_world: World) -> None:
        """Test a status effect is attached to the target."""
        engine = started(goblin_world, 15, 12)
        engine.apply_status_effect("goblin", StatusType.BLEEDING, 3, 2)

        assert goblin_world.combat.find("goblin").status_effects == [
            StatusEffect(effect_type=StatusType.BLEEDING, duration=3, severity=2)
        ]

    def test_end_combat(self, goblin_world: World) -> None:
        """Test ending combat explicitly."""
        engine = started(goblin_world, 15, 12)

        assert engine.end_combat("player") == "Combat ended. Victor: player"
        assert goblin_world.combat.active is False
        assert goblin_world.combat.combatants == []
