"""Turn-based combat resolution.

The CombatEngine owns the round/turn state machine that lives in
``World.combat``. Every public method is the body of one combat tool: it
checks all of its preconditions first and only then mutates, so a rejected
call leaves the world exactly as it was.

States: inactive -> active (rounds proceed) -> inactive. Combat ends when
either side has no combatants left, after a successful escape empties a
side, or on an explicit end_combat. Ending always discards the combatants.
"""

from __future__ import annotations

from infinite_adventure.core.constants import (
    ARMOR_SLOT,
    BASE_DAMAGE,
    COMBAT_HEAL_AMOUNT,
    DEFEND_BONUS,
    ENEMY_STARTING_HP,
    FLEE_DICE,
    FLEE_SUCCESS_THRESHOLD,
    INITIATIVE_DICE,
    MIN_DAMAGE,
    PLAYER_COMBATANT_ID,
    PLAYER_STARTING_HP,
    WEAPON_SLOT,
)
from infinite_adventure.core.exceptions import CombatPreconditionError
from infinite_adventure.core.logging import get_logger
from infinite_adventure.engine.dice import DiceRoller, Roller
from infinite_adventure.engine.inventory import ChargeOutcome, spend_charge
from infinite_adventure.models.combat import CombatState, Combatant, StatusEffect, StatusType
from infinite_adventure.models.world import World


logger = get_logger(__name__)


def resolve_damage(weapon_damage: int, armor_defense: int, temp_defense: int) -> int:
    """Damage after defense, never below the minimum so combat always progresses."""
    return max(MIN_DAMAGE, weapon_damage - (armor_defense + temp_defense))


class CombatEngine:
    """Applies combat operations to a world.

    Args:
        world: The world whose combat sub-state is driven.
        dice: Source of initiative and flee rolls.
    """

    def __init__(self, world: World, dice: Roller | None = None) -> None:
        self.world = world
        self.dice: Roller = dice or DiceRoller()

    @property
    def state(self) -> CombatState:
        return self.world.combat

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _require_active(self) -> None:
        if not self.state.active:
            raise CombatPreconditionError("Combat is not active")

    def _require_combatant(self, combatant_id: str, role: str) -> Combatant:
        combatant = self.state.find(combatant_id)
        if combatant is None:
            raise CombatPreconditionError(
                f"{role} {combatant_id} is not in combat",
                combatant_id=combatant_id,
                round_number=self.state.round_number,
            )
        return combatant

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def start(self, enemy_ids: list[str]) -> str:
        """Start combat between the player and actors at the current location.

        Raises:
            CombatPreconditionError: If combat is active, an enemy id repeats,
                the cap would be exceeded, or an enemy is unknown or elsewhere.
        """
        if self.state.active:
            raise CombatPreconditionError("Combat is already active")

        if not enemy_ids:
            raise CombatPreconditionError("Combat needs at least one enemy")
        if len(set(enemy_ids)) != len(enemy_ids):
            raise CombatPreconditionError(
                "Duplicate enemy ids",
                details={"enemy_ids": enemy_ids},
            )

        total = 1 + len(enemy_ids)
        if total > self.world.max_combatants:
            raise CombatPreconditionError(
                f"Too many combatants (max {self.world.max_combatants})",
                details={"requested": total},
            )

        for enemy_id in enemy_ids:
            actor = self.world.actors.get(enemy_id)
            if actor is None:
                raise CombatPreconditionError(f"Enemy {enemy_id} does not exist", combatant_id=enemy_id)
            if tuple(actor.current_pos) != tuple(self.world.current_pos):
                raise CombatPreconditionError(
                    f"Enemy {enemy_id} is not at current location",
                    combatant_id=enemy_id,
                )

        weapon_id, armor_id = self._equipped(self.world.player.inventory)
        combatants = [
            Combatant(
                id=PLAYER_COMBATANT_ID,
                is_player=True,
                hp=PLAYER_STARTING_HP,
                max_hp=PLAYER_STARTING_HP,
                weapon_id=weapon_id,
                armor_id=armor_id,
                initiative=self.dice.roll(INITIATIVE_DICE),
            )
        ]
        for enemy_id in enemy_ids:
            weapon_id, armor_id = self._equipped(self.world.actors[enemy_id].inventory)
            combatants.append(
                Combatant(
                    id=enemy_id,
                    is_player=False,
                    hp=ENEMY_STARTING_HP,
                    max_hp=ENEMY_STARTING_HP,
                    weapon_id=weapon_id,
                    armor_id=armor_id,
                    initiative=self.dice.roll(INITIATIVE_DICE),
                )
            )

        # sorted() is stable: equal initiatives keep insertion order
        combatants = sorted(combatants, key=lambda c: c.initiative, reverse=True)

        self.state.active = True
        self.state.combatants = combatants
        self.state.current_turn_index = 0
        self.state.round_number = 1

        logger.info(
            "Combat started",
            enemies=enemy_ids,
            order=[c.id for c in combatants],
        )
        return f"Started combat with {len(enemy_ids)} enemies"

    def attack(self, attacker_id: str, target_id: str, weapon_id: str | None = None) -> str:
        """Resolve one attack; a missing or unknown weapon deals base damage."""
        self._require_active()
        self._require_combatant(attacker_id, "Attacker")
        target = self._require_combatant(target_id, "Target")

        weapon_damage = BASE_DAMAGE
        if weapon_id is not None:
            weapon = self.world.items.get(weapon_id)
            if weapon is not None and weapon.properties.damage is not None:
                weapon_damage = weapon.properties.damage

        armor_defense = 0
        if target.armor_id is not None:
            armor = self.world.items.get(target.armor_id)
            if armor is not None and armor.properties.defense is not None:
                armor_defense = armor.properties.defense

        damage = resolve_damage(weapon_damage, armor_defense, target.temp_defense)
        target.hp = max(0, target.hp - damage)

        logger.info(
            "Attack resolved",
            attacker=attacker_id,
            target=target_id,
            damage=damage,
            target_hp=target.hp,
        )
        return f"{attacker_id} attacked {target_id} for {damage} damage"

    def defend(self, actor_id: str) -> str:
        self._require_active()
        combatant = self._require_combatant(actor_id, "Actor")
        combatant.temp_defense += DEFEND_BONUS
        return f"{actor_id} is defending (+{DEFEND_BONUS} temp defense)"

    def flee(self, actor_id: str) -> str:
        """Attempt an escape; success removes the combatant from the fight."""
        self._require_active()
        self._require_combatant(actor_id, "Actor")

        roll = self.dice.roll(FLEE_DICE)
        if roll < FLEE_SUCCESS_THRESHOLD:
            logger.info("Flee failed", actor=actor_id, roll=roll)
            return f"{actor_id} failed to flee"

        self._remove_combatant(actor_id)
        logger.info("Flee succeeded", actor=actor_id, roll=roll)
        if not (self.state.has_player_side() and self.state.has_enemy_side()):
            self.state.end()
            logger.info("Combat ended", reason="flee")
        return f"{actor_id} fled successfully!"

    def use_item(self, user_id: str, item_id: str, target_id: str | None = None) -> str:
        """Use an inventory item in combat to heal the user.

        Raises:
            CombatPreconditionError: If the user is not fighting, or the item is
                not in the inventory, not registered, or not usable.
        """
        self._require_active()
        user = self._require_combatant(user_id, "User")

        if item_id not in self.world.player.inventory:
            raise CombatPreconditionError(f"Item {item_id} not in inventory", combatant_id=user_id)
        item = self.world.items.get(item_id)
        if item is None:
            raise CombatPreconditionError(f"Item {item_id} not found", combatant_id=user_id)
        if not item.properties.usable:
            raise CombatPreconditionError(f"Item {item_id} is not usable", combatant_id=user_id)

        outcome = spend_charge(self.world, item)
        healed = min(COMBAT_HEAL_AMOUNT, user.max_hp - user.hp)
        user.hp = min(user.max_hp, user.hp + COMBAT_HEAL_AMOUNT)

        logger.info(
            "Item used in combat",
            user=user_id,
            item=item_id,
            target=target_id,
            healed=healed,
            charges=outcome.value,
        )
        suffix = " (last charge)" if outcome is ChargeOutcome.EXHAUSTED else ""
        return f"{user_id} used {item_id} and healed for {COMBAT_HEAL_AMOUNT}{suffix}"

    def apply_status_effect(
        self,
        target_id: str,
        effect_type: StatusType,
        duration: int,
        severity: int = 0,
    ) -> str:
        self._require_active()
        target = self._require_combatant(target_id, "Target")
        target.status_effects.append(
            StatusEffect(effect_type=effect_type, duration=duration, severity=severity)
        )
        return f"{target_id} is affected by {effect_type.value} for {duration} rounds"

    def end_turn(self, actor_id: str) -> str:
        """End the current combatant's turn and advance the order.

        Every combatant's temporary defense is reset, not only the actor's.
        Stunned combatants are skipped mid-round, losing one round of stun as
        they are passed. Running off the end of the order wraps the round,
        which ticks every effect once; the new round then starts with the
        first combatant that is not stunned.

        Raises:
            CombatPreconditionError: If combat is inactive or it is not ``actor_id``'s turn.
        """
        self._require_active()
        current = self.state.current()
        if current is None or current.id != actor_id:
            raise CombatPreconditionError(
                f"Not {actor_id}'s turn",
                combatant_id=actor_id,
                round_number=self.state.round_number,
            )

        for combatant in self.state.combatants:
            combatant.temp_defense = 0

        next_index = self._skip_stunned(self.state.current_turn_index + 1)
        if next_index >= len(self.state.combatants):
            if self._wrap_round():
                return "Combat ended"
            next_index = self._first_ready_index()

        self.state.current_turn_index = next_index
        return f"Turn ended. Next: {self.state.combatants[next_index].id}"

    def end_combat(self, victor_id: str | None = None) -> str:
        self._require_active()
        self.state.end()
        logger.info("Combat ended", reason="explicit", victor=victor_id)
        if victor_id:
            return f"Combat ended. Victor: {victor_id}"
        return "Combat ended"

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _wrap_round(self) -> bool:
        """Advance the round. Returns True if combat ended."""
        self.state.round_number += 1

        for combatant in self.state.combatants:
            remaining: list[StatusEffect] = []
            for effect in combatant.status_effects:
                if effect.effect_type.deals_damage_over_time:
                    combatant.hp = max(0, combatant.hp - effect.severity)
                if effect.duration - 1 > 0:
                    remaining.append(effect.model_copy(update={"duration": effect.duration - 1}))
            combatant.status_effects = remaining

        fallen = [c.id for c in self.state.combatants if not c.is_alive]
        self.state.combatants = [c for c in self.state.combatants if c.is_alive]

        logger.info(
            "Round advanced",
            round_number=self.state.round_number,
            fallen=fallen,
        )

        if not (self.state.has_player_side() and self.state.has_enemy_side()):
            self.state.end()
            logger.info("Combat ended", reason="side_defeated")
            return True
        return False

    def _first_ready_index(self) -> int:
        """First combatant of a new round that is not stunned, or 0 if all are."""
        return next(
            (i for i, c in enumerate(self.state.combatants) if not c.is_stunned),
            0,
        )

    def _skip_stunned(self, index: int) -> int:
        """First index at or after ``index`` whose combatant can act.

        Used for the mid-round advance only. Each stunned combatant passed
        over loses one round of stun.
        """
        combatants = self.state.combatants
        while index < len(combatants) and combatants[index].is_stunned:
            _wear_off_stun(combatants[index])
            index += 1
        return index

    def _remove_combatant(self, combatant_id: str) -> None:
        """Remove a combatant, keeping the turn index on the same next actor."""
        combatants = self.state.combatants
        index = next(i for i, c in enumerate(combatants) if c.id == combatant_id)
        del combatants[index]
        if index < self.state.current_turn_index:
            self.state.current_turn_index -= 1
        if self.state.current_turn_index >= len(combatants):
            self.state.current_turn_index = 0

    def _equipped(self, inventory: list[str]) -> tuple[str | None, str | None]:
        """Find equipped weapon and armor ids in an inventory."""
        weapon_id: str | None = None
        armor_id: str | None = None
        for item_id in inventory:
            item = self.world.items.get(item_id)
            if item is None or not item.is_equipped:
                continue
            slot = (item.properties.equip_slot or "").lower()
            if slot == WEAPON_SLOT and weapon_id is None:
                weapon_id = item_id
            elif slot == ARMOR_SLOT and armor_id is None:
                armor_id = item_id
        return weapon_id, armor_id


def _wear_off_stun(combatant: Combatant) -> None:
    """Decrement Stunned durations on a skipped combatant, dropping expired ones."""
    remaining: list[StatusEffect] = []
    for effect in combatant.status_effects:
        if effect.effect_type == StatusType.STUNNED:
            if effect.duration - 1 > 0:
                remaining.append(effect.model_copy(update={"duration": effect.duration - 1}))
        else:
            remaining.append(effect)
    combatant.status_effects = remaining


__all__ = [
    "CombatEngine",
    "resolve_damage",
]
