"""Pydantic V2 schemas for combat state.

Combatants are combat-scoped records that exist only while a fight is
active; the persistent NPC behind an enemy combatant is an Actor.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class StatusType(StrEnum):
    """Status effects that can be attached to a combatant."""

    POISON = "Poison"
    STUNNED = "Stunned"
    BURNING = "Burning"
    FROZEN = "Frozen"
    BLEEDING = "Bleeding"

    @property
    def deals_damage_over_time(self) -> bool:
        return self in (StatusType.POISON, StatusType.BURNING)


class StatusEffect(BaseModel):
    """An active effect on a combatant.

    Attributes:
        effect_type: Which effect.
        duration: Rounds remaining.
        severity: Damage per round for damage-over-time effects.
    """

    model_config = ConfigDict(extra="ignore")

    effect_type: StatusType
    duration: int = Field(ge=0, description="Rounds remaining")
    severity: int = Field(default=0, ge=0, description="Damage per tick")


class Combatant(BaseModel):
    """A participant in the current fight.

    Attributes:
        id: Actor id, or "player".
        is_player: True for the player's record.
        hp: Current hit points, never negative.
        max_hp: Hit point ceiling.
        weapon_id: Equipped weapon item id.
        armor_id: Equipped armor item id.
        initiative: Initiative roll, used only for the initial ordering.
        status_effects: Active effects.
        temp_defense: Defense bonus that lasts until the next end of turn.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    is_player: bool = False
    hp: int = Field(ge=0)
    max_hp: int = Field(ge=1)
    weapon_id: str | None = None
    armor_id: str | None = None
    initiative: int = 0
    status_effects: list[StatusEffect] = Field(default_factory=list)
    temp_defense: int = Field(default=0, ge=0)

    @property
    def is_stunned(self) -> bool:
        return any(effect.effect_type == StatusType.STUNNED for effect in self.status_effects)

    @property
    def is_alive(self) -> bool:
        return self.hp > 0


class CombatState(BaseModel):
    """Combat sub-state of the world.

    While ``active`` is true the combatant list is non-empty and
    ``current_turn_index`` indexes into it.

    Attributes:
        active: Whether a fight is in progress.
        combatants: Participants in turn order.
        current_turn_index: Index of the combatant whose turn it is.
        round_number: Rounds elapsed, starting at 1.
    """

    model_config = ConfigDict(extra="ignore")

    active: bool = False
    combatants: list[Combatant] = Field(default_factory=list)
    current_turn_index: int = Field(default=0, ge=0)
    round_number: int = Field(default=0, ge=0)

    def find(self, combatant_id: str) -> Combatant | None:
        """Return the combatant with the given id, if present."""
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def current(self) -> Combatant | None:
        """Return the combatant whose turn it is."""
        if not self.active or not self.combatants:
            return None
        if self.current_turn_index >= len(self.combatants):
            return None
        return self.combatants[self.current_turn_index]

    def has_player_side(self) -> bool:
        return any(combatant.is_player for combatant in self.combatants)

    def has_enemy_side(self) -> bool:
        return any(not combatant.is_player for combatant in self.combatants)

    def end(self) -> None:
        """Deactivate combat and discard every combatant record."""
        self.active = False
        self.combatants = []
        self.current_turn_index = 0


__all__ = [
    "CombatState",
    "Combatant",
    "StatusEffect",
    "StatusType",
]
