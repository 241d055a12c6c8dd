"""Game-wide constants for the Infinite Adventure engine.

Combat numbers, world defaults, and the fixed narrative strings that the
engine falls back to when the generation service misbehaves.
"""

from __future__ import annotations

# =============================================================================
# Combat Rules
# =============================================================================

PLAYER_COMBATANT_ID = "player"
"""Identifier of the player's combatant record."""

PLAYER_STARTING_HP = 100
"""Hit points the player enters every combat with."""

ENEMY_STARTING_HP = 50
"""Hit points every enemy enters combat with."""

INITIATIVE_DICE = "1d20"
"""Initiative roll, uniform over 1-20."""

FLEE_DICE = "1d20-1"
"""Flee check, uniform over 0-19."""

FLEE_SUCCESS_THRESHOLD = 10
"""A flee roll at or above this value succeeds."""

DEFEND_BONUS = 5
"""Temporary defense granted by the defend action."""

BASE_DAMAGE = 5
"""Damage dealt without a usable weapon."""

MIN_DAMAGE = 1
"""Lower bound on resolved attack damage."""

COMBAT_HEAL_AMOUNT = 20
"""Hit points restored by using an item in combat."""

WEAPON_SLOT = "weapon"
ARMOR_SLOT = "armor"

# =============================================================================
# World Defaults
# =============================================================================

DEFAULT_MAX_ITEMS = 20
"""Item capacity reported for a new world."""

DEFAULT_MAX_COMBATANTS = 4
"""Combatant cap including the player."""

START_LOCATION_NAME = "The Beginning"
START_LOCATION_DESCRIPTION = "You stand in a void of potential. Anything can happen here."
START_LOCATION_IMAGE_PROMPT = "A swirling void of colors and shapes, representing potential."

FALLBACK_LOCATION_DESCRIPTION = "A mysterious place that appeared suddenly."
FALLBACK_LOCATION_IMAGE_PROMPT = "A mysterious location with undefined characteristics."

# =============================================================================
# Turn Processing
# =============================================================================

MAX_SUGGESTED_ACTIONS = 5
"""Maximum number of suggested follow-up actions per turn."""

MAX_SUGGESTION_LENGTH = 100
"""Suggestions must be shorter than this many characters."""

DEFAULT_SUGGESTED_ACTIONS = ("look around", "check inventory")
"""Suggestions used when the narrative contains no bullet lines."""

TIMEOUT_NARRATIVE = "[Timeout: The game took too long to respond]"
TIMEOUT_SUGGESTED_ACTIONS = ("look around",)

MAX_ERROR_SUMMARY_LENGTH = 50
"""Error text longer than this is shortened in failure narratives."""

__all__ = [
    "ARMOR_SLOT",
    "BASE_DAMAGE",
    "COMBAT_HEAL_AMOUNT",
    "DEFAULT_MAX_COMBATANTS",
    "DEFAULT_MAX_ITEMS",
    "DEFAULT_SUGGESTED_ACTIONS",
    "DEFEND_BONUS",
    "ENEMY_STARTING_HP",
    "FALLBACK_LOCATION_DESCRIPTION",
    "FALLBACK_LOCATION_IMAGE_PROMPT",
    "FLEE_DICE",
    "FLEE_SUCCESS_THRESHOLD",
    "INITIATIVE_DICE",
    "MAX_ERROR_SUMMARY_LENGTH",
    "MAX_SUGGESTED_ACTIONS",
    "MAX_SUGGESTION_LENGTH",
    "MIN_DAMAGE",
    "PLAYER_COMBATANT_ID",
    "PLAYER_STARTING_HP",
    "START_LOCATION_DESCRIPTION",
    "START_LOCATION_IMAGE_PROMPT",
    "START_LOCATION_NAME",
    "TIMEOUT_NARRATIVE",
    "TIMEOUT_SUGGESTED_ACTIONS",
    "WEAPON_SLOT",
]
