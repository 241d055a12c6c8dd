"""Typed commands for every tool operation.

Tool arguments arrive as loosely-typed JSON from the generation service.
They are decoded exactly once, here, into one frozen command model per
operation; everything downstream works with validated fields only.
Decoding failures are translated into the dispatch error taxonomy:
missing fields, bad enumeration values, and otherwise malformed payloads.

Example:
    >>> command = decode_command("move_to", '{"direction": "North"}')
    >>> command.direction
    <Direction.NORTH: 'north'>
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from infinite_adventure.core.exceptions import (
    InvalidEnumValueError,
    MalformedArgumentsError,
    MissingFieldError,
    UnknownOperationError,
)
from infinite_adventure.core.logging import get_logger
from infinite_adventure.engine.tools import ToolCategory, get_tool, tool
from infinite_adventure.models.combat import StatusType
from infinite_adventure.models.items import ItemProperties, ItemState, ItemType
from infinite_adventure.models.world import Direction


logger = get_logger(__name__)

_ENUM_ERROR_TYPES = frozenset({"enum", "literal_error", "union_tag_invalid", "union_tag_not_found"})


class Command(BaseModel):
    """Base class of all decoded tool commands."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tool_name: ClassVar[str] = ""


# =============================================================================
# Movement & Narrative
# =============================================================================


@tool(
    name="move_to",
    description="Move player in direction (north/south/east/west). Auto-generates new locations if needed.",
    category=ToolCategory.MOVEMENT,
)
class MoveTo(Command):
    direction: Direction

    @field_validator("direction", mode="before")
    @classmethod
    def normalise_direction(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


@tool(
    name="update_location_description",
    description="Update the current location's description with new text",
    category=ToolCategory.WORLD,
)
class UpdateLocationDescription(Command):
    text: str


@tool(
    name="generate_turn_narrative",
    description="Generate the narrative response for the current turn (transient, not stored per location)",
    category=ToolCategory.NARRATIVE,
)
class GenerateTurnNarrative(Command):
    text: str


# =============================================================================
# World Building
# =============================================================================


@tool(
    name="create_location",
    description="Create a location at an explicit coordinate. Fails if one already exists there.",
    category=ToolCategory.WORLD,
)
class CreateLocation(Command):
    x: int
    y: int
    name: str
    description: str | None = None
    image_prompt: str | None = None


@tool(
    name="create_item",
    description="Create a new item in the world registry. Fails if the id is already taken.",
    category=ToolCategory.WORLD,
)
class CreateItem(Command):
    id: str = Field(min_length=1, description="Unique identifier for the item")
    name: str | None = None
    description: str = ""
    item_type: ItemType
    state: ItemState | None = None
    properties: ItemProperties | None = None


@tool(
    name="create_actor",
    description="Create a non-player character at the current location. Fails if the id is already taken.",
    category=ToolCategory.WORLD,
)
class CreateActor(Command):
    id: str = Field(min_length=1, description="Unique identifier for the actor")
    name: str
    description: str = ""
    money: int = Field(default=0, ge=0)


@tool(
    name="inspect_object",
    description="Describe an item or actor in detail without changing anything",
    category=ToolCategory.NARRATIVE,
)
class InspectObject(Command):
    object_id: str


# =============================================================================
# Inventory & Items
# =============================================================================


@tool(
    name="add_item_to_inventory",
    description="Add a registered item to the player's inventory",
    category=ToolCategory.INVENTORY,
)
class AddItemToInventory(Command):
    item_id: str


@tool(
    name="remove_item_from_inventory",
    description="Remove an item from the player's inventory",
    category=ToolCategory.INVENTORY,
)
class RemoveItemFromInventory(Command):
    item_id: str


@tool(
    name="add_item_to_location",
    description="Place a registered item at the current location",
    category=ToolCategory.INVENTORY,
)
class AddItemToLocation(Command):
    item_id: str


@tool(
    name="remove_item_from_location",
    description="Remove an item from the current location",
    category=ToolCategory.INVENTORY,
)
class RemoveItemFromLocation(Command):
    item_id: str


@tool(
    name="use_item",
    description="Use an item (consumables lose a charge)",
    category=ToolCategory.ITEM,
)
class UseItem(Command):
    item_id: str


@tool(
    name="equip_item",
    description="Equip an item that has an equip slot",
    category=ToolCategory.ITEM,
)
class EquipItem(Command):
    item_id: str


@tool(
    name="unequip_item",
    description="Unequip an equipped item",
    category=ToolCategory.ITEM,
)
class UnequipItem(Command):
    item_id: str


@tool(
    name="combine_items",
    description="Combine two items into an already created result item",
    category=ToolCategory.ITEM,
)
class CombineItems(Command):
    item1_id: str
    item2_id: str
    result_id: str


@tool(
    name="set_item_state",
    description="Set an item's state (Normal, Equipped, Damaged, Consumed, Locked, Open)",
    category=ToolCategory.ITEM,
)
class SetItemState(Command):
    item_id: str
    state: ItemState


@tool(
    name="break_item",
    description="Destroy an item and remove it from everywhere",
    category=ToolCategory.ITEM,
)
class BreakItem(Command):
    item_id: str


@tool(
    name="add_item_to_container",
    description="Put an item into an open container",
    category=ToolCategory.CONTAINER,
)
class AddItemToContainer(Command):
    container_id: str
    item_id: str


@tool(
    name="remove_item_from_container",
    description="Take an item out of an open container",
    category=ToolCategory.CONTAINER,
)
class RemoveItemFromContainer(Command):
    container_id: str
    item_id: str


# =============================================================================
# Combat
# =============================================================================


@tool(
    name="start_combat",
    description=(
        "Start combat with enemies at the current location. "
        "Enemies must be actors present at this location."
    ),
    category=ToolCategory.COMBAT,
)
class StartCombat(Command):
    enemy_ids: list[str] = Field(
        description="IDs of enemy actors to engage in combat (max 4 total including player)",
    )


@tool(
    name="attack_actor",
    description="Attack another actor in combat. Calculate damage based on weapon - armor.",
    category=ToolCategory.COMBAT,
)
class AttackActor(Command):
    attacker_id: str
    target_id: str
    weapon_id: str | None = Field(
        default=None,
        description="Optional weapon ID to use, defaults to equipped",
    )


@tool(
    name="defend",
    description="Increase temporary defense for one round (adds +5 to defense)",
    category=ToolCategory.COMBAT,
)
class Defend(Command):
    actor_id: str


@tool(
    name="flee",
    description="Attempt to flee from combat. Success chance based on random check.",
    category=ToolCategory.COMBAT,
)
class Flee(Command):
    actor_id: str


@tool(
    name="use_item_in_combat",
    description="Use an item during combat (consumables, healing potions, etc.)",
    category=ToolCategory.COMBAT,
)
class UseItemInCombat(Command):
    user_id: str
    item_id: str
    target_id: str | None = Field(
        default=None,
        description="Optional target actor for the item effect",
    )


@tool(
    name="end_turn",
    description="End the current combatant's turn and move to next combatant",
    category=ToolCategory.COMBAT,
)
class EndTurn(Command):
    actor_id: str


@tool(
    name="apply_status_effect",
    description="Apply a status effect (Poison, Stunned, Burning, Frozen, Bleeding) to a combatant",
    category=ToolCategory.COMBAT,
)
class ApplyStatusEffect(Command):
    target_id: str
    effect_type: StatusType
    duration: int = Field(ge=1, description="Rounds the effect lasts")
    severity: int = Field(default=0, ge=0, description="Damage per round for Poison and Burning")


@tool(
    name="end_combat",
    description="End the current combat immediately",
    category=ToolCategory.COMBAT,
)
class EndCombat(Command):
    victor_id: str | None = None


# =============================================================================
# Decoding
# =============================================================================


def decode_command(name: str, arguments: str | Mapping[str, Any] | None) -> Command:
    """Decode an operation name and raw argument payload into a command.

    Args:
        name: Operation name.
        arguments: JSON text, an already-parsed mapping, or None/blank for no arguments.

    Returns:
        The validated command.

    Raises:
        UnknownOperationError: If the name is not a registered tool.
        MissingFieldError: If a required field is absent.
        InvalidEnumValueError: If a type, state, direction or effect tag is unknown.
        MalformedArgumentsError: If the payload is not a JSON object or fails validation.
    """
    definition = get_tool(name)
    if definition is None:
        raise UnknownOperationError(f"Unknown tool: {name}", tool_name=name)

    payload = _load_payload(name, arguments)
    try:
        return definition.command.model_validate(payload)
    except PydanticValidationError as exc:
        raise _translate_validation_error(name, exc) from exc


def _load_payload(name: str, arguments: str | Mapping[str, Any] | None) -> dict[str, Any]:
    if arguments is None:
        return {}
    if isinstance(arguments, Mapping):
        return dict(arguments)
    if not isinstance(arguments, str):
        raise MalformedArgumentsError(
            f"Arguments must be a JSON object, got {type(arguments).__name__}",
            tool_name=name,
        )
    if not arguments.strip():
        return {}
    try:
        payload = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise MalformedArgumentsError(
            f"Arguments are not valid JSON: {exc.msg}",
            tool_name=name,
            details={"position": exc.pos},
        ) from exc
    if not isinstance(payload, dict):
        raise MalformedArgumentsError(
            f"Arguments must be a JSON object, got {type(payload).__name__}",
            tool_name=name,
        )
    return payload


def _translate_validation_error(name: str, exc: PydanticValidationError) -> MalformedArgumentsError:
    """Map the first pydantic error onto the dispatch error taxonomy."""
    error = exc.errors()[0]
    field_name = ".".join(str(part) for part in error["loc"]) or None
    error_type = error["type"]

    if error_type == "missing":
        return MissingFieldError(
            f"Missing required field: {field_name}",
            tool_name=name,
            field_name=field_name,
        )
    if error_type in _ENUM_ERROR_TYPES:
        context = error.get("ctx") or {}
        invalid_value = context.get("tag", error.get("input"))
        return InvalidEnumValueError(
            f"Invalid value for {field_name}: {invalid_value!r}",
            tool_name=name,
            field_name=field_name,
            invalid_value=invalid_value,
        )
    return MalformedArgumentsError(
        f"Invalid arguments: {error['msg']}",
        tool_name=name,
        details={"field_name": field_name, "error_type": error_type},
    )


__all__ = [
    "AddItemToContainer",
    "AddItemToInventory",
    "AddItemToLocation",
    "ApplyStatusEffect",
    "AttackActor",
    "BreakItem",
    "CombineItems",
    "Command",
    "CreateActor",
    "CreateItem",
    "CreateLocation",
    "Defend",
    "EndCombat",
    "EndTurn",
    "EquipItem",
    "Flee",
    "GenerateTurnNarrative",
    "InspectObject",
    "MoveTo",
    "RemoveItemFromContainer",
    "RemoveItemFromInventory",
    "RemoveItemFromLocation",
    "SetItemState",
    "StartCombat",
    "UnequipItem",
    "UpdateLocationDescription",
    "UseItem",
    "UseItemInCombat",
    "decode_command",
]
