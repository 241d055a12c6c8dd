"""Pydantic V2 schemas for items and their lifecycle states.

The global item registry on the World owns every Item; inventories,
locations and containers only ever hold item ids.

Item states are a tagged union keyed by ``kind``. Besides the tagged form,
the validators accept the shorthand the generation service tends to send:
a bare tag string (``"Normal"``) or a single-key object
(``{"Consumed": {"charges": 2, "max_charges": 3}}``).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Discriminator, Field


class ItemType(StrEnum):
    """Broad item categories."""

    WEAPON = "Weapon"
    ARMOR = "Armor"
    CONSUMABLE = "Consumable"
    TOOL = "Tool"
    KEY = "Key"
    CONTAINER = "Container"
    QUEST_ITEM = "QuestItem"
    MATERIAL = "Material"


class NormalState(BaseModel):
    """Default state of an item."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Normal"] = "Normal"


class EquippedState(BaseModel):
    """Item is worn or wielded by its owner."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Equipped"] = "Equipped"


class DamagedState(BaseModel):
    """Item has lost durability."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Damaged"] = "Damaged"
    durability: int = Field(ge=0, description="Remaining durability")
    max_durability: int = Field(ge=0, description="Durability when undamaged")


class ConsumedState(BaseModel):
    """Item has a limited number of uses left.

    Attributes:
        charges: Uses remaining.
        max_charges: Uses when new.
    """

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Consumed"] = "Consumed"
    charges: int = Field(ge=0, description="Uses remaining")
    max_charges: int = Field(ge=0, description="Uses when new")


class LockedState(BaseModel):
    """Item is locked and opens with another item."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Locked"] = "Locked"
    key_id: str = Field(description="Item id of the key")


class OpenState(BaseModel):
    """Container is open; its contents can be changed."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["Open"] = "Open"
    contents: list[str] = Field(default_factory=list, description="Contained item ids")


def _coerce_state(value: Any) -> Any:
    """Normalise shorthand state encodings into the tagged form."""
    if isinstance(value, str):
        return {"kind": value}
    if isinstance(value, dict) and "kind" not in value and len(value) == 1:
        tag, payload = next(iter(value.items()))
        if payload is None:
            return {"kind": tag}
        if isinstance(payload, dict):
            return {"kind": tag, **payload}
    return value


_TaggedItemState = Annotated[
    NormalState | EquippedState | DamagedState | ConsumedState | LockedState | OpenState,
    Discriminator("kind"),
]

ItemState = Annotated[_TaggedItemState, BeforeValidator(_coerce_state)]


class ItemProperties(BaseModel):
    """Gameplay properties of an item.

    Attributes:
        damage: Damage dealt when used as a weapon.
        defense: Defense granted when worn as armor.
        value: Trade value.
        weight: Carry weight.
        carryable: Whether the item can be picked up.
        usable: Whether the use operations act on the item.
        equip_slot: Slot name; items without one cannot be equipped.
        status_effects: Names of status effects the item can confer.
    """

    model_config = ConfigDict(extra="ignore")

    damage: int | None = Field(default=None, ge=0)
    defense: int | None = Field(default=None, ge=0)
    value: int | None = Field(default=None, ge=0)
    weight: int | None = Field(default=None, ge=0)
    carryable: bool = True
    usable: bool = False
    equip_slot: str | None = None
    status_effects: list[str] = Field(default_factory=list)


class Item(BaseModel):
    """A registered item.

    Attributes:
        id: Registry key, unique across the world.
        name: Display name.
        description: Flavour text.
        item_type: Broad category.
        state: Current lifecycle state.
        properties: Gameplay properties.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, description="Unique item id")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="Flavour text")
    item_type: ItemType = Field(description="Item category")
    state: ItemState = Field(default_factory=NormalState)
    properties: ItemProperties = Field(default_factory=ItemProperties)

    @property
    def is_equipped(self) -> bool:
        return isinstance(self.state, EquippedState)

    @property
    def is_open(self) -> bool:
        return isinstance(self.state, OpenState)

    def describe(self) -> str:
        """One-line summary used by inspect_object and the agent context."""
        props = self.properties
        parts = [f"{self.name} ({self.item_type.value}, {self.state.kind})"]
        if props.damage is not None:
            parts.append(f"damage {props.damage}")
        if props.defense is not None:
            parts.append(f"defense {props.defense}")
        if isinstance(self.state, ConsumedState):
            parts.append(f"charges {self.state.charges}/{self.state.max_charges}")
        if isinstance(self.state, DamagedState):
            parts.append(f"durability {self.state.durability}/{self.state.max_durability}")
        summary = ", ".join(parts)
        if self.description:
            summary = f"{summary}: {self.description}"
        return summary


__all__ = [
    "ConsumedState",
    "DamagedState",
    "EquippedState",
    "Item",
    "ItemProperties",
    "ItemState",
    "ItemType",
    "LockedState",
    "NormalState",
    "OpenState",
]
