"""Item bookkeeping shared by the dispatcher and the combat engine.

Inventories, location item lists and container contents are id lists
treated as sets: adding is idempotent and removal drops every occurrence.
"""

from __future__ import annotations

from enum import StrEnum

from infinite_adventure.core.logging import get_logger
from infinite_adventure.models.items import ConsumedState, Item, OpenState
from infinite_adventure.models.world import World


logger = get_logger(__name__)


class ChargeOutcome(StrEnum):
    """What using an item did to it."""

    NOT_USABLE = "not_usable"
    """The item's usable flag is off; nothing changed."""

    UNLIMITED = "unlimited"
    """Usable item without charges; nothing to spend."""

    SPENT = "spent"
    """One charge was spent and charges remain."""

    EXHAUSTED = "exhausted"
    """The last charge was spent; the id left the inventory but stays registered."""


def add_unique(ids: list[str], item_id: str) -> bool:
    """Append ``item_id`` unless present. Returns True if it was added."""
    if item_id in ids:
        return False
    ids.append(item_id)
    return True


def remove_all(ids: list[str], *item_ids: str) -> bool:
    """Remove every occurrence of the given ids in place. Returns True if any were present."""
    before = len(ids)
    ids[:] = [existing for existing in ids if existing not in item_ids]
    return len(ids) != before


def spend_charge(world: World, item: Item) -> ChargeOutcome:
    """Apply the charge rule for using an item.

    A Consumed item with more than one charge loses one. At one charge or
    fewer it is removed from the player's inventory while its registry entry
    is left in place, so the id dangles until something breaks it.
    """
    if not item.properties.usable:
        return ChargeOutcome.NOT_USABLE

    state = item.state
    if not isinstance(state, ConsumedState):
        return ChargeOutcome.UNLIMITED

    if state.charges > 1:
        item.state = ConsumedState(charges=state.charges - 1, max_charges=state.max_charges)
        return ChargeOutcome.SPENT

    remove_all(world.player.inventory, item.id)
    logger.debug("Item exhausted, registry entry kept", item_id=item.id)
    return ChargeOutcome.EXHAUSTED


def purge_item_references(world: World, *item_ids: str) -> None:
    """Remove ids from the inventory, every location, actor and open container."""
    remove_all(world.player.inventory, *item_ids)
    for location in world.locations.values():
        remove_all(location.items, *item_ids)
    for actor in world.actors.values():
        remove_all(actor.inventory, *item_ids)
    for item in world.items.values():
        if isinstance(item.state, OpenState):
            remove_all(item.state.contents, *item_ids)


__all__ = [
    "ChargeOutcome",
    "add_unique",
    "purge_item_references",
    "remove_all",
    "spend_charge",
]
