"""Application of tool calls to the world model.

The ToolDispatcher is the only writer of the World. Each call is decoded
into a command (see ``engine.commands``) and routed to exactly one handler.
Handlers check every precondition before their first write, so a failed
call leaves the world untouched. Tool calls are atomic individually; a
turn as a whole is not transactional.

Example:
    >>> dispatcher = ToolDispatcher(create_world())
    >>> await dispatcher.dispatch("create_item", {"id": "torch", "item_type": "Tool"})
    'Created item: torch'
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from infinite_adventure.core.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    GameEngineError,
)
from infinite_adventure.core.logging import get_logger
from infinite_adventure.engine.combat import CombatEngine
from infinite_adventure.engine.commands import (
    AddItemToContainer,
    AddItemToInventory,
    AddItemToLocation,
    ApplyStatusEffect,
    AttackActor,
    BreakItem,
    CombineItems,
    Command,
    CreateActor,
    CreateItem,
    CreateLocation,
    Defend,
    EndCombat,
    EndTurn,
    EquipItem,
    Flee,
    GenerateTurnNarrative,
    InspectObject,
    MoveTo,
    RemoveItemFromContainer,
    RemoveItemFromInventory,
    RemoveItemFromLocation,
    SetItemState,
    StartCombat,
    UnequipItem,
    UpdateLocationDescription,
    UseItem,
    UseItemInCombat,
    decode_command,
)
from infinite_adventure.engine.dice import Roller
from infinite_adventure.engine.generator import WorldGenerator, link_exits
from infinite_adventure.engine.inventory import (
    ChargeOutcome,
    add_unique,
    purge_item_references,
    remove_all,
    spend_charge,
)
from infinite_adventure.llm.client import ToolCall, ToolResult
from infinite_adventure.models.items import EquippedState, Item, ItemProperties, NormalState, OpenState
from infinite_adventure.models.world import Actor, Location, World


logger = get_logger(__name__)

Handler = Callable[[Any], str | Awaitable[str]]


class ToolDispatcher:
    """Validates and applies tool calls to a world.

    Args:
        world: The world to mutate.
        generator: Expands the grid on first entry to a coordinate.
        dice: Dice source for combat; ignored when ``combat`` is given.
        combat: Combat engine sharing the same world.
    """

    def __init__(
        self,
        world: World,
        *,
        generator: WorldGenerator | None = None,
        dice: Roller | None = None,
        combat: CombatEngine | None = None,
    ) -> None:
        self.world = world
        self.generator = generator or WorldGenerator()
        self.combat = combat or CombatEngine(world, dice)
        self.turn_narrative: str | None = None
        self._handlers: dict[type[Command], Handler] = {
            MoveTo: self._move_to,
            UpdateLocationDescription: self._update_location_description,
            GenerateTurnNarrative: self._generate_turn_narrative,
            CreateLocation: self._create_location,
            CreateItem: self._create_item,
            CreateActor: self._create_actor,
            InspectObject: self._inspect_object,
            AddItemToInventory: self._add_item_to_inventory,
            RemoveItemFromInventory: self._remove_item_from_inventory,
            AddItemToLocation: self._add_item_to_location,
            RemoveItemFromLocation: self._remove_item_from_location,
            UseItem: self._use_item,
            EquipItem: self._equip_item,
            UnequipItem: self._unequip_item,
            CombineItems: self._combine_items,
            SetItemState: self._set_item_state,
            BreakItem: self._break_item,
            AddItemToContainer: self._add_item_to_container,
            RemoveItemFromContainer: self._remove_item_from_container,
            StartCombat: lambda c: self.combat.start(c.enemy_ids),
            AttackActor: lambda c: self.combat.attack(c.attacker_id, c.target_id, c.weapon_id),
            Defend: lambda c: self.combat.defend(c.actor_id),
            Flee: lambda c: self.combat.flee(c.actor_id),
            UseItemInCombat: lambda c: self.combat.use_item(c.user_id, c.item_id, c.target_id),
            EndTurn: lambda c: self.combat.end_turn(c.actor_id),
            EndCombat: lambda c: self.combat.end_combat(c.victor_id),
            ApplyStatusEffect: lambda c: self.combat.apply_status_effect(
                c.target_id, c.effect_type, c.duration, c.severity
            ),
        }

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def begin_turn(self) -> None:
        """Forget the previous turn's narrative."""
        self.turn_narrative = None

    async def dispatch(self, name: str, arguments: str | Mapping[str, Any] | None = None) -> str:
        """Decode and apply one operation.

        Returns:
            A short acknowledgment.

        Raises:
            ToolDispatchError: If the call cannot be decoded or references a
                missing or duplicate entity.
            CombatError: If a combat precondition is violated.
        """
        return await self.apply(decode_command(name, arguments))

    async def apply(self, command: Command) -> str:
        """Apply an already decoded command."""
        handler = self._handlers[type(command)]
        result = handler(command)
        if inspect.isawaitable(result):
            result = await result
        logger.debug("Tool applied", tool=command.tool_name, result=result)
        return result

    async def execute(self, call: ToolCall) -> ToolResult:
        """Apply a tool call from the generation service.

        Engine errors become failed results carrying the error text; they
        never abort the remaining calls of a turn.
        """
        name = call.function.name
        try:
            content = await self.dispatch(name, call.function.arguments)
        except GameEngineError as exc:
            logger.warning(
                "Tool call failed",
                tool=name,
                call_id=call.id,
                error=exc.message,
                error_type=type(exc).__name__,
            )
            return ToolResult(
                tool_call_id=call.id,
                content=f"Error: {exc.message}",
                success=False,
                tool_name=name,
                metadata={"error_type": type(exc).__name__, **exc.details},
            )

        logger.info("Tool call applied", tool=name, call_id=call.id)
        return ToolResult(tool_call_id=call.id, content=content, tool_name=name)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _current_location(self, tool_name: str) -> Location:
        location = self.world.current_location()
        if location is None:
            x, y = self.world.current_pos
            raise EntityNotFoundError(
                "Current location not found",
                tool_name=tool_name,
                entity_kind="location",
                entity_id=f"{x},{y}",
            )
        return location

    def _registered_item(self, item_id: str, tool_name: str) -> Item:
        item = self.world.items.get(item_id)
        if item is None:
            raise EntityNotFoundError(
                f"Item {item_id} not found",
                tool_name=tool_name,
                entity_kind="item",
                entity_id=item_id,
            )
        return item

    # -------------------------------------------------------------------------
    # Movement & narrative
    # -------------------------------------------------------------------------

    async def _move_to(self, command: MoveTo) -> str:
        direction = command.direction
        origin = self.world.current_pos
        target = direction.step(origin)

        if target in self.world.locations:
            link_exits(self.world, origin, direction, target, overwrite=False)
        else:
            await self.generator.expand(self.world, origin, direction)

        self.world.current_pos = target
        location = self.world.locations[target]
        location.visited = True

        logger.info("Player moved", direction=direction.value, x=target[0], y=target[1])
        return f"Moved {direction.value} to ({target[0]}, {target[1]}) - {location.name}"

    def _update_location_description(self, command: UpdateLocationDescription) -> str:
        location = self._current_location(command.tool_name)
        location.description = command.text
        return "Location description updated"

    def _generate_turn_narrative(self, command: GenerateTurnNarrative) -> str:
        self.turn_narrative = command.text
        return "Turn narrative generated"

    # -------------------------------------------------------------------------
    # World building
    # -------------------------------------------------------------------------

    def _create_location(self, command: CreateLocation) -> str:
        position = (command.x, command.y)
        if position in self.world.locations:
            raise DuplicateEntityError(
                f"A location already exists at ({command.x}, {command.y})",
                tool_name=command.tool_name,
            )
        fields = {
            "name": command.name,
            "description": command.description,
            "image_prompt": command.image_prompt,
        }
        self.world.locations[position] = Location(**{k: v for k, v in fields.items() if v is not None})
        return f"Created location at ({command.x}, {command.y}): {command.name}"

    def _create_item(self, command: CreateItem) -> str:
        if command.id in self.world.items:
            raise DuplicateEntityError(
                f"Item {command.id} already exists",
                tool_name=command.tool_name,
                details={"item_id": command.id},
            )
        self.world.items[command.id] = Item(
            id=command.id,
            name=command.name or command.id,
            description=command.description,
            item_type=command.item_type,
            state=command.state.model_copy(deep=True) if command.state else NormalState(),
            properties=command.properties.model_copy(deep=True) if command.properties else ItemProperties(),
        )
        return f"Created item: {command.id}"

    def _create_actor(self, command: CreateActor) -> str:
        if command.id in self.world.actors:
            raise DuplicateEntityError(
                f"Actor {command.id} already exists",
                tool_name=command.tool_name,
                details={"actor_id": command.id},
            )
        location = self._current_location(command.tool_name)
        self.world.actors[command.id] = Actor(
            id=command.id,
            name=command.name,
            description=command.description,
            current_pos=self.world.current_pos,
            money=command.money,
        )
        add_unique(location.actors, command.id)
        return f"Created actor: {command.id}"

    def _inspect_object(self, command: InspectObject) -> str:
        object_id = command.object_id
        item = self.world.items.get(object_id)
        if item is not None:
            return (
                f"Item: {item.name}\n"
                f"Description: {item.description}\n"
                f"Type: {item.item_type.value}\n"
                f"State: {item.state.kind}\n"
                f"Details: {item.describe()}"
            )
        actor = self.world.actors.get(object_id)
        if actor is not None:
            inventory = ", ".join(self.world.item_names(actor.inventory)) or "nothing"
            return (
                f"Actor: {actor.name}\n"
                f"Description: {actor.description}\n"
                f"Inventory: {inventory}\n"
                f"Money: {actor.money}"
            )
        raise EntityNotFoundError(
            f"Object {object_id} not found",
            tool_name=command.tool_name,
            entity_kind="object",
            entity_id=object_id,
        )

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def _add_item_to_inventory(self, command: AddItemToInventory) -> str:
        self._registered_item(command.item_id, command.tool_name)
        if not add_unique(self.world.player.inventory, command.item_id):
            return f"{command.item_id} is already in inventory"
        return f"Added {command.item_id} to inventory"

    def _remove_item_from_inventory(self, command: RemoveItemFromInventory) -> str:
        remove_all(self.world.player.inventory, command.item_id)
        return f"Removed {command.item_id} from inventory"

    def _add_item_to_location(self, command: AddItemToLocation) -> str:
        location = self._current_location(command.tool_name)
        self._registered_item(command.item_id, command.tool_name)
        if not add_unique(location.items, command.item_id):
            return f"{command.item_id} is already here"
        return f"Added {command.item_id} to current location"

    def _remove_item_from_location(self, command: RemoveItemFromLocation) -> str:
        location = self._current_location(command.tool_name)
        remove_all(location.items, command.item_id)
        return f"Removed {command.item_id} from current location"

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def _use_item(self, command: UseItem) -> str:
        item = self.world.items.get(command.item_id)
        if item is None:
            return f"Item {command.item_id} not found, nothing used"

        outcome = spend_charge(self.world, item)
        if outcome is ChargeOutcome.NOT_USABLE:
            return f"{command.item_id} cannot be used"
        if outcome is ChargeOutcome.EXHAUSTED:
            return f"Used item: {command.item_id} (last charge, removed from inventory)"
        return f"Used item: {command.item_id}"

    def _equip_item(self, command: EquipItem) -> str:
        item = self.world.items.get(command.item_id)
        if item is None or not item.properties.equip_slot:
            return f"{command.item_id} cannot be equipped"
        item.state = EquippedState()
        return f"Equipped item: {command.item_id}"

    def _unequip_item(self, command: UnequipItem) -> str:
        item = self.world.items.get(command.item_id)
        if item is None or not item.is_equipped:
            return f"{command.item_id} is not equipped"
        item.state = NormalState()
        return f"Unequipped item: {command.item_id}"

    def _combine_items(self, command: CombineItems) -> str:
        sources = (command.item1_id, command.item2_id)
        remove_all(self.world.player.inventory, *sources)
        for location in self.world.locations.values():
            remove_all(location.items, *sources)

        if command.result_id not in self.world.items:
            # Unregistered result: the sources are consumed and nothing is produced
            logger.info(
                "Combine produced nothing, result not registered",
                sources=list(sources),
                result_id=command.result_id,
            )
            return f"Combined {command.item1_id} and {command.item2_id}; {command.result_id} does not exist"

        add_unique(self.world.player.inventory, command.result_id)
        return f"Combined {command.item1_id} and {command.item2_id} into {command.result_id}"

    def _set_item_state(self, command: SetItemState) -> str:
        item = self._registered_item(command.item_id, command.tool_name)
        item.state = command.state.model_copy(deep=True)
        return f"Set {command.item_id} state to {item.state.kind}"

    def _break_item(self, command: BreakItem) -> str:
        purge_item_references(self.world, command.item_id)
        self.world.items.pop(command.item_id, None)
        return f"Broke item: {command.item_id}"

    # -------------------------------------------------------------------------
    # Containers
    # -------------------------------------------------------------------------

    def _open_container(self, container_id: str) -> OpenState | None:
        container = self.world.items.get(container_id)
        if container is None or not isinstance(container.state, OpenState):
            return None
        return container.state

    def _add_item_to_container(self, command: AddItemToContainer) -> str:
        contents = self._open_container(command.container_id)
        if contents is None:
            return f"Container {command.container_id} is not open"
        add_unique(contents.contents, command.item_id)
        return f"Added {command.item_id} to container {command.container_id}"

    def _remove_item_from_container(self, command: RemoveItemFromContainer) -> str:
        contents = self._open_container(command.container_id)
        if contents is None:
            return f"Container {command.container_id} is not open"
        remove_all(contents.contents, command.item_id)
        return f"Removed {command.item_id} from container {command.container_id}"


__all__ = [
    "ToolDispatcher",
]
