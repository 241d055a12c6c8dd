"""Tool catalogue and the tool-call protocol.

Every operation the generation service may request is a command model
registered here with the ``tool`` decorator. The registry publishes the
catalogue in OpenAI function-calling format. The wire types exchanged with
the service (ToolCall in, ToolResult out) are re-exported from the client.

Example:
    >>> from infinite_adventure.engine import commands  # populates the registry
    >>> get_tool("move_to").category
    <ToolCategory.MOVEMENT: 'movement'>
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from infinite_adventure.core.logging import get_logger
from infinite_adventure.llm.client import ToolCall, ToolFunction, ToolResult


if TYPE_CHECKING:
    from infinite_adventure.engine.commands import Command


logger = get_logger(__name__)

C = TypeVar("C", bound="type[Command]")


# =============================================================================
# Tool Registry
# =============================================================================


class ToolCategory(StrEnum):
    """Categories of tools."""

    MOVEMENT = "movement"
    NARRATIVE = "narrative"
    WORLD = "world"
    INVENTORY = "inventory"
    ITEM = "item"
    CONTAINER = "container"
    COMBAT = "combat"


@dataclass
class ToolDefinition:
    """Definition of a tool for AI binding.

    Attributes:
        name: Operation name used on the wire.
        description: Human-readable description for the model.
        category: Tool category.
        command: Command model the arguments decode into.
    """

    name: str
    description: str
    category: ToolCategory
    command: type[Command]

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the arguments, with local references inlined."""
        schema = self.command.model_json_schema()
        definitions = schema.pop("$defs", {})
        schema = _inline_refs(schema, definitions)
        schema.pop("title", None)
        schema.setdefault("required", [])
        return schema


_tool_registry: dict[str, ToolDefinition] = {}


def tool(*, name: str, description: str, category: ToolCategory) -> Callable[[C], C]:
    """Class decorator registering a command model as a tool.

    Args:
        name: Operation name used on the wire.
        description: Description for the model.
        category: Tool category.
    """

    def decorator(command: C) -> C:
        if name in _tool_registry:
            raise ValueError(f"Tool {name!r} is already registered")
        command.tool_name = name
        _tool_registry[name] = ToolDefinition(
            name=name,
            description=description,
            category=category,
            command=command,
        )
        return command

    return decorator


def get_tool(name: str) -> ToolDefinition | None:
    """Get a tool definition by name."""
    return _tool_registry.get(name)


def get_all_tools() -> list[ToolDefinition]:
    """Get all registered tools in registration order."""
    return list(_tool_registry.values())


def get_tools_by_category(category: ToolCategory) -> list[ToolDefinition]:
    """Get tools filtered by category."""
    return [t for t in _tool_registry.values() if t.category == category]


def get_tools_as_openai_schema() -> list[dict[str, Any]]:
    """Get all tools in OpenAI function calling schema format."""
    tools = []
    for tool_def in _tool_registry.values():
        tools.append({
            "type": "function",
            "function": {
                "name": tool_def.name,
                "description": tool_def.description,
                "parameters": tool_def.parameters,
            },
        })
    return tools


def _inline_refs(node: Any, definitions: dict[str, Any]) -> Any:
    """Replace ``{"$ref": "#/$defs/X"}`` nodes with copies of the definition."""
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            target = copy.deepcopy(definitions[ref.removeprefix("#/$defs/")])
            target.pop("title", None)
            siblings = {k: v for k, v in node.items() if k != "$ref"}
            return _inline_refs({**target, **siblings}, definitions)
        return {key: _inline_refs(value, definitions) for key, value in node.items()}
    if isinstance(node, list):
        return [_inline_refs(value, definitions) for value in node]
    return node


__all__ = [
    "ToolCall",
    "ToolCategory",
    "ToolDefinition",
    "ToolFunction",
    "ToolResult",
    "get_all_tools",
    "get_tool",
    "get_tools_as_openai_schema",
    "get_tools_by_category",
    "tool",
]
