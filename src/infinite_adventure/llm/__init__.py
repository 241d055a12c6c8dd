"""Generation service client and structured-output parsing."""

from __future__ import annotations

from infinite_adventure.llm.client import (
    ChatReply,
    GenerationClient,
    OpenAIGenerationClient,
    ToolCall,
    ToolFunction,
    ToolResult,
)
from infinite_adventure.llm.parsing import (
    extract_json_object,
    is_complete_json,
    parse_json_object,
    parse_location_json,
    strip_markdown_fences,
)


__all__ = [
    "ChatReply",
    "GenerationClient",
    "OpenAIGenerationClient",
    "ToolCall",
    "ToolFunction",
    "ToolResult",
    "extract_json_object",
    "is_complete_json",
    "parse_json_object",
    "parse_location_json",
    "strip_markdown_fences",
]
