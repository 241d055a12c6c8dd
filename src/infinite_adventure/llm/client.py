"""Generation service contract and its OpenAI-compatible implementation.

The engine talks to the generation service only through the
GenerationClient protocol: a chat completion that may return narrative
text, tool calls, or both, and a structured "generate a location" mode.
OpenAIGenerationClient implements it over ``openai.AsyncOpenAI``, which
also speaks to local OpenAI-compatible servers such as Ollama or llama.cpp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from infinite_adventure.core.config import GenerationSettings, get_settings
from infinite_adventure.core.exceptions import (
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
    AITimeoutError,
)
from infinite_adventure.core.logging import get_logger
from infinite_adventure.llm.parsing import parse_location_json


if TYPE_CHECKING:
    from infinite_adventure.models.world import Location


logger = get_logger(__name__)


# =============================================================================
# Tool-Call Protocol
# =============================================================================


@dataclass
class ToolFunction:
    """Function descriptor of a tool call; arguments are JSON text."""

    name: str
    arguments: str = "{}"


@dataclass
class ToolCall:
    """A single tool call proposed by the generation service.

    Attributes:
        id: Call identifier echoed back in the result.
        function: Operation name and argument payload.
        type: Fixed type marker, always "function".
    """

    id: str
    function: ToolFunction
    type: str = "function"

    @property
    def name(self) -> str:
        return self.function.name

    def to_message(self) -> dict[str, Any]:
        """Render as an entry of an assistant message's ``tool_calls``."""
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }


@dataclass
class ToolResult:
    """Result of applying a tool call.

    Attributes:
        tool_call_id: Identifier of the originating call.
        content: Acknowledgment or error text.
        success: Whether the operation was applied.
        tool_name: Operation that was requested.
        metadata: Extra context such as the error type.
    """

    tool_call_id: str
    content: str
    success: bool = True
    tool_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        """Render as a ``tool`` role message for the follow-up request."""
        return {"role": "tool", "tool_call_id": self.tool_call_id, "content": self.content}


@dataclass
class ChatReply:
    """One completion from the generation service.

    Attributes:
        content: Narrative text, if any.
        tool_calls: Tool calls in the order the service listed them.
        finish_reason: Why generation stopped, when reported.
    """

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None

    @property
    def text(self) -> str:
        return (self.content or "").strip()


class GenerationClient(Protocol):
    """What the engine needs from a generation service."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply: ...

    async def generate_location(self, system_prompt: str, prompt: str) -> Location: ...


# =============================================================================
# OpenAI-compatible implementation
# =============================================================================


class OpenAIGenerationClient:
    """GenerationClient over the OpenAI chat completions API.

    Transport failures are mapped onto the AIControlError family so callers
    can retry or fall back without knowing about openai's exception types.

    Example:
        >>> client = OpenAIGenerationClient()
        >>> reply = await client.complete([{"role": "user", "content": "look"}])
    """

    def __init__(
        self,
        settings: GenerationSettings | None = None,
        *,
        client: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Generation settings; defaults to the application settings.
            client: Pre-built AsyncOpenAI-compatible client, mainly for tests.
        """
        self.settings = settings or get_settings().generation
        self._client = client

    @property
    def model(self) -> str:
        return self.settings.model

    def _get_client(self) -> Any:
        """Get or create the AsyncOpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as exc:
                raise AIControlError(
                    "openai package not installed",
                    provider=self.settings.base_url,
                ) from exc

            api_key = self.settings.api_key
            self._client = AsyncOpenAI(
                # Local servers ignore the key but the SDK requires one
                api_key=api_key.get_secret_value() if api_key else "not-needed",
                base_url=self.settings.base_url,
                timeout=self.settings.request_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply:
        """Request one chat completion.

        Raises:
            AITimeoutError: If the request timed out.
            AIRateLimitError: If the service is rate limiting.
            AIConnectionError: If the service cannot be reached.
            AIResponseError: On an error status or an empty response.
        """
        from openai import APIConnectionError, APIStatusError, APITimeoutError, RateLimitError

        client = self._get_client()
        request: dict[str, Any] = {
            "model": self.settings.model,
            "messages": messages,
            "temperature": self.settings.temperature,
            "max_tokens": max_tokens or self.settings.max_tokens,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        logger.debug(
            "Requesting completion",
            model=self.settings.model,
            messages=len(messages),
            tools=len(tools or []),
        )

        try:
            response = await client.chat.completions.create(**request)
        except APITimeoutError as exc:
            raise AITimeoutError(
                "Generation request timed out",
                model=self.settings.model,
                provider=self.settings.base_url,
            ) from exc
        except RateLimitError as exc:
            raise AIRateLimitError(
                f"Rate limit exceeded: {exc}",
                model=self.settings.model,
                provider=self.settings.base_url,
            ) from exc
        except APIConnectionError as exc:
            raise AIConnectionError(
                f"Failed to connect to generation service: {exc}",
                model=self.settings.model,
                provider=self.settings.base_url,
            ) from exc
        except APIStatusError as exc:
            raise AIResponseError(
                f"Generation API error: {exc}",
                model=self.settings.model,
                provider=self.settings.base_url,
                details={"status_code": exc.status_code},
            ) from exc

        if not response.choices:
            raise AIResponseError(
                "Generation response contained no choices",
                model=self.settings.model,
                provider=self.settings.base_url,
            )

        choice = response.choices[0]
        message = choice.message
        tool_calls = [
            ToolCall(
                id=tc.id,
                function=ToolFunction(name=tc.function.name, arguments=tc.function.arguments or "{}"),
            )
            for tc in message.tool_calls or []
        ]

        logger.info(
            "Completion received",
            model=self.settings.model,
            tool_calls=len(tool_calls),
            has_content=bool(message.content),
            finish_reason=choice.finish_reason,
        )
        return ChatReply(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason,
        )

    async def generate_location(self, system_prompt: str, prompt: str) -> Location:
        """Generate one structured Location.

        Raises:
            AIControlError: On transport failure, empty output, or output that is
                truncated or cannot be decoded.
        """
        reply = await self.complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
        )
        if not reply.text:
            raise AIResponseError(
                "Location response was empty",
                model=self.settings.model,
                provider=self.settings.base_url,
            )
        return parse_location_json(reply.text)


__all__ = [
    "ChatReply",
    "GenerationClient",
    "OpenAIGenerationClient",
    "ToolCall",
    "ToolFunction",
    "ToolResult",
]
