"""Custom exception hierarchy for the Infinite Adventure engine.

Every error raised by the engine inherits from AdventureError so front ends
can catch a single type at their boundary. Tool dispatch failures carry the
name of the operation that failed; AI failures carry model and provider.

Example:
    >>> from infinite_adventure.core.exceptions import MissingFieldError
    >>> raise MissingFieldError("Missing required field", tool_name="move_to", field_name="direction")
"""

from __future__ import annotations

from typing import Any


class AdventureError(Exception):
    """Base exception for all Infinite Adventure errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(AdventureError):
    """Base exception for world mutation and combat errors."""


class ToolDispatchError(GameEngineError):
    """Raised when a tool call cannot be decoded or applied.

    A dispatch error is always scoped to one call; it never aborts the
    remaining calls of a turn.
    """

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dispatch error with the operation name.

        Args:
            message: Human-readable error description.
            tool_name: Name of the operation being dispatched.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if tool_name:
            combined_details["tool_name"] = tool_name
        super().__init__(message, details=combined_details)


class UnknownOperationError(ToolDispatchError):
    """Raised when the operation name is not in the tool catalogue."""


class MalformedArgumentsError(ToolDispatchError):
    """Raised when an argument payload fails to parse or decode."""


class MissingFieldError(MalformedArgumentsError):
    """Raised when a required argument is absent."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize missing field error.

        Args:
            message: Human-readable error description.
            tool_name: Name of the operation being dispatched.
            field_name: The absent field.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        self.field_name = field_name
        super().__init__(message, tool_name=tool_name, details=combined_details)


class InvalidEnumValueError(MalformedArgumentsError):
    """Raised when a type, state, direction or effect tag is not recognised."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize enum error with the offending field and value.

        Args:
            message: Human-readable error description.
            tool_name: Name of the operation being dispatched.
            field_name: Field holding the bad value.
            invalid_value: The value that was rejected.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        self.field_name = field_name
        self.invalid_value = invalid_value
        super().__init__(message, tool_name=tool_name, details=combined_details)


class EntityNotFoundError(ToolDispatchError):
    """Raised when an operation references a missing item, actor or location."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        entity_kind: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not-found error with entity context.

        Args:
            message: Human-readable error description.
            tool_name: Name of the operation being dispatched.
            entity_kind: Kind of entity ("item", "actor", "location").
            entity_id: Identifier that was looked up.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_kind:
            combined_details["entity_kind"] = entity_kind
        if entity_id:
            combined_details["entity_id"] = entity_id
        super().__init__(message, tool_name=tool_name, details=combined_details)


class DuplicateEntityError(ToolDispatchError):
    """Raised when creating an entity whose identifier is already taken."""


class CombatError(GameEngineError):
    """Raised when combat resolution encounters an error."""

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class CombatPreconditionError(CombatError):
    """Raised when a combat operation is not allowed in the current state.

    Covers inactive combat, acting out of turn, unknown combatants and an
    over-capacity start.
    """


class DiceRollError(GameEngineError):
    """Raised when a dice expression cannot be rolled."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# AI Control Domain Exceptions
# =============================================================================


class AIControlError(AdventureError):
    """Base exception for all generation-service errors.

    Raised when there are issues with model calls, response parsing,
    or structured output.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AI control error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            provider: Name of the AI provider or base URL.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class AIConnectionError(AIControlError):
    """Raised when connection to the generation service fails."""


class AITimeoutError(AIControlError):
    """Raised when the generation service does not answer in time."""


class AIRateLimitError(AIControlError):
    """Raised when API rate limits are exceeded."""

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, model=model, provider=provider, details=combined_details)


class AIResponseError(AIControlError):
    """Raised when a response cannot be processed."""


class IncompleteOutputError(AIResponseError):
    """Raised when structured output was truncated before it closed."""


class MalformedOutputError(AIResponseError):
    """Raised when structured output is present but cannot be decoded."""


# =============================================================================
# Configuration & Persistence Exceptions
# =============================================================================


class ConfigurationError(AdventureError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class PersistenceError(AdventureError):
    """Raised when a save file cannot be written or read."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if path:
            combined_details["path"] = path
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "AdventureError",
    # Game engine exceptions
    "GameEngineError",
    "ToolDispatchError",
    "UnknownOperationError",
    "MalformedArgumentsError",
    "MissingFieldError",
    "InvalidEnumValueError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "CombatError",
    "CombatPreconditionError",
    "DiceRollError",
    # AI control exceptions
    "AIControlError",
    "AIConnectionError",
    "AITimeoutError",
    "AIRateLimitError",
    "AIResponseError",
    "IncompleteOutputError",
    "MalformedOutputError",
    # Configuration & persistence exceptions
    "ConfigurationError",
    "PersistenceError",
]
