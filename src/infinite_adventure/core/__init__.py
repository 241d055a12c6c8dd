"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        AdventureError: Base exception for all engine errors.
        ToolDispatchError: Per-call dispatch failures and their subclasses.
        AIControlError: Generation-service failures and their subclasses.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        DebugLog: Bounded per-orchestrator debug buffer.
"""

from __future__ import annotations

from infinite_adventure.core.config import (
    GameSettings,
    GenerationSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from infinite_adventure.core.exceptions import (
    AdventureError,
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
    AITimeoutError,
    CombatError,
    CombatPreconditionError,
    ConfigurationError,
    DiceRollError,
    DuplicateEntityError,
    EntityNotFoundError,
    GameEngineError,
    IncompleteOutputError,
    InvalidEnumValueError,
    MalformedArgumentsError,
    MalformedOutputError,
    MissingFieldError,
    PersistenceError,
    ToolDispatchError,
    UnknownOperationError,
)
from infinite_adventure.core.logging import (
    DebugLog,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Config
    "GameSettings",
    "GenerationSettings",
    "Settings",
    "StorageSettings",
    "clear_settings_cache",
    "get_settings",
    # Exceptions
    "AdventureError",
    "AIConnectionError",
    "AIControlError",
    "AIRateLimitError",
    "AIResponseError",
    "AITimeoutError",
    "CombatError",
    "CombatPreconditionError",
    "ConfigurationError",
    "DiceRollError",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "GameEngineError",
    "IncompleteOutputError",
    "InvalidEnumValueError",
    "MalformedArgumentsError",
    "MalformedOutputError",
    "MissingFieldError",
    "PersistenceError",
    "ToolDispatchError",
    "UnknownOperationError",
    # Logging
    "DebugLog",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
