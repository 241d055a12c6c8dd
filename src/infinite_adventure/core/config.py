"""Configuration management for the Infinite Adventure engine.

Settings are loaded with pydantic-settings from environment variables and an
optional .env file. The API key is held as a SecretStr.

Example:
    >>> from infinite_adventure.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.turn_timeout_seconds
    60.0

Environment Variables:
    INFINITE_ADVENTURE_API_KEY: Key for the OpenAI-compatible endpoint
    INFINITE_ADVENTURE_BASE_URL: Base URL of the generation service
    INFINITE_ADVENTURE_MODEL: Model identifier
    INFINITE_ADVENTURE_GAME_TURN_TIMEOUT_SECONDS: Wall-clock budget per turn
    INFINITE_ADVENTURE_STORAGE_SAVE_DIR: Directory for save files
    INFINITE_ADVENTURE_LOG_LEVEL: Logging level
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from infinite_adventure.core.exceptions import ConfigurationError


class GenerationSettings(BaseSettings):
    """Configuration for the generation service connection.

    Attributes:
        api_key: API key; local servers usually accept any value.
        base_url: OpenAI-compatible endpoint.
        model: Model identifier sent with every request.
        temperature: Sampling temperature for turn requests.
        max_tokens: Token cap for the primary turn request.
        narration_max_tokens: Token cap for the follow-up narration request.
        request_timeout_seconds: Transport timeout per request.
        location_timeout_seconds: Budget for one location generation.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFINITE_ADVENTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="API key for the generation service",
    )
    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="OpenAI-compatible base URL",
    )
    model: str = Field(
        default="llama3.1",
        description="Model identifier",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=4096,
        gt=0,
        description="Token cap for turn requests",
    )
    narration_max_tokens: int = Field(
        default=1000,
        gt=0,
        description="Token cap for follow-up narration",
    )
    request_timeout_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Transport timeout per request",
    )
    location_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Budget for one location generation",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Reject base URLs without an http(s) scheme.

        Raises:
            ConfigurationError: If the URL has no http or https scheme.
        """
        if not value.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"base_url must start with http:// or https://, got {value!r}",
                config_key="base_url",
            )
        return value.rstrip("/")


class GameSettings(BaseSettings):
    """Configuration for turn processing and world limits.

    Attributes:
        turn_timeout_seconds: Wall-clock budget wrapping a whole turn.
        max_turn_attempts: Attempts for the primary turn request.
        retry_backoff_seconds: Initial backoff between attempts.
        retry_backoff_max_seconds: Upper bound on a single backoff.
        debug_log_capacity: Entries kept by the orchestrator's debug log.
        max_combatants: Combatant cap including the player.
        max_items: Item capacity reported for new worlds.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFINITE_ADVENTURE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    turn_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Wall-clock budget per turn",
    )
    max_turn_attempts: int = Field(
        default=5,
        ge=1,
        le=10,
        description="Attempts for the primary turn request",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Initial retry backoff",
    )
    retry_backoff_max_seconds: float = Field(
        default=8.0,
        ge=0,
        description="Maximum retry backoff",
    )
    debug_log_capacity: int = Field(
        default=100,
        ge=1,
        description="Entries kept in the debug log",
    )
    max_combatants: int = Field(
        default=4,
        ge=2,
        description="Combatant cap including the player",
    )
    max_items: int = Field(
        default=20,
        ge=1,
        description="Item capacity for new worlds",
    )

    @model_validator(mode="after")
    def validate_backoff(self) -> "GameSettings":
        """Ensure the backoff ceiling is not below the initial backoff.

        Raises:
            ConfigurationError: If retry_backoff_max_seconds < retry_backoff_seconds.
        """
        if self.retry_backoff_max_seconds < self.retry_backoff_seconds:
            raise ConfigurationError(
                f"retry_backoff_max_seconds ({self.retry_backoff_max_seconds}) must be at least "
                f"retry_backoff_seconds ({self.retry_backoff_seconds})",
                config_key="retry_backoff_max_seconds",
            )
        return self


class StorageSettings(BaseSettings):
    """Configuration for save files.

    Attributes:
        save_dir: Directory holding world save documents.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFINITE_ADVENTURE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    save_dir: Path = Field(
        default=Path("saves"),
        description="Directory for save files",
    )

    @field_validator("save_dir", mode="after")
    @classmethod
    def ensure_directory_exists(cls, value: Path) -> Path:
        """Create the save directory if necessary."""
        value.mkdir(parents=True, exist_ok=True)
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        debug: Enable debug mode.
        log_level: Application logging level.
        generation: Generation service settings.
        game: Turn and world settings.
        storage: Save file settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFINITE_ADVENTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Infinite Adventure",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    game: GameSettings = Field(default_factory=GameSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()
