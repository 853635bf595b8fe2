"""
Persisted validation configuration.

ValidationConfig holds the per-user settings that control greeting detection
and matching. ConfigurationManager reads and writes it through the host's
roaming settings store (get/set/save_async). Invalid persisted data is never
fatal: it is reported as a ConfigurationError and replaced by the defaults.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import logfire
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from pipeline.core.exceptions import ConfigurationError
from pipeline.integration.adapter import SaveResult, SettingsStore
from pipeline.models.core import SupportedLanguage

CONFIG_STORAGE_KEY = "validationConfig"


class ValidationConfig(BaseModel):
    """
    Validation behaviour settings.

    Stored under camelCase keys (minimumConfidenceThreshold, enableFuzzyMatching, ...)
    so the persisted format stays readable by the host add-in.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    minimum_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    enable_fuzzy_matching: bool = Field(default=True)
    fuzzy_similarity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    exclude_generic_emails: bool = Field(default=True)
    language: SupportedLanguage = Field(default=SupportedLanguage.AUTO)

    # Orchestration timing (seconds)
    debounce_delay: float = Field(default=0.3, ge=0.0, le=10.0)
    cache_ttl: float = Field(default=30.0, gt=0.0)
    host_call_timeout: Optional[float] = Field(default=10.0, gt=0.0)

    # Retry / circuit breaker
    max_retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0.0)
    retry_max_delay: float = Field(default=10.0, ge=0.0)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_cooldown: float = Field(default=30.0, ge=0.0)

    def to_storage(self) -> str:
        """Serialize for the settings store (JSON, camelCase keys)."""
        return self.model_dump_json(by_alias=True)


def parse_stored_config(raw: Any) -> ValidationConfig:
    """
    Build a ValidationConfig from whatever the settings store returned.

    Accepts a JSON string or a mapping; missing keys take their defaults.

    Raises:
        ConfigurationError: If the payload is malformed or out of range
    """
    if raw is None or raw == "":
        return ValidationConfig()

    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            "Stored validation config is not valid JSON",
            original_error=e,
            context={"key": CONFIG_STORAGE_KEY},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Stored validation config must be an object",
            context={"key": CONFIG_STORAGE_KEY, "type": type(data).__name__},
        )

    try:
        return ValidationConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Stored validation config failed validation",
            original_error=e,
            context={"key": CONFIG_STORAGE_KEY, "error_count": e.error_count()},
        ) from e


class ConfigurationManager:
    """
    Loads, updates and persists ValidationConfig through a SettingsStore.

    Without a store the manager works purely in memory (defaults only).
    """

    def __init__(self, store: Optional[SettingsStore] = None):
        self.store = store
        self._config = ValidationConfig()
        self._loaded = False
        self.last_error: Optional[ConfigurationError] = None

    @property
    def config(self) -> ValidationConfig:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> ValidationConfig:
        """
        Read the persisted config, falling back to defaults on bad data.

        Returns:
            The active ValidationConfig
        """
        if self.store is None:
            self._loaded = True
            return self._config

        try:
            raw = self.store.get(CONFIG_STORAGE_KEY)
            self._config = parse_stored_config(raw)
            self.last_error = None
            logfire.info(
                "Validation config loaded",
                language=self._config.language.value,
                minimum_confidence_threshold=self._config.minimum_confidence_threshold,
            )
        except ConfigurationError as e:
            self.last_error = e
            self._config = ValidationConfig()
            logfire.warning(
                "Invalid validation config, using defaults",
                error=str(e),
                error_kind=e.kind.value,
            )

        self._loaded = True
        return self._config

    async def update(self, **changes: Any) -> ValidationConfig:
        """
        Merge changes into the current config and persist it.

        Keys are field names (snake_case).

        Raises:
            ConfigurationError: If a key is unknown or the merged config is invalid
        """
        unknown = sorted(set(changes) - set(ValidationConfig.model_fields))
        if unknown:
            raise ConfigurationError(
                "Unknown validation config keys",
                context={"keys": unknown},
            )

        merged: Dict[str, Any] = self._config.model_dump()
        merged.update(changes)
        try:
            updated = ValidationConfig.model_validate(merged)
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid validation config update",
                original_error=e,
                context={"keys": sorted(changes)},
            ) from e

        self._config = updated
        await self.save()
        return updated

    async def reset(self) -> ValidationConfig:
        """Restore defaults and persist them."""
        self._config = ValidationConfig()
        self.last_error = None
        await self.save()
        return self._config

    async def save(self) -> None:
        """
        Persist the current config via set() + save_async().

        Raises:
            ConfigurationError: If the store reports a failed save
        """
        if self.store is None:
            return

        self.store.set(CONFIG_STORAGE_KEY, self._config.to_storage())

        loop = asyncio.get_running_loop()
        future: "asyncio.Future[SaveResult]" = loop.create_future()

        def _on_saved(result: SaveResult) -> None:
            # Stores may invoke the callback from another thread
            loop.call_soon_threadsafe(_resolve, result)

        def _resolve(result: SaveResult) -> None:
            if not future.done():
                future.set_result(result)

        self.store.save_async(_on_saved)
        result = await future

        if not result.succeeded:
            raise ConfigurationError(
                "Failed to save validation config",
                context={"key": CONFIG_STORAGE_KEY, "store_error": result.error_message},
            )

        logfire.info("Validation config saved", key=CONFIG_STORAGE_KEY)
