"""
Live configuration and change notification.
"""

import logging
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from rebrand_tool.core.exceptions import ConfigurationError
from rebrand_tool.models.config import AppConfig

_MISSING = object()


class ConfigChannel:
    """
    In-process publish/subscribe channel for configuration changes.

    Subscribers must provide ``on_config_changed(section)``. A subscriber
    that raises is logged and the remaining subscribers are still notified.
    """

    def __init__(self):
        self._subscribers: List[Any] = []
        self.logger = logging.getLogger(f"rebrand_tool.config.{self.__class__.__name__}")

    def subscribe(self, handler: Any) -> None:
        if not callable(getattr(handler, "on_config_changed", None)):
            raise ConfigurationError(
                f"{type(handler).__name__} cannot subscribe to configuration changes: "
                f"missing on_config_changed(section)"
            )
        if handler not in self._subscribers:
            self._subscribers.append(handler)

    def unsubscribe(self, handler: Any) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def publish(self, section: str) -> None:
        for handler in list(self._subscribers):
            try:
                handler.on_config_changed(section)
            except Exception as e:
                self.logger.error(
                    f"Configuration subscriber {type(handler).__name__} failed on '{section}': {e}"
                )

    def __len__(self) -> int:
        return len(self._subscribers)


class ConfigurationService:
    """Owns the live ``AppConfig`` and persists changes through a store."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store=None,
        channel: Optional[ConfigChannel] = None
    ):
        self.store = store
        if config is None:
            config = store.load() if store is not None else AppConfig()
        self._config = config
        self.channel = channel or ConfigChannel()
        self.logger = logging.getLogger(f"rebrand_tool.config.{self.__class__.__name__}")

    @property
    def config(self) -> AppConfig:
        return self._config

    def snapshot(self) -> AppConfig:
        """Deep copy of the current configuration."""
        return self._config.model_copy(deep=True)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``dns.root_domain``.

        Returns ``default`` when any segment is missing.
        """
        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part, _MISSING)
            else:
                value = getattr(value, part, _MISSING)
            if value is _MISSING:
                return default
        return value

    def set(self, key: str, value: Any) -> AppConfig:
        """
        Change one setting, validate, persist and notify subscribers.

        Args:
            key: ``section.field`` or a bare section name with a mapping value
            value: New value; coerced by the configuration models

        Returns:
            The new configuration

        Raises:
            ConfigurationError: If the key is unknown or the value is invalid
        """
        parts = key.split(".")
        section = parts[0]
        data = self._config.model_dump()
        if section not in data:
            raise ConfigurationError(f"Unknown configuration section: {section}")

        if len(parts) == 1:
            if not isinstance(value, dict):
                raise ConfigurationError(f"Section '{section}' must be set to a mapping")
            data[section] = value
        else:
            target = data[section]
            for part in parts[1:-1]:
                if not isinstance(target.get(part), dict):
                    raise ConfigurationError(f"Unknown configuration key: {key}")
                target = target[part]
            if parts[-1] not in target:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            target[parts[-1]] = value

        try:
            updated = AppConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid value for {key}: {e}",
                details={'errors': e.errors(include_url=False)}
            )

        self._config = updated
        if self.store is not None:
            self.store.save(updated)
        self.logger.info(f"Configuration updated: {key}")
        self.channel.publish(section)
        return updated

    def subscribe(self, handler: Any) -> None:
        self.channel.subscribe(handler)
