"""
Configuration persistence for the Rebrand Tool.

The configuration is stored as YAML (default) or TOML. Environment
variables with the legacy ``CLOUDFLARE_*`` and ``SSH_*`` names override
file values when loading.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import toml
import yaml
from pydantic import ValidationError as PydanticValidationError

from rebrand_tool.core.exceptions import ConfigurationError
from rebrand_tool.models.config import AppConfig

DEFAULT_CONFIG_DIR = Path.home() / ".rebrand-tool"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# environment variable -> (section, field)
ENV_OVERRIDES: Dict[str, tuple] = {
    'CLOUDFLARE_API_TOKEN': ('dns', 'api_token'),
    'CLOUDFLARE_EMAIL': ('dns', 'email'),
    'CLOUDFLARE_API_KEY': ('dns', 'api_key'),
    'CLOUDFLARE_ZONE_ID': ('dns', 'zone_id'),
    'CLOUDFLARE_ROOT_DOMAIN': ('dns', 'root_domain'),
    'CLOUDFLARE_IPV4_ADDRESS': ('dns', 'ipv4_address'),
    'CLOUDFLARE_IPV6_ADDRESS': ('dns', 'ipv6_address'),
    'CLOUDFLARE_DEFAULT_TTL': ('dns', 'default_ttl'),
    'SSH_HOST': ('connection', 'host'),
    'SSH_USERNAME': ('connection', 'username'),
    'SSH_PASSWORD': ('connection', 'password'),
    'SSH_PORT': ('connection', 'port'),
}


def _format_for(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in ('.yaml', '.yml'):
        return 'yaml'
    if suffix == '.toml':
        return 'toml'
    raise ConfigurationError(f"Unsupported configuration file format: {path.suffix}")


class ConfigurationStore:
    """Loads and saves ``AppConfig`` to a single file."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize the store.

        Args:
            path: Configuration file. Defaults to ~/.rebrand-tool/config.yaml
            environ: Environment used for overrides (default: ``os.environ``)
        """
        self.path = Path(path).expanduser() if path else DEFAULT_CONFIG_FILE
        self.format = _format_for(self.path)
        self.environ = os.environ if environ is None else environ
        self.logger = logging.getLogger(f"rebrand_tool.config.{self.__class__.__name__}")

    def read_raw(self) -> Dict[str, Any]:
        """
        Read the file as a dictionary; a missing or empty file yields ``{}``.

        Raises:
            ConfigurationError: If the file cannot be parsed
        """
        if not self.path.exists():
            self.logger.debug(f"No configuration file at {self.path}, using defaults")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                if self.format == 'yaml':
                    data = yaml.safe_load(f)
                else:
                    data = toml.load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.path}: {e}")
        except toml.TomlDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {self.path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Cannot read {self.path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {self.path} must be a mapping")
        return data

    def apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``data`` with environment overrides applied."""
        merged = {section: dict(values) for section, values in data.items() if isinstance(values, dict)}
        for variable, (section, field_name) in ENV_OVERRIDES.items():
            value = self.environ.get(variable)
            if value:
                merged.setdefault(section, {})[field_name] = value
                self.logger.debug(f"{section}.{field_name} overridden by {variable}")
        return merged

    def load(self) -> AppConfig:
        """
        Load the configuration.

        Unknown top-level sections are ignored.

        Raises:
            ConfigurationError: If the file is unreadable or fails validation
        """
        data = self.apply_env_overrides(self.read_raw())
        known = {name: data[name] for name in AppConfig.model_fields if name in data}
        ignored = sorted(set(data) - set(known))
        if ignored:
            self.logger.warning(f"Ignoring unknown configuration sections: {', '.join(ignored)}")

        try:
            return AppConfig.model_validate(known)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {self.path}: {e}",
                details={'errors': e.errors(include_url=False)}
            )

    def save(self, config: AppConfig) -> Path:
        """
        Write the configuration file, creating its directory if needed.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        data = config.model_dump(mode="json")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                if self.format == 'yaml':
                    yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
                else:
                    toml.dump(data, f)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration to {self.path}: {e}")

        self.logger.debug(f"Configuration saved to {self.path}")
        return self.path
