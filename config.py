"""
Configuration Management System for Rulecraft
Handles environment-based configuration of the rule builder and its logging.
"""
import os
import json
from typing import Optional, Dict, Any
from pathlib import Path
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file
load_dotenv()

from exceptions import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    rich_tracebacks: bool = True
    show_path: bool = False


@dataclass
class BuilderConfig:
    """Rule builder behaviour settings."""
    enforce_interaction_gates: bool = True
    reveal_on_create: bool = True
    min_siblings_for_reorder: int = 2


@dataclass
class RulecraftConfig:
    """Complete configuration for Rulecraft."""
    environment: str = "development"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    builder: BuilderConfig = field(default_factory=BuilderConfig)

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.logging.level}",
                component="ConfigManager",
                context={"valid_levels": list(VALID_LOG_LEVELS)}
            )

        if self.builder.min_siblings_for_reorder < 2:
            raise ConfigurationError(
                f"min_siblings_for_reorder must be at least 2, got {self.builder.min_siblings_for_reorder}",
                component="ConfigManager"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "environment": self.environment,
            "logging": {
                "level": self.logging.level,
                "rich_tracebacks": self.logging.rich_tracebacks,
                "show_path": self.logging.show_path
            },
            "builder": {
                "enforce_interaction_gates": self.builder.enforce_interaction_gates,
                "reveal_on_create": self.builder.reveal_on_create,
                "min_siblings_for_reorder": self.builder.min_siblings_for_reorder
            }
        }


class ConfigManager:
    """
    Manages configuration loading from environment variables and files.
    Implements fail-fast principle for invalid configurations.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to JSON config file
        """
        self.config_path = config_path
        self._config: Optional[RulecraftConfig] = None

    def load(self) -> RulecraftConfig:
        """
        Load configuration from environment and optional file.
        Priority: Environment Variables > Config File > Defaults

        Returns:
            RulecraftConfig: Validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config = RulecraftConfig()

        if self.config_path:
            config = self._load_from_file(self.config_path)

        config = self._load_from_environment(config)
        config.validate()

        self._config = config
        return config

    def _load_from_file(self, file_path: str) -> RulecraftConfig:
        """
        Load configuration from JSON file.

        Args:
            file_path: Path to configuration file

        Returns:
            RulecraftConfig: Configuration object

        Raises:
            ConfigurationError: If file cannot be loaded
        """
        path = Path(file_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                component="ConfigManager"
            )

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file: {e}",
                component="ConfigManager"
            )

        config = RulecraftConfig()
        config.environment = data.get('environment', config.environment)

        if 'logging' in data:
            log_data = data['logging']
            config.logging.level = str(log_data.get('level', config.logging.level)).upper()
            config.logging.rich_tracebacks = self._to_bool(
                log_data.get('rich_tracebacks', config.logging.rich_tracebacks)
            )
            config.logging.show_path = self._to_bool(log_data.get('show_path', config.logging.show_path))

        if 'builder' in data:
            builder_data = data['builder']
            config.builder.enforce_interaction_gates = self._to_bool(
                builder_data.get('enforce_interaction_gates', config.builder.enforce_interaction_gates)
            )
            config.builder.reveal_on_create = self._to_bool(
                builder_data.get('reveal_on_create', config.builder.reveal_on_create)
            )
            config.builder.min_siblings_for_reorder = self._to_int(
                builder_data.get('min_siblings_for_reorder', config.builder.min_siblings_for_reorder),
                'min_siblings_for_reorder'
            )

        return config

    def _load_from_environment(self, config: RulecraftConfig) -> RulecraftConfig:
        """
        Override configuration with environment variables.

        Args:
            config: Base configuration to override

        Returns:
            RulecraftConfig: Configuration with environment overrides
        """
        config.environment = os.getenv('RULECRAFT_ENVIRONMENT', config.environment)

        # Support alias LOG_LEVEL
        log_level = os.getenv('RULECRAFT_LOG_LEVEL') or os.getenv('LOG_LEVEL')
        if log_level:
            config.logging.level = log_level.upper()

        enforce_gates = os.getenv('RULECRAFT_ENFORCE_GATES')
        if enforce_gates:
            config.builder.enforce_interaction_gates = enforce_gates.lower() in TRUE_VALUES

        reveal = os.getenv('RULECRAFT_REVEAL_ON_CREATE')
        if reveal:
            config.builder.reveal_on_create = reveal.lower() in TRUE_VALUES

        min_siblings = os.getenv('RULECRAFT_MIN_REORDER_SIBLINGS')
        if min_siblings:
            config.builder.min_siblings_for_reorder = self._to_int(min_siblings, 'RULECRAFT_MIN_REORDER_SIBLINGS')

        return config

    @staticmethod
    def _to_bool(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in TRUE_VALUES
        return bool(value)

    @staticmethod
    def _to_int(value: Any, name: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Invalid integer for {name}: {value}",
                component="ConfigManager"
            )

    @property
    def config(self) -> RulecraftConfig:
        """
        Get current configuration.

        Returns:
            RulecraftConfig: Current configuration

        Raises:
            ConfigurationError: If configuration not loaded
        """
        if self._config is None:
            raise ConfigurationError(
                "Configuration not loaded. Call load() first.",
                component="ConfigManager"
            )
        return self._config


# Singleton instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[str] = None) -> ConfigManager:
    """
    Get singleton ConfigManager instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        ConfigManager: Singleton instance
    """
    global _config_manager
    if _config_manager is None or (config_path and config_path != _config_manager.config_path):
        _config_manager = ConfigManager(config_path)
    return _config_manager


def load_config(config_path: Optional[str] = None) -> RulecraftConfig:
    """
    Load and validate configuration.

    Args:
        config_path: Optional path to configuration file

    Returns:
        RulecraftConfig: Validated configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    manager = get_config_manager(config_path)
    return manager.load()
