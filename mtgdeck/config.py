"""Configuration management for mtgdeck."""

import json
import logging
import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, asdict


DEFAULT_CONFIG_DIR = Path.home() / ".mtgdeck"


@dataclass
class DeckToolConfig:
    """Configuration settings for the deck builder."""

    # Card database
    cards_dir: str = str(DEFAULT_CONFIG_DIR / "cards")
    card_db_url: str = "https://mtgjson.com/api/v5/AtomicCards.json"

    # Download settings
    download_timeout_seconds: int = 60
    download_retry_attempts: int = 3

    # Deck files
    default_deck_path: str = str(Path.home() / "deck.json")

    # Output preferences
    verbose_output: bool = False


class ConfigManager:
    """Manages application configuration with file persistence."""

    DEFAULT_CONFIG_FILE = "config.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Custom configuration directory (defaults to ~/.mtgdeck)
        """
        self.logger = logging.getLogger(__name__)
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / self.DEFAULT_CONFIG_FILE
        self._config = DeckToolConfig()

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.load_config()

    def load_config(self) -> DeckToolConfig:
        """
        Load configuration from file, creating it with defaults when missing.

        Returns:
            Loaded configuration object
        """
        if not self.config_file.exists():
            self.save_config()
            return self._config

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            for key, value in config_data.items():
                if hasattr(self._config, key):
                    setattr(self._config, key, value)

        except (ValueError, OSError, AttributeError) as e:
            # Corrupted config: keep a backup and start over from defaults
            self.logger.warning(f"Could not read {self.config_file}: {e}; using defaults")
            backup_file = self.config_file.with_suffix('.json.backup')
            self.config_file.replace(backup_file)
            self._config = DeckToolConfig()
            self.save_config()

        return self._config

    def save_config(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._config), f, indent=2, sort_keys=True)
        except OSError as e:
            raise RuntimeError(f"Failed to save configuration: {e}")

    def get_config(self) -> DeckToolConfig:
        """Get current configuration."""
        return self._config

    def get_logs_dir(self) -> Path:
        """Get logs directory path."""
        logs_dir = self.config_dir / "logs"
        logs_dir.mkdir(exist_ok=True)
        return logs_dir


def get_default_config() -> DeckToolConfig:
    """Get default configuration without file persistence."""
    return DeckToolConfig()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def apply_env_overrides(config: DeckToolConfig) -> DeckToolConfig:
    """
    Apply environment variable overrides to configuration.

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    env_mappings = {
        'MTGDECK_CARDS_DIR': ('cards_dir', str),
        'MTGDECK_DECK_PATH': ('default_deck_path', str),
        'MTGDECK_CARD_DB_URL': ('card_db_url', str),
        'MTGDECK_TIMEOUT': ('download_timeout_seconds', int),
        'MTGDECK_RETRY_ATTEMPTS': ('download_retry_attempts', int),
        'MTGDECK_VERBOSE': ('verbose_output', _parse_bool),
    }

    for env_var, (attr_name, converter) in env_mappings.items():
        env_value = os.getenv(env_var)
        if env_value is not None:
            try:
                setattr(config, attr_name, converter(env_value))
            except (ValueError, TypeError):
                # Ignore invalid environment values
                pass

    return config
