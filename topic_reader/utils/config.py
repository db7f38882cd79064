"""Configuration loading and management."""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from topic_reader.errors import ConfigurationError
from topic_reader.models.config import (
    AppConfig,
    BackendConfig,
    DiscordConfig,
    OpenAIConfig,
    StorageConfig,
)

logger = logging.getLogger(__name__)

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "DISCORD_BOT_TOKEN": ("discord", "bot_token"),
    "DISCORD_API_BASE": ("discord", "api_base"),
    "OPENAI_API_KEY": ("openai", "api_key"),
    "OPENAI_MODEL": ("openai", "model"),
    "OPENAI_TEMPERATURE": ("openai", "temperature"),
    "DATABASE_URL": ("storage", "database_url"),
    "BACKEND_API_URL": ("backend", "api_url"),
}


def load_env_config(env_path: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_path: Optional path to .env file. If None, searches in default locations.
    """
    if env_path and not os.path.exists(env_path):
        logger.warning(f"Specified .env file not found at {env_path}")
        return

    load_dotenv(env_path)
    logger.debug("Loaded environment variables")


def load_settings_file(config_path: str) -> Dict[str, Any]:
    """Load non-secret settings from a YAML file.

    Args:
        config_path: Path to the YAML settings file.

    Returns:
        Mapping of section name to settings.

    Raises:
        ConfigurationError: If the file is missing or not a mapping.
    """
    if not os.path.exists(config_path):
        raise ConfigurationError(
            f"❌ Settings file not found at {config_path}.\n"
            "Please check the --config option or the TOPIC_READER_CONFIG variable."
        )

    with open(config_path, 'r') as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"❌ Invalid YAML in {config_path}:\n{e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"❌ Settings file {config_path} must contain a mapping")

    logger.info(f"Loaded settings from {config_path}")
    return data


def load_app_config(
    env_path: Optional[str] = None,
    config_path: Optional[str] = None
) -> AppConfig:
    """Load complete application configuration.

    Settings are layered: defaults, then the YAML file, then environment
    variables.

    Args:
        env_path: Optional path to .env file.
        config_path: Optional path to a YAML settings file.

    Returns:
        Complete application configuration.
    """
    load_env_config(env_path)

    config_path = config_path or os.getenv("TOPIC_READER_CONFIG")
    settings: Dict[str, Any] = load_settings_file(config_path) if config_path else {}

    sections: Dict[str, Dict[str, Any]] = {
        name: dict(settings.get(name) or {})
        for name in ("discord", "openai", "storage", "backend")
    }
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            sections[section][field] = value

    try:
        config = AppConfig(
            discord=DiscordConfig(**sections["discord"]),
            openai=OpenAIConfig(**sections["openai"]),
            storage=StorageConfig(**sections["storage"]),
            backend=BackendConfig(**sections["backend"]),
            log_level=os.getenv("LOG_LEVEL", settings.get("log_level", "INFO")),
            **({"allowed_hosts": settings["allowed_hosts"]} if settings.get("allowed_hosts") else {}),
        )
    except ValidationError as e:
        raise ConfigurationError(f"❌ Invalid configuration:\n{e}") from e

    logger.debug("Loaded complete application configuration")
    return config
