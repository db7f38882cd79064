"""Configuration models for the application."""
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

# Project root (2 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent.absolute()

DEFAULT_DB_URL = f"sqlite:///{PROJECT_ROOT / 'topic_reader.db'}"


class DiscordConfig(BaseModel):
    """Discord API configuration settings."""
    bot_token: str = Field(default="", description="Discord bot token")
    api_base: str = Field(
        default="https://discord.com/api/v10",
        description="Base URL of the Discord REST API"
    )
    max_retries: int = Field(default=3, description="Retries for rate-limited calls")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")


class OpenAIConfig(BaseModel):
    """OpenAI configuration settings."""
    api_key: str = Field(default="", description="OpenAI API key")
    model: str = Field(default="gpt-4o", description="Chat model used for summaries")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    timeout: float = Field(default=120.0, description="Request timeout in seconds")


class StorageConfig(BaseModel):
    """Local storage configuration settings."""
    database_url: str = Field(default=DEFAULT_DB_URL, description="SQLAlchemy database URL")


class BackendConfig(BaseModel):
    """Remote summary API configuration settings."""
    api_url: Optional[str] = Field(
        default=None,
        description="Base URL of the summary API, e.g. http://localhost:3000/api"
    )
    timeout: float = Field(default=15.0, description="Request timeout in seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)


class AppConfig(BaseModel):
    """Main application configuration."""
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    allowed_hosts: List[str] = Field(
        default_factory=lambda: [
            "discord.com",
            "www.discord.com",
            "ptb.discord.com",
            "canary.discord.com",
            "discordapp.com",
        ],
        description="Hosts accepted in thread deep-links"
    )
    log_level: str = Field(default="INFO", description="Logging level")
