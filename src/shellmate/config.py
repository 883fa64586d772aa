"""Configuration management for shellmate."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging_utils import configure_logging
from .store.preferences import CredentialStore, PreferenceStore

DEFAULT_HOME = "~/.shellmate"
PREFERENCES_FILE = "preferences.json"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SHELLMATE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_key: str | None = Field(default=None, description="API key for the completion provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    command_model: str = Field(
        default="groq:llama-3.3-70b-versatile",
        description="Larger model used for command generation (provider:model)",
    )
    fast_model: str = Field(
        default="groq:llama-3.1-8b-instant",
        description="Smaller model used for classification and explanations (provider:model)",
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    model_timeout_seconds: float | None = Field(default=30, description="Bounded wait for one completion call")

    # Execution Configuration
    shell: str = Field(default="/bin/bash", description="POSIX shell used to run commands")
    command_timeout_seconds: float | None = Field(
        default=120, description="Bounded wait for one command; the process is killed on expiry"
    )

    # Session Configuration
    home: str = Field(default=DEFAULT_HOME, description="Directory holding persisted state")
    open_browser: bool = Field(default=True, description="Open search queries in the default browser")
    log_query_days: int = Field(default=7, ge=1, description="Window for the command log query")

    def resolve_home(self) -> Path:
        return Path(self.home).expanduser().resolve()

    def preference_store(self) -> PreferenceStore:
        return PreferenceStore(self.resolve_home() / PREFERENCES_FILE)

    @property
    def resolved_api_key(self) -> str | None:
        if self.api_key and self.api_key.strip():
            return self.api_key.strip()
        return CredentialStore(self.preference_store()).load()


def get_settings(*, profile: str = "default") -> Settings:
    """Get application settings.

    Args:
        profile: Logging profile to configure alongside the settings.

    Returns:
        Settings instance
    """
    settings = Settings()
    configure_logging(profile="chat" if profile == "chat" else "default")
    return settings
