from functools import lru_cache
from typing import Literal, Tuple, Type

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str = ""
    telegram_bot_enabled: bool = True  # Flag from usr/settings.json
    telegram_bot_allowed_users: str = ""  # Comma-separated ids or usernames, empty = everyone
    telegram_webhook_secret: str = ""  # Optional: for webhook verification

    # LLM API keys (only the one for the selected backend is required)
    api_key_openai: str = ""
    api_key_openrouter: str = ""
    api_key_anthropic: str = ""

    # Session backend
    session_backend: Literal["http", "openai", "openrouter", "anthropic"] = "http"
    agent_api_url: str = "http://localhost:50001"
    agent_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    chat_model: str = "gpt-4o-mini"
    system_prompt: str = "You are a helpful assistant."
    max_history_messages: int = 40
    skills_dir: str = "usr/skills"
    invoke_timeout_seconds: float = 600.0

    # Addressing
    default_tag: str = "default"
    generated_tag_prefix: str = "s"

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(".env", "usr/secrets.env"),
        env_file_encoding="utf-8",
        json_file="usr/settings.json",
        json_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # settings.json only carries feature flags, so it ranks below the env files
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
        )

    @property
    def bot_enabled(self) -> bool:
        return bool(self.telegram_bot_token) and self.telegram_bot_enabled

    @property
    def allowed_users(self) -> list[str]:
        """Normalized allowed-user entries: numeric ids as strings, usernames lowercase without '@'."""
        raw = self.telegram_bot_allowed_users.replace(",", " ").split()
        return [entry.lstrip("@").lower() for entry in raw if entry.lstrip("@")]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
