"""Settings for the messenger backend with observability configuration."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Retention caps per deployment profile; the profile is chosen per deployment, the caps are fixed.
MESSAGE_LOG_CAPS: dict[str, int] = {
    "socket": 100,
    "rest": 1000,
}


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("messenger-api", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")

    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
    obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")

    cors_allow_origins: Any = _env_field((), "CORS_ALLOW_ORIGINS")

    # Chat behaviour
    require_authentication: bool = _env_field(True, "REQUIRE_AUTHENTICATION")
    message_profile: str = _env_field("socket", "MESSAGE_PROFILE")
    history_snapshot_limit: int = _env_field(50, "HISTORY_SNAPSHOT_LIMIT")
    longpoll_timeout_seconds: float = _env_field(30.0, "LONGPOLL_TIMEOUT_SECONDS")

    # Argon2id parameters for the credential store
    password_time_cost: int = _env_field(3, "PASSWORD_TIME_COST")
    password_memory_cost: int = _env_field(65536, "PASSWORD_MEMORY_COST")
    password_parallelism: int = _env_field(4, "PASSWORD_PARALLELISM")
    password_hash_len: int = _env_field(64, "PASSWORD_HASH_LEN")
    password_salt_len: int = _env_field(16, "PASSWORD_SALT_LEN")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        env_nested_delimiter="__",
    )

    # Environment helpers
    def is_dev(self) -> bool:
        return self.environment.lower() in ("dev", "development")

    def message_log_cap(self) -> int:
        return MESSAGE_LOG_CAPS.get(self.message_profile.lower(), MESSAGE_LOG_CAPS["socket"])

    @field_validator("cors_allow_origins", mode="before")
    def _split_cors(cls, value):  # type: ignore[override]
        if value in (None, ""):
            return ()
        if isinstance(value, (list, tuple, set)):
            return tuple(str(item).strip() for item in value if str(item).strip())
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    data = None
                if isinstance(data, list):
                    return tuple(str(item).strip() for item in data if str(item).strip())
            return tuple(part.strip() for part in text.split(",") if part.strip())
        return ()

    @field_validator("message_profile", mode="before")
    def _normalise_profile(cls, value):  # type: ignore[override]
        text = str(value or "socket").strip().lower()
        return text if text in MESSAGE_LOG_CAPS else "socket"


def _normalise_level(level: str) -> str:
    return level.upper()


settings = Settings()
settings.obs_log_level = _normalise_level(settings.obs_log_level)
