"""Settings and configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# YAML config search paths (checked in order, first found wins)
_YAML_SEARCH_PATHS = [
    Path("throttle.yaml"),
    Path("config/throttle.yaml"),
    Path.home() / ".config" / "throttled-request" / "throttle.yaml",
]


def _find_yaml_config() -> Path | None:
    """Find the first throttle.yaml in search paths."""
    for path in _YAML_SEARCH_PATHS:
        if path.is_file():
            return path
    return None


class ThrottleSettings(BaseSettings):
    """Dispatcher settings.

    Priority chain: init kwargs > env vars > .env file > throttle.yaml > defaults
    Environment variables use the ``THROTTLE_`` prefix, e.g.
    ``THROTTLE_MAX_IN_WINDOW=10``.
    """

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings source priority.

        Priority: init kwargs > env vars > .env file > throttle.yaml > file secrets > defaults
        """
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
        ]

        yaml_path = _find_yaml_config()
        if yaml_path:
            sources.append(
                YamlConfigSettingsSource(
                    settings_cls,
                    yaml_file=yaml_path,
                    yaml_file_encoding="utf-8",
                )
            )

        sources.append(file_secret_settings)
        return tuple(sources)

    # Admission window
    max_in_window: int = Field(
        5,
        ge=1,
        description="Max requests in flight or completed within the window",
    )
    window_seconds: float = Field(
        1.0,
        gt=0,
        description="Length of the trailing completion window in seconds",
    )
    operation_timeout: float = Field(
        3600.0,
        gt=0,
        description="Seconds before an in-flight request is aborted and re-queued",
    )

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_format: Literal["text", "json"] = Field("text", description="Log format: 'text' or 'json'")


@lru_cache
def get_settings() -> ThrottleSettings:
    """Get cached settings instance."""
    return ThrottleSettings()
