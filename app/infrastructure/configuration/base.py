"""Shared base classes and utilities for settings modules."""

import os
from typing import Tuple, Type

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILE_ENV = "NOTIFICATION_BOT_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "/app/config.json"


def config_file_path() -> str:
    """Path of the optional mounted JSON config file."""
    return os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)


class FileBackedSettings(BaseSettings):
    """Settings that read env vars, a .env file and the mounted config file.

    Precedence (highest first): init kwargs, environment, .env file, JSON
    config file, secrets directory. The config file is a flat JSON object
    using the same keys as the environment variables. A missing file is
    ignored.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
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
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=config_file_path()),
            file_secret_settings,
        )


class IntegrationSettings(FileBackedSettings):
    """Base class for external integration settings.

    All channel and escalation settings inherit from this class to ensure
    consistent configuration behavior (env file loading, case sensitivity).
    """


class FeatureSettings(FileBackedSettings):
    """Base class for feature settings (event sources)."""


class InfrastructureSettings(FileBackedSettings):
    """Base class for infrastructure-level settings.

    Infrastructure settings control core system behavior like storage,
    deduplication, retry logic and the worker pool.
    """
