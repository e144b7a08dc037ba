import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("PLAN_MONITOR_CONFIG", "config.toml")
_ENV_PATH = os.getenv("PLAN_MONITOR_ENV", ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLAN_MONITOR_",
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    api_url: str = "http://localhost:5173/api"
    poll_interval: float = Field(default=1.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)
    # Sent with every request, the agent authenticates by session cookie
    cookies: dict[str, str] = Field(default_factory=dict)

    logs_dir: Path = Field(default=Path("logs"))
    log_to_file: bool = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
