from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.routing.orthogonal import RouterConfig
from domain.models import SUGGESTED_BINDINGS_LIMIT, BindingConfig

DEFAULT_CONFIG_PATH = Path("config/binding.yaml")


class BindingSettings(BaseModel):
    enabled: bool = True
    precise_hit_threshold: float = Field(default=0.0, ge=0.0)
    suggestion_limit: int = Field(default=SUGGESTED_BINDINGS_LIMIT, gt=0)
    default_zoom: float = Field(default=1.0, gt=0.0)

    def to_binding_config(self) -> BindingConfig:
        return BindingConfig(
            enabled=self.enabled,
            precise_hit_threshold=self.precise_hit_threshold,
            suggestion_limit=self.suggestion_limit,
            default_zoom=self.default_zoom,
        )


class RouterSettings(BaseModel):
    padding: float = Field(default=40.0, ge=0.0)

    def to_router_config(self) -> RouterConfig:
        return RouterConfig(padding=self.padding)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DBE_", env_nested_delimiter="__")

    binding: BindingSettings = BindingSettings()
    router: RouterSettings = RouterSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("DBE_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
