"""FastAPI and pydantic-settings integration for betterenv."""

import logging
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Type

from fastapi import Depends, HTTPException
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from .._types import EnvDict, MissingRequiredVars
from ..resolver import Env, default_env
from ..runtime import Registry, default_registry

logger = logging.getLogger(__name__)

class ProviderSettingsSource(PydanticBaseSettingsSource):
    """
    Settings source that reads field values from registered providers.

    A field matches a provider key with the same name or its upper-case
    form. Provider values are fetched once per settings instantiation.
    """

    def __init__(self, settings_cls: Type[BaseSettings], registry: Optional[Registry] = None):
        super().__init__(settings_cls)
        self.registry = registry
        self._values: Optional[EnvDict] = None

    def _provider_values(self) -> EnvDict:
        if self._values is None:
            registry = self.registry if self.registry is not None else default_registry()
            self._values = registry.get_all_from_providers()
        return self._values

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        values = self._provider_values()
        for key in (field_name, field_name.upper()):
            if key in values:
                return values[key], key, False
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, _, _ = self.get_field_value(field, field_name)
            if value is not None:
                data[field_name] = value
        return data

class EnvSettings(BaseSettings):
    """
    Settings base class that consults betterenv providers.

    Source priority: init kwargs, registered providers, environment
    variables, dotenv file, secrets directory. Set the ``registry`` class
    attribute to use a registry other than the process-wide default.
    """

    registry: ClassVar[Optional[Registry]] = None

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
            ProviderSettingsSource(settings_cls, cls.registry),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

def get_env(env: Optional[Env] = None) -> Callable[[], Env]:
    """
    Dependency factory for FastAPI dependency injection.

    Args:
        env: Env to hand out (defaults to the process-wide Env)

    Returns:
        Dependency function that returns the Env
    """
    def _get_env() -> Env:
        return env if env is not None else default_env()

    return _get_env

def require_env(*keys: str, env: Optional[Env] = None) -> Callable[..., Dict[str, str]]:
    """
    Dependency factory that resolves required keys for a route.

    Missing keys produce an HTTP 500 response.
    """
    def _require_env(resolved: Env = Depends(get_env(env))) -> Dict[str, str]:
        try:
            return resolved.require_all(keys)
        except MissingRequiredVars as e:
            logger.error(f"Request needs unresolved variables: {', '.join(e.missing_vars)}")
            raise HTTPException(status_code=500, detail="Server configuration is incomplete")

    return _require_env

# Example usage:
# app = FastAPI()
#
# @app.get("/config")
# def get_config(values: Dict[str, str] = Depends(require_env("APP_NAME"))):
#     return {"app": values["APP_NAME"]}
