"""Framework integrations for betterenv."""

from .fastapi import EnvSettings, ProviderSettingsSource, get_env, require_env

__all__ = ["EnvSettings", "ProviderSettingsSource", "get_env", "require_env"]
