"""
BetterEnv

Layered environment variable resolution: compiled .env values, the OS
environment, and pluggable runtime providers such as remote secret stores.
"""

__version__ = "0.1.0"

from .core import load_compiled, parse_env_file
from .runtime import Registry, default_registry
from .resolver import Env, default_env
from .providers import FileProvider, InfisicalProvider, InfisicalSettings
from ._types import (
    BetterEnvError, EnvFileNotFound, InvalidEnvFile, MissingRequiredVars, ProviderError,
    InvalidResponse, AuthenticationFailed, FetchFailed, Provider,
)

__all__ = [
    "load_compiled",
    "parse_env_file",
    "Registry",
    "default_registry",
    "Env",
    "default_env",
    "FileProvider",
    "InfisicalProvider",
    "InfisicalSettings",
    "Provider",
    "BetterEnvError",
    "EnvFileNotFound",
    "InvalidEnvFile",
    "MissingRequiredVars",
    "ProviderError",
    "InvalidResponse",
    "AuthenticationFailed",
    "FetchFailed",
]
