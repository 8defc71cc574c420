"""Layered lookup over providers, compiled values and the OS environment."""

import os
import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from ._types import EnvDict, MissingRequiredVars
from .core import load_compiled
from .runtime import Registry, default_registry

logger = logging.getLogger(__name__)

class Env:
    """
    Single lookup API over every value source.

    Priority, highest first: registered providers, compiled .env values,
    the OS environment.
    """

    def __init__(
        self,
        compiled: Optional[Mapping[str, str]] = None,
        registry: Optional[Registry] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._compiled = MappingProxyType(dict(compiled or {}))
        self.registry = registry if registry is not None else Registry()
        self._environ = environ if environ is not None else os.environ

    @property
    def compiled(self) -> Mapping[str, str]:
        return self._compiled

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the highest-priority value for key, or default."""
        value = self.registry.get_from_providers(key)
        if value is not None:
            return value

        if key in self._compiled:
            return self._compiled[key]

        return self._environ.get(key, default)

    def get_all(self, include_os: bool = False) -> EnvDict:
        """Merge all layers; higher-priority layers win on conflicts."""
        result: EnvDict = dict(self._environ) if include_os else {}
        result.update(self._compiled)
        result.update(self.registry.get_all_from_providers())
        return result

    def require(self, key: str) -> str:
        """Return the value for key or raise MissingRequiredVars."""
        value = self.get(key)
        if value is None:
            logger.debug(f"Unresolved required variable: {key}")
            raise MissingRequiredVars([key])
        return value

    def require_all(self, keys: Iterable[str]) -> Dict[str, str]:
        """Return values for every key, reporting all missing keys at once."""
        values: Dict[str, str] = {}
        missing = []
        for key in keys:
            value = self.get(key)
            if value is None:
                missing.append(key)
            else:
                values[key] = value

        if missing:
            logger.debug(f"Unresolved required variables: {', '.join(missing)}")
            raise MissingRequiredVars(missing)
        return values

_default_env: Optional[Env] = None
_default_lock = threading.Lock()

def default_env() -> Env:
    """Return the process-wide Env built from ./.env files and the default registry."""
    global _default_env
    if _default_env is None:
        with _default_lock:
            if _default_env is None:
                _default_env = Env(load_compiled(), default_registry())
    return _default_env
