"""Runtime provider registry."""

import logging
import threading
from typing import List, Optional, Tuple, Type, TypeVar

from ._types import EnvDict, Provider

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Provider)

class Registry:
    """
    Ordered, thread-safe collection of runtime providers.

    Providers are queried in registration order: first added is the
    highest priority. Queries work on a snapshot of the list taken under
    the lock, so provider I/O never blocks registration or other reads.
    """

    def __init__(self):
        self._providers: List[Provider] = []
        self._lock = threading.Lock()

    def add_provider(self, provider: P) -> P:
        """
        Register a provider at the lowest current priority.

        Returns the provider itself so callers can keep a typed handle to it.
        """
        with self._lock:
            self._providers.append(provider)
        logger.debug(f"Registered provider: {type(provider).__name__}")
        return provider

    def remove_provider(self, provider: Provider) -> bool:
        """Remove one registered provider; returns False if it was not registered."""
        with self._lock:
            for index, registered in enumerate(self._providers):
                if registered is provider:
                    del self._providers[index]
                    logger.debug(f"Removed provider: {type(provider).__name__}")
                    return True
        return False

    def remove_all_providers(self) -> None:
        """Remove all providers."""
        with self._lock:
            self._providers = []
        logger.debug("Removed all providers")

    def get_provider(self, provider_type: Type[P]) -> Optional[P]:
        """Return the first registered provider of the given type, if any."""
        with self._lock:
            for provider in self._providers:
                if isinstance(provider, provider_type):
                    return provider
        return None

    @property
    def has_providers(self) -> bool:
        with self._lock:
            return bool(self._providers)

    def _snapshot(self) -> Tuple[Provider, ...]:
        with self._lock:
            return tuple(self._providers)

    def get_from_providers(self, key: str) -> Optional[str]:
        """
        Get a value from the providers only.

        Providers are asked in priority order and the first non-None value
        is returned. A provider error propagates immediately; later
        providers are not consulted.
        """
        for provider in self._snapshot():
            value = provider.get(key)
            if value is not None:
                logger.debug(f"Resolved {key} from {type(provider).__name__}")
                return value
        return None

    def get_all_from_providers(self) -> EnvDict:
        """
        Get all values from all providers, merged.

        Earlier providers take precedence over later ones.
        """
        result: EnvDict = {}

        # Fold from lowest to highest priority so earlier providers win
        for provider in reversed(self._snapshot()):
            result.update(provider.get_all())

        return result

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

_default_registry: Optional[Registry] = None
_default_lock = threading.Lock()

def default_registry() -> Registry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = Registry()
    return _default_registry
