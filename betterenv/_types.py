"""Type definitions and custom exceptions for betterenv."""

from typing import Dict, List, Optional
from typing_extensions import Protocol, runtime_checkable

# Type aliases
EnvDict = Dict[str, str]

# Custom exceptions
class BetterEnvError(Exception):
    """Base exception for all betterenv errors."""
    pass

class EnvFileNotFound(BetterEnvError):
    """Raised when an environment file cannot be found."""

    def __init__(self, path: str):
        self.path = str(path)
        super().__init__(f"Environment file not found: {self.path}")

class InvalidEnvFile(BetterEnvError):
    """Raised when an environment file exists but cannot be read as UTF-8 text."""

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read environment file {self.path}: {reason}")

class MissingRequiredVars(BetterEnvError):
    """Raised when required environment variables are missing."""

    def __init__(self, missing_vars: List[str]):
        self.missing_vars = missing_vars
        super().__init__(f"Missing required environment variables: {', '.join(missing_vars)}")

class ProviderError(BetterEnvError):
    """Raised when a runtime provider fails to produce values."""
    pass

class InvalidResponse(ProviderError):
    """Raised when a remote provider gets no usable HTTP response."""

    def __init__(self, message: str = "Invalid response from Infisical API"):
        super().__init__(message)

class AuthenticationFailed(ProviderError):
    """Raised when the secrets API rejects the client credentials."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Infisical authentication failed ({status_code}): {message}")

class FetchFailed(ProviderError):
    """Raised when the secrets API refuses to return secrets."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Failed to fetch secrets from Infisical ({status_code}): {message}")

# Protocol definitions
@runtime_checkable
class Provider(Protocol):
    """
    Protocol for runtime environment providers.

    Providers are queried in the order they are registered and the first
    non-None value wins. Both methods may block on I/O and may raise a
    ProviderError. Implementations must tolerate concurrent calls.
    """

    def get(self, key: str) -> Optional[str]:
        """Fetch a single value by key, or None if the provider lacks it."""
        ...

    def get_all(self) -> EnvDict:
        """Fetch every key-value pair the provider knows about."""
        ...
