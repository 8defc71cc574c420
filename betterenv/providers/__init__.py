"""Built-in runtime providers for betterenv."""

from .file import FileProvider
from .infisical import InfisicalProvider, InfisicalSettings

__all__ = ["FileProvider", "InfisicalProvider", "InfisicalSettings"]
