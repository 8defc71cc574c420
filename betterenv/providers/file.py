"""Provider that reads a .env file at runtime."""

import logging
from pathlib import Path
from typing import Optional, Union

from .._types import EnvDict
from ..core import parse_env_file

logger = logging.getLogger(__name__)

class FileProvider:
    """
    Provider for values stored in a .env file.

    The file is re-read on every call, so lookups always reflect its
    current contents. A missing file raises EnvFileNotFound each time.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def relative(cls, relative_path: Union[str, Path]) -> "FileProvider":
        """Create a provider for a path relative to the current directory."""
        return cls(Path.cwd() / relative_path)

    def get(self, key: str) -> Optional[str]:
        return parse_env_file(self.path).get(key)

    def get_all(self) -> EnvDict:
        return parse_env_file(self.path)

    def __repr__(self) -> str:
        return f"FileProvider({str(self.path)!r})"
