"""Core .env parsing and compiled-values loading."""

import os
import re
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from ._types import EnvDict, EnvFileNotFound, InvalidEnvFile

logger = logging.getLogger(__name__)

# Files that make up the compiled layer, in override order
DEFAULT_ENV_FILES = (".env", ".env.local", ".env.development", ".env.production")

# Precompiled regex patterns
_VAR_EXPANSION_PATTERN = re.compile(r'\$\{([^}]+)\}')

def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse a single line from an environment file.

    Args:
        line: The line to parse

    Returns:
        Tuple of (key, raw value) or None if line should be skipped
    """
    # Strip whitespace and skip empty lines
    line = line.strip()
    if not line:
        return None

    # Skip comments
    if line.startswith('#'):
        return None

    # Find the first equals sign
    eq_pos = line.find('=')
    if eq_pos == -1:
        logger.warning(f"Skipping line without '=': {line}")
        return None

    key = line[:eq_pos].strip()
    value = line[eq_pos + 1:].strip()

    if not key:
        logger.warning(f"Skipping line with empty key: {line}")
        return None

    # Strip matching surrounding quotes
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]

    return key, value

def _expand_variables(value: str, env_dict: Mapping[str, str], os_environ: Mapping[str, str]) -> str:
    """
    Expand ${VAR} references in a value string.

    References resolve against keys parsed earlier in the same file first,
    then the process environment, and fall back to an empty string.
    Substituted text is not expanded again.
    """
    def expand_var(match):
        var_name = match.group(1)

        if var_name in env_dict:
            return env_dict[var_name]
        elif var_name in os_environ:
            return os_environ[var_name]
        else:
            logger.warning(f"Undefined variable reference: ${var_name}")
            return ""

    return _VAR_EXPANSION_PATTERN.sub(expand_var, value)

def parse_env_text(text: str, os_environ: Optional[Mapping[str, str]] = None) -> EnvDict:
    """
    Parse .env formatted text into a dictionary.

    Args:
        text: The file contents
        os_environ: Environment used for substitution (defaults to os.environ)

    Returns:
        Dictionary of key-value pairs in file order
    """
    if os_environ is None:
        os_environ = os.environ

    env_dict: EnvDict = {}
    for line in text.splitlines():
        parsed = _parse_line(line)
        if parsed:
            key, value = parsed
            env_dict[key] = _expand_variables(value, env_dict, os_environ)

    return env_dict

def parse_env_file(file_path: Union[str, Path], os_environ: Optional[Mapping[str, str]] = None) -> EnvDict:
    """
    Load environment variables from a single file.

    Args:
        file_path: Path to the environment file
        os_environ: Environment used for substitution (defaults to os.environ)

    Returns:
        Dictionary of key-value pairs

    Raises:
        EnvFileNotFound: If the file doesn't exist
        InvalidEnvFile: If the file cannot be read as UTF-8 text
    """
    file_path = Path(file_path)

    if not file_path.is_file():
        raise EnvFileNotFound(str(file_path))

    logger.debug(f"Parsing environment file: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            text = f.read()
    except FileNotFoundError as e:
        raise EnvFileNotFound(str(file_path)) from e
    except (UnicodeDecodeError, OSError) as e:
        raise InvalidEnvFile(str(file_path), str(e)) from e

    return parse_env_text(text, os_environ)

def load_compiled(
    directory: Union[str, Path] = ".",
    files: Iterable[str] = DEFAULT_ENV_FILES,
) -> Mapping[str, str]:
    """
    Build the compiled layer from the .env files found in a directory.

    Missing files are skipped; later files override earlier ones. The
    result is read-only and is never refreshed.

    Args:
        directory: Directory holding the .env files
        files: File names to look for, in override order

    Returns:
        Read-only mapping of the merged values
    """
    directory = Path(directory)
    loaded_env: Dict[str, str] = {}
    loaded_files = 0

    for name in files:
        path = directory / name
        if not path.is_file():
            logger.debug(f"Skipping missing environment file: {path}")
            continue

        loaded_env.update(parse_env_file(path))
        loaded_files += 1

    logger.info(f"Loaded {len(loaded_env)} compiled variables from {loaded_files} file(s)")
    return MappingProxyType(loaded_env)
