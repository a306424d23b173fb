"""Environment variable handling for storage configuration.

Configuration values may reference the environment as ``${VAR}`` or
``$VAR``; .env files are loaded with python-dotenv.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

__all__ = [
    "CONFIG_ENV_VAR",
    "config_path_from_env",
    "expand_env_vars",
    "expand_options",
    "load_env_file",
]

# Names the YAML file used when no explicit path is given
CONFIG_ENV_VAR = "OBJECTSTORE_CONFIG"

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load a .env file into the process environment.

    Returns:
        True if a file was found and loaded
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Substitute environment variables referenced in ``value``.

    Unset variables are left untouched unless ``strict`` is set, in which
    case a KeyError is raised.

    Example:
        >>> os.environ["OBJECTS_ROOT"] = "/srv/objects"
        >>> expand_env_vars("${OBJECTS_ROOT}/public")
        '/srv/objects/public'
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        resolved = os.environ.get(name)
        if resolved is None:
            if strict:
                raise KeyError(f"Environment variable not set: {name}")
            return match.group(0)
        return resolved

    return ENV_VAR_PATTERN.sub(replace, value)


def expand_options(options: Dict[str, Any], *, strict: bool = False) -> Dict[str, Any]:
    """Return a copy of ``options`` with variables expanded in nested strings."""
    expanded: Dict[str, Any] = {}
    for key, value in options.items():
        if isinstance(value, str):
            expanded[key] = expand_env_vars(value, strict=strict)
        elif isinstance(value, dict):
            expanded[key] = expand_options(value, strict=strict)
        elif isinstance(value, list):
            expanded[key] = [
                expand_env_vars(item, strict=strict) if isinstance(item, str) else item
                for item in value
            ]
        else:
            expanded[key] = value
    return expanded


def config_path_from_env(default: Optional[str] = None) -> Optional[Path]:
    """Return the config file named by OBJECTSTORE_CONFIG, or ``default``."""
    value = os.environ.get(CONFIG_ENV_VAR) or default
    return Path(value) if value else None
