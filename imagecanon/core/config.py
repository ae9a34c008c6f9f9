"""Settings for the imagecanon CLI.

Values come from ``config.json`` in the working directory, then from
environment variables named after the key path, then from the caller's
default::

    {"extraction": {"strict": true}, "output": {"indent": 2}}

``extraction.strict`` can also be set with ``EXTRACTION_STRICT=1``.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

CONFIG_FILE = "config.json"


def load_config(config_path: str = CONFIG_FILE) -> Dict[str, Any]:
    """Read the settings file; a missing, unreadable or non-object file counts as empty."""
    path = Path(config_path)
    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            loaded = json.load(f)
    except (json.JSONDecodeError, IOError):
        return {}

    return loaded if isinstance(loaded, dict) else {}


def get_config_value(
    keys: List[str], default: Any = None, config: Optional[Dict[str, Any]] = None
) -> Any:
    """Look up ``keys`` (e.g. ``["output", "indent"]``) in the settings.

    Falls back to the ``OUTPUT_INDENT``-style environment variable and then
    to ``default``.
    """
    if config is None:
        config = load_config()

    value: Any = config
    for key in keys:
        value = value.get(key) if isinstance(value, dict) else None
        if value is None:
            break

    if value is not None:
        return value
    return os.environ.get("_".join(k.upper() for k in keys), default)


def as_bool(value: Any) -> bool:
    """Interpret a settings or environment value as an on/off flag."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
