"""
Configuration for the rule set editor.

Defaults come from ``config_defaults.json`` next to this module, falling
back to built-in values when the file is missing or unreadable.  Values
set at runtime live in an in-memory override layer on the `Config`
instance.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from . import package_logger

logger = package_logger(__name__)

DEFAULTS_FILE_NAME = "config_defaults.json"

# Fallback defaults used if the external defaults file cannot be read.
_FALLBACK_DEFAULTS = {
    "known_types": [
        "TYPE_A_RULE",
        "TYPE_B_RULE",
        "TYPE_C_RULE",
        "TYPE_D_RULE",
        "TYPE_E_RULE",
    ],
    "field_options": ["assigen", "comment", "user", "status", "priority"],
    "field_lookup_latency_seconds": 0.3,
    "confirm_delete_message": "Delete {type}?",
    "confirm_reset_message": "Reset all changes?",
}


def _typed_like(key: str, value: Any, reference: Any) -> Any:
    """
    Return *value* if it has the type of *reference*.

    Int seconds are accepted where a float is expected.

    Raises:
        TypeError: On a type mismatch
    """
    if reference is None or value is None:
        return value
    expected_type = type(reference)
    if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, expected_type) or isinstance(value, bool) != isinstance(reference, bool):
        raise TypeError(
            f"Config key '{key}' expects {expected_type.__name__}, got {type(value).__name__}"
        )
    return value


def _read_defaults_file(path: Path) -> Optional[Mapping[str, Any]]:
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring defaults file '{path}' ({e}); using built-in defaults")
        return None
    if not isinstance(loaded, dict):
        logger.warning(f"Defaults file '{path}' is not a JSON object; using built-in defaults")
        return None
    return loaded


def _merge_defaults(loaded: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Overlay file values on the built-in defaults, key by key.

    Only keys that have a built-in default are taken, so ``_comment`` and
    stale keys are skipped.  A value of the wrong type keeps the built-in
    one and logs a warning.
    """
    defaults = copy.deepcopy(_FALLBACK_DEFAULTS)
    for key, value in loaded.items():
        if key not in defaults:
            if not str(key).startswith("_"):
                logger.debug(f"Defaults file key '{key}' is not used")
            continue
        try:
            defaults[key] = _typed_like(key, value, defaults[key])
        except TypeError as e:
            logger.warning(f"{e}; keeping built-in default")
    return defaults


def _load_defaults_from_file() -> Dict[str, Any]:
    loaded = _read_defaults_file(Path(__file__).resolve().with_name(DEFAULTS_FILE_NAME))
    return _merge_defaults(loaded or {})


DEFAULTS = _load_defaults_from_file()


class Config:
    """
    Layered configuration: runtime overrides on top of `DEFAULTS`.

    Values are returned as copies, so mutating a returned list never
    changes the configuration.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        self._overrides: Dict[str, Any] = dict(overrides or {})

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key name.
            default: Value returned when the key is neither overridden nor
                has a default.

        Returns:
            Configuration value, or default.
        """
        if key in self._overrides:
            return copy.deepcopy(self._overrides[key])
        if key in DEFAULTS:
            return copy.deepcopy(DEFAULTS[key])
        return default

    def set(self, key: str, value: Any) -> None:
        if key in DEFAULTS:
            value = _typed_like(key, value, DEFAULTS[key])
        self._overrides[key] = value
        logger.debug(f"Configuration '{key}' set to {value}")

    def delete(self, key: str) -> None:
        """Drop a runtime override, reverting the key to its default."""
        if self._overrides.pop(key, None) is not None:
            logger.debug(f"Configuration '{key}' reverted to default")

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)
