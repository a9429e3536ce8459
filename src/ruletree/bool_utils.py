"""
Coercion for ``enabled`` flags arriving from external rule feeds.

Older feeds serialize ``enabled`` as the strings ``"true"``/``"false"``.
The value is coerced once when data enters the model; nodes never hold
anything but a real bool afterwards.
"""

from __future__ import annotations

from typing import Any


def coerce_enabled(value: Any, default: bool = True) -> bool:
    """Return *value* as a bool using the legacy feed rules.

    - bool: returned unchanged
    - str: ``"true"`` (any case, surrounding blanks ignored) is True,
      every other string is False
    - None: *default*

    Raises:
        TypeError: For any other type
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() == "true"
    raise TypeError(f"enabled must be a bool or 'true'/'false' string, got {type(value).__name__}")
