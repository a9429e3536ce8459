"""
Loading the initial rule configuration.

Handles:
- Loading from a JSON file
- Both the wrapped ``{"types": [...], "rules": {...}}`` form and a bare
  ``{TYPE: root}`` mapping
- Checking shape early with clear error messages
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import package_logger
from .config import Config
from .models import RuleDataError, normalize_config

logger = package_logger(__name__)


class RuleLoadError(Exception):
    """Raised when a rule configuration cannot be loaded."""
    pass


# Demo data set: two authored types, the remaining known types empty.
SAMPLE_CONFIG: Dict[str, Any] = {
    "TYPE_A_RULE": {
        "enabled": True,
        "operator": "AND",
        "children": [
            {
                "enabled": True,
                "operator": "OR",
                "children": [
                    {"field": "assigen", "operator": "EQ", "value": "xxx", "enabled": True},
                    {"field": "comment", "operator": "CTN", "value": "xxx", "enabled": True},
                    {"field": "user", "operator": "!EQ", "value": "ddd", "enabled": True},
                ],
            },
            {
                "enabled": True,
                "operator": "OR",
                "children": [
                    {"field": "assigen", "operator": "EQ", "value": "yyy", "enabled": True},
                    {"field": "comment", "operator": "CTN", "value": "yyy", "enabled": True},
                ],
            },
        ],
    },
    "TYPE_B_RULE": {
        "enabled": True,
        "operator": "AND",
        "children": [
            {
                "enabled": True,
                "operator": "OR",
                "children": [
                    {"field": "status", "operator": "EQ", "value": "active", "enabled": True},
                ],
            }
        ],
    },
}


def sample_config() -> Dict[str, Any]:
    """Return a fresh copy of the demo data set."""
    return copy.deepcopy(SAMPLE_CONFIG)


def load_user_config(path: Path, config: Optional[Config] = None) -> Tuple[List[str], Dict[str, Any]]:
    """
    Load the known rule types and initial rules from a JSON file.

    Args:
        path: Path to the JSON file
        config: Supplies ``known_types`` when the file does not list them

    Returns:
        Tuple of (known_types, raw_user_config)

    Raises:
        RuleLoadError: If the file cannot be read or has the wrong shape
    """
    path = Path(path)
    if not path.exists():
        raise RuleLoadError(f"Rule config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuleLoadError(f"Invalid JSON in rule config file: {e}")
    except OSError as e:
        raise RuleLoadError(f"Failed to read rule config file: {e}")

    types, rules = parse_user_config(data, config)
    logger.info(f"Loaded {len(rules)} rule(s) for {len(types)} known type(s) from {path}")
    return types, rules


def parse_user_config(data: Any, config: Optional[Config] = None) -> Tuple[List[str], Dict[str, Any]]:
    """
    Split parsed JSON into known types and rules, and check the rules parse.

    Raises:
        RuleLoadError: If the data has the wrong shape
    """
    if not isinstance(data, dict):
        raise RuleLoadError(
            "Invalid rule config format. Expected a mapping of rule type to rule "
            "or wrapped format: { \"types\": [...], \"rules\": {...} }"
        )

    if "rules" in data:
        rules = data["rules"]
        if not isinstance(rules, dict):
            raise RuleLoadError("Wrapped format: 'rules' must be a mapping")
        types = data.get("types")
    else:
        rules = data
        types = None

    if types is None:
        types = (config or Config()).get("known_types", [])
    if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
        raise RuleLoadError("'types' must be a list of strings")

    try:
        normalize_config(rules)
    except RuleDataError as e:
        raise RuleLoadError(f"Invalid rule data: {e}") from e

    return list(types), rules
