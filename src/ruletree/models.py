"""
Rule tree node types.

Three levels, outermost first:

- `RootRule`  - AND over its OR groups, one per rule type
- `OrGroup`   - OR over its conditions
- `ConditionRule` - ``field operator value`` comparison

``from_dict`` is the only way external data enters the model.  It
deep-copies, coerces legacy string ``enabled`` values and parses operator
tokens, so the rest of the package can rely on well-typed nodes.
``to_dict`` returns the raw value: the full structure, disabled nodes
included, with operators rendered as feed tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .bool_utils import coerce_enabled


class RuleDataError(ValueError):
    """Raised when external rule data has the wrong shape."""
    pass


class Operator(str, Enum):
    """Comparison operators, valued by their feed tokens."""
    EQ = "EQ"
    NEQ = "!EQ"
    CONTAINS = "CTN"
    GT = "GT"
    LT = "LT"

    @classmethod
    def parse(cls, token: Any) -> Optional["Operator"]:
        """
        Parse an operator from a feed token or enum name.

        Empty/None tokens mean "unset" and return None.

        Raises:
            RuleDataError: If the token names no operator
        """
        if token is None or token == "":
            return None
        if isinstance(token, cls):
            return token
        if isinstance(token, str):
            for op in cls:
                if token == op.value or token == op.name:
                    return op
        raise RuleDataError(f"Unknown operator: {token!r}")


OPERATOR_LABELS = {
    Operator.EQ: "equals (=)",
    Operator.NEQ: "not equal (≠)",
    Operator.CONTAINS: "contains",
    Operator.GT: "greater than (>)",
    Operator.LT: "less than (<)",
}

GROUP_OPERATOR = "OR"
ROOT_OPERATOR = "AND"


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise RuleDataError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _children(data: Mapping[str, Any], what: str) -> List[Any]:
    children = data.get("children", [])
    if children is None:
        return []
    if not isinstance(children, list):
        raise RuleDataError(f"{what} 'children' must be a list")
    return children


def _enabled(data: Mapping[str, Any], what: str) -> bool:
    try:
        return coerce_enabled(data.get("enabled"))
    except TypeError as e:
        raise RuleDataError(f"{what}: {e}") from e


def _text(data: Mapping[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RuleDataError(f"{what} '{key}' must be a string")
    return value


@dataclass
class ConditionRule:
    """Leaf comparison.  An empty field/value or a None operator is unset."""
    field: str = ""
    operator: Optional[Operator] = Operator.EQ
    value: str = ""
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Any) -> ConditionRule:
        data = _require_mapping(data, "Condition")
        return cls(
            field=_text(data, "field", "Condition"),
            # Feeds that omit or blank the operator mean the default.
            operator=Operator.parse(data.get("operator") or Operator.EQ),
            value=_text(data, "value", "Condition"),
            enabled=_enabled(data, "Condition"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "operator": self.operator.value if self.operator is not None else "",
            "value": self.value,
            "enabled": self.enabled,
        }


@dataclass
class OrGroup:
    """Conditions combined with OR, in display order."""
    enabled: bool = True
    children: List[ConditionRule] = dataclass_field(default_factory=list)

    @property
    def operator(self) -> str:
        return GROUP_OPERATOR

    @classmethod
    def from_dict(cls, data: Any) -> OrGroup:
        data = _require_mapping(data, "OR group")
        return cls(
            enabled=_enabled(data, "OR group"),
            children=[ConditionRule.from_dict(c) for c in _children(data, "OR group")],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "operator": GROUP_OPERATOR,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class RootRule:
    """OR groups combined with AND.  One per rule type."""
    enabled: bool = True
    children: List[OrGroup] = dataclass_field(default_factory=list)

    @property
    def operator(self) -> str:
        return ROOT_OPERATOR

    @classmethod
    def from_dict(cls, data: Any) -> RootRule:
        data = _require_mapping(data, "Root rule")
        return cls(
            enabled=_enabled(data, "Root rule"),
            children=[OrGroup.from_dict(g) for g in _children(data, "Root rule")],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "operator": ROOT_OPERATOR,
            "children": [g.to_dict() for g in self.children],
        }


# Live form of a user configuration: rule type -> root.  A type that is
# missing (or maps to None) has no rule authored yet.
UserConfig = Dict[str, Optional[RootRule]]


def normalize_config(raw: Mapping[str, Any], types: Optional[List[str]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Normalize a raw user configuration to its canonical raw form.

    Args:
        raw: Mapping of rule type to root rule dict (or None)
        types: If given, only these types are kept

    Returns:
        New mapping containing only present roots, each round-tripped
        through `RootRule` so ``enabled`` and operator tokens are canonical

    Raises:
        RuleDataError: If any root is malformed
    """
    raw = _require_mapping(raw, "User config")
    result: Dict[str, Dict[str, Any]] = {}
    for type_name, root in raw.items():
        if root is None:
            continue
        if types is not None and type_name not in types:
            continue
        if isinstance(root, RootRule):
            result[type_name] = root.to_dict()
        else:
            try:
                result[type_name] = RootRule.from_dict(root).to_dict()
            except RuleDataError as e:
                raise RuleDataError(f"{type_name}: {e}") from e
    return result
