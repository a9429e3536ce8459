"""
Validation of rule trees.

A condition needs a field, an operator and a value.  The ``enabled``
flags play no part: a disabled condition, or one inside a disabled group
or root, is still checked.  Nothing is cached; every call walks the tree.
"""

from typing import List, Optional

from .models import ConditionRule, RootRule
from .rule_tree import iter_conditions


def condition_issues(condition: ConditionRule) -> List[str]:
    """Return the names of the required parts the condition is missing."""
    missing = []
    if not condition.field:
        missing.append("field")
    if condition.operator is None:
        missing.append("operator")
    if not condition.value:
        missing.append("value")
    return missing


def is_condition_valid(condition: ConditionRule) -> bool:
    return not condition_issues(condition)


def has_validation_error(root: Optional[RootRule]) -> bool:
    """
    Check a whole tree.

    Args:
        root: Tree to check, or None when the type has no rule

    Returns:
        True if any condition in the tree is invalid; False for None
    """
    if root is None:
        return False
    return any(not is_condition_valid(c) for c in iter_conditions(root))


def validate_root(type_name: str, root: Optional[RootRule]) -> List[str]:
    """
    Describe every invalid condition in a tree.

    Args:
        type_name: Rule type, used as the message prefix
        root: Tree to check, or None

    Returns:
        One message per invalid condition (1-based positions), e.g.
        ``"TYPE_A_RULE: group 2, condition 1 is missing field, value"``
    """
    if root is None:
        return []
    errors = []
    for gi, group in enumerate(root.children, start=1):
        for ci, condition in enumerate(group.children, start=1):
            missing = condition_issues(condition)
            if missing:
                errors.append(
                    f"{type_name}: group {gi}, condition {ci} is missing {', '.join(missing)}"
                )
    return errors
