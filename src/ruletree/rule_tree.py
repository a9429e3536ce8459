"""
Structural operations on a single rule tree.

All operations mutate the given tree in place and never touch any saved
snapshot.  Removal by index comes in two flavours: the plain functions
ignore an out-of-range index and report it through their return value,
the ``_strict`` ones raise `RuleIndexError`.
"""

from __future__ import annotations

import copy
from typing import Any, Iterator, List, Optional, Union

from . import package_logger
from .models import ConditionRule, Operator, OrGroup, RootRule

logger = package_logger(__name__)

Node = Union[RootRule, OrGroup, ConditionRule]


class RuleIndexError(IndexError):
    """Raised by the strict removal functions for an out-of-range index."""
    pass


def new_condition() -> ConditionRule:
    """Empty, enabled condition with the default operator."""
    return ConditionRule(field="", operator=Operator.EQ, value="", enabled=True)


def new_or_group() -> OrGroup:
    """Enabled OR group holding one empty condition."""
    return OrGroup(enabled=True, children=[new_condition()])


def create_root(initial: Optional[Union[RootRule, Any]] = None) -> RootRule:
    """
    Create a root rule.

    Args:
        initial: Existing root or raw root dict to copy.  When omitted the
            root holds one group with one empty condition.

    Returns:
        A tree sharing no nodes with *initial*

    Raises:
        RuleDataError: If *initial* is a malformed raw dict
    """
    if initial is None:
        return RootRule(enabled=True, children=[new_or_group()])
    if isinstance(initial, RootRule):
        # Raw parsing would turn an unset operator back into EQ.
        return copy.deepcopy(initial)
    return RootRule.from_dict(initial)


def _in_range(items: List[Any], index: int) -> bool:
    # Negative indices would silently address from the end; bools are not indices.
    if isinstance(index, bool) or not isinstance(index, int):
        return False
    return 0 <= index < len(items)


def add_or_group(root: RootRule) -> OrGroup:
    group = new_or_group()
    root.children.append(group)
    return group


def remove_or_group(root: RootRule, index: int) -> bool:
    """Remove the group at *index*.  Returns False (and does nothing) if out of range."""
    if not _in_range(root.children, index):
        logger.debug(f"remove_or_group: index {index} out of range ({len(root.children)} groups)")
        return False
    del root.children[index]
    return True


def remove_or_group_strict(root: RootRule, index: int) -> None:
    if not remove_or_group(root, index):
        raise RuleIndexError(f"No OR group at index {index} ({len(root.children)} groups)")


def add_condition(group: OrGroup) -> ConditionRule:
    condition = new_condition()
    group.children.append(condition)
    return condition


def remove_condition(group: OrGroup, index: int) -> bool:
    """Remove the condition at *index*.  Returns False (and does nothing) if out of range."""
    if not _in_range(group.children, index):
        logger.debug(f"remove_condition: index {index} out of range ({len(group.children)} conditions)")
        return False
    del group.children[index]
    return True


def remove_condition_strict(group: OrGroup, index: int) -> None:
    if not remove_condition(group, index):
        raise RuleIndexError(f"No condition at index {index} ({len(group.children)} conditions)")


def toggle_enabled(node: Node) -> bool:
    """
    Flip the node's own ``enabled`` flag and return the new value.

    Parents and children keep their flags; a disabled root may hold enabled
    groups.
    """
    node.enabled = not node.enabled
    return node.enabled


def get_group(root: RootRule, index: int) -> Optional[OrGroup]:
    if not _in_range(root.children, index):
        return None
    return root.children[index]


def get_condition(root: RootRule, group_index: int, condition_index: int) -> Optional[ConditionRule]:
    group = get_group(root, group_index)
    if group is None or not _in_range(group.children, condition_index):
        return None
    return group.children[condition_index]


def iter_conditions(root: RootRule) -> Iterator[ConditionRule]:
    """Yield every condition in display order, disabled nodes included."""
    for group in root.children:
        yield from group.children
