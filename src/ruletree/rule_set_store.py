"""
Rule set store: one rule tree per rule type.

The store owns the live trees and the snapshot taken at load time and
after each successful save.  Every UI action goes through it, addressed
by ``(type, group_index, condition_index)``.  Dirty and validity flags
are computed on demand from the current state.

Addressing a type without a tree, or an index out of range, is not an
error: the call does nothing and returns False.  The same goes for any
edit while the store is readonly.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from . import package_logger
from .config import Config
from .dirty_tracker import DirtyTracker
from .models import OPERATOR_LABELS, ConditionRule, Operator, RootRule, RuleDataError, normalize_config
from . import rule_tree
from .rule_validation import has_validation_error, validate_root

logger = package_logger(__name__)

ConfirmCallback = Callable[[str], bool]
NotifyCallback = Callable[[str], None]


class ValidationBlocked(Exception):
    """Raised when a save is attempted while some rule types are invalid."""

    def __init__(self, invalid_types: Sequence[str]) -> None:
        self.invalid_types = tuple(invalid_types)
        listing = "\n- ".join(self.invalid_types)
        super().__init__(f"The following rules still have errors, fix them first:\n- {listing}")


class StoreOutcome(str, Enum):
    SAVED = "saved"
    RESET = "reset"
    NOTHING_TO_CHANGE = "nothing_to_change"
    VALIDATION_BLOCKED = "validation_blocked"
    CANCELLED = "cancelled"
    READONLY = "readonly"


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a save or reset."""
    outcome: StoreOutcome
    message: str
    invalid_types: Tuple[str, ...] = ()
    payload: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.outcome in (StoreOutcome.SAVED, StoreOutcome.RESET)


@dataclass(frozen=True)
class TypeSummary:
    """Per-type flags for a type list view."""
    name: str
    selected: bool
    has_rules: bool
    rule_count: int
    dirty: bool
    has_error: bool


def _decline(message: str) -> bool:
    logger.warning(f"No confirmation handler configured, declining: {message}")
    return False


def _log_notice(message: str) -> None:
    logger.info(message)


class RuleSetStore:
    """
    Keyed collection of rule trees with save/reset against a snapshot.

    Args:
        confirm: ``confirm(message) -> bool`` asked before delete and reset.
            Without one, destructive operations are always declined.
        notify: ``notify(message)`` for save/reset outcomes.  Defaults to
            logging the message.
        config: Supplies the default known types and dialog texts
    """

    def __init__(
        self,
        confirm: Optional[ConfirmCallback] = None,
        notify: Optional[NotifyCallback] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.confirm = confirm or _decline
        self.notify = notify or _log_notice
        self.config = config or Config()

        self._known_types: Tuple[str, ...] = tuple(self.config.get("known_types", []))
        self._trees: Dict[str, RootRule] = {}
        self._snapshot: Dict[str, Dict[str, Any]] = {}
        self._selected: Optional[str] = None
        self._readonly = False

        self.dirty_tracker = DirtyTracker(
            lambda: self._snapshot,
            lambda: self._trees,
            lambda: self._known_types,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def initialize(
        self,
        initial_data: Mapping[str, Any],
        known_types: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Load the initial configuration.

        Only types listed in *known_types* get a tree; other keys in
        *initial_data* are ignored.  The snapshot is taken from the
        normalized data, so legacy string ``enabled`` values do not show
        up as changes.

        Raises:
            RuleDataError: If *initial_data* is malformed
        """
        types = tuple(known_types) if known_types is not None else self._known_types
        # Nothing is assigned until the data has parsed, so a failed reload
        # leaves the previous state intact.
        snapshot = normalize_config(initial_data, list(types))
        trees = self._build_trees(snapshot, types)
        ignored = [t for t in initial_data if t not in types]
        if ignored:
            logger.debug(f"Ignoring rules for unknown types: {ignored}")

        self._known_types = types
        self._snapshot = snapshot
        self._trees = trees
        self._selected = None
        logger.info(
            f"Initialized {len(self._trees)} rule tree(s) for {len(self._known_types)} known type(s)"
        )

    def _build_trees(
        self,
        source: Mapping[str, Dict[str, Any]],
        types: Optional[Sequence[str]] = None,
    ) -> Dict[str, RootRule]:
        return {
            type_name: rule_tree.create_root(source[type_name])
            for type_name in (self._known_types if types is None else types)
            if source.get(type_name) is not None
        }

    # ------------------------------------------------------------------
    # Selection and readonly
    # ------------------------------------------------------------------

    @property
    def known_types(self) -> Tuple[str, ...]:
        return self._known_types

    @property
    def selected_type(self) -> Optional[str]:
        return self._selected

    def select_type(self, type_name: Optional[str]) -> bool:
        """Focus a type (None clears).  Allowed while readonly."""
        if type_name is not None and type_name not in self._known_types:
            logger.debug(f"select_type: unknown type '{type_name}'")
            return False
        self._selected = type_name
        return True

    @property
    def readonly(self) -> bool:
        return self._readonly

    def toggle_readonly(self) -> bool:
        self._readonly = not self._readonly
        logger.info(f"Readonly {'enabled' if self._readonly else 'disabled'}")
        return self._readonly

    def _writable(self, action: str) -> bool:
        if self._readonly:
            logger.warning(f"Rejected {action}: store is readonly")
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_rules(self, type_name: str) -> bool:
        return type_name in self._trees

    def get_rule_count(self, type_name: str) -> int:
        """Number of OR groups under the type's root, 0 without a root."""
        tree = self._trees.get(type_name)
        return len(tree.children) if tree is not None else 0

    def get_rule(self, type_name: str) -> Optional[RootRule]:
        """Return a copy of the type's tree, or None."""
        tree = self._trees.get(type_name)
        return rule_tree.create_root(tree) if tree is not None else None

    def get_raw_value(self, type_name: str) -> Optional[Dict[str, Any]]:
        tree = self._trees.get(type_name)
        return tree.to_dict() if tree is not None else None

    def saved_config(self) -> Dict[str, Dict[str, Any]]:
        """Deep copy of the last saved (or loaded) configuration."""
        return copy.deepcopy(self._snapshot)

    def is_dirty(self, type_name: str) -> bool:
        return self.dirty_tracker.is_dirty(type_name)

    def is_form_dirty(self) -> bool:
        return self.dirty_tracker.is_form_dirty()

    def has_validation_error(self, type_name: str) -> bool:
        return has_validation_error(self._trees.get(type_name))

    def invalid_types(self) -> List[str]:
        return [t for t in self._known_types if self.has_validation_error(t)]

    def validation_messages(self) -> List[str]:
        messages: List[str] = []
        for type_name in self._known_types:
            messages.extend(validate_root(type_name, self._trees.get(type_name)))
        return messages

    @property
    def can_save(self) -> bool:
        return not self._readonly and self.is_form_dirty()

    @property
    def can_reset(self) -> bool:
        return not self._readonly and self.is_form_dirty()

    def operator_choices(self) -> List[Tuple[str, str]]:
        """``(token, label)`` pairs for an operator picker, in enum order."""
        return [(op.value, OPERATOR_LABELS[op]) for op in Operator]

    def field_options(self) -> List[str]:
        """Field names offered when no field lookup applies."""
        return list(self.config.get("field_options", []))

    def type_summaries(self) -> List[TypeSummary]:
        return [
            TypeSummary(
                name=type_name,
                selected=type_name == self._selected,
                has_rules=self.has_rules(type_name),
                rule_count=self.get_rule_count(type_name),
                dirty=self.is_dirty(type_name),
                has_error=self.has_validation_error(type_name),
            )
            for type_name in self._known_types
        ]

    # ------------------------------------------------------------------
    # Rule lifecycle
    # ------------------------------------------------------------------

    def create_new_rule(self, type_name: str) -> bool:
        """Give a type its first rule: one group with one empty condition."""
        if not self._writable("create_new_rule"):
            return False
        if type_name not in self._known_types:
            logger.debug(f"create_new_rule: unknown type '{type_name}'")
            return False
        if type_name in self._trees:
            logger.debug(f"create_new_rule: '{type_name}' already has a rule")
            return False
        self._trees[type_name] = rule_tree.create_root()
        logger.info(f"Created rule for {type_name}")
        return True

    def delete_rule(self, type_name: str) -> bool:
        """Remove a type's tree after confirmation."""
        if not self._writable("delete_rule"):
            return False
        if type_name not in self._trees:
            logger.debug(f"delete_rule: '{type_name}' has no rule")
            return False
        message = self.config.get("confirm_delete_message", "Delete {type}?").format(type=type_name)
        if not self.confirm(message):
            logger.info(f"Delete of {type_name} cancelled")
            return False
        del self._trees[type_name]
        if self._selected == type_name:
            self._selected = None
        logger.info(f"Deleted rule for {type_name}")
        return True

    # ------------------------------------------------------------------
    # Node edits
    # ------------------------------------------------------------------

    def _tree_for_edit(self, type_name: str, action: str) -> Optional[RootRule]:
        if not self._writable(action):
            return None
        tree = self._trees.get(type_name)
        if tree is None:
            logger.debug(f"{action}: '{type_name}' has no rule")
        return tree

    def add_or_group(self, type_name: str) -> bool:
        tree = self._tree_for_edit(type_name, "add_or_group")
        if tree is None:
            return False
        rule_tree.add_or_group(tree)
        return True

    def remove_or_group(self, type_name: str, group_index: int) -> bool:
        tree = self._tree_for_edit(type_name, "remove_or_group")
        if tree is None:
            return False
        return rule_tree.remove_or_group(tree, group_index)

    def add_condition(self, type_name: str, group_index: int) -> bool:
        tree = self._tree_for_edit(type_name, "add_condition")
        if tree is None:
            return False
        group = rule_tree.get_group(tree, group_index)
        if group is None:
            logger.debug(f"add_condition: {type_name} has no group {group_index}")
            return False
        rule_tree.add_condition(group)
        return True

    def remove_condition(self, type_name: str, group_index: int, condition_index: int) -> bool:
        tree = self._tree_for_edit(type_name, "remove_condition")
        if tree is None:
            return False
        group = rule_tree.get_group(tree, group_index)
        if group is None:
            logger.debug(f"remove_condition: {type_name} has no group {group_index}")
            return False
        return rule_tree.remove_condition(group, condition_index)

    def toggle_enabled(
        self,
        type_name: str,
        group_index: Optional[int] = None,
        condition_index: Optional[int] = None,
    ) -> bool:
        """
        Flip one node's ``enabled`` flag.

        The node is the root when no index is given, a group with
        *group_index* alone, and a condition with both.
        """
        tree = self._tree_for_edit(type_name, "toggle_enabled")
        if tree is None:
            return False
        if group_index is None:
            if condition_index is not None:
                return False
            rule_tree.toggle_enabled(tree)
            return True
        if condition_index is None:
            node = rule_tree.get_group(tree, group_index)
        else:
            node = rule_tree.get_condition(tree, group_index, condition_index)
        if node is None:
            return False
        rule_tree.toggle_enabled(node)
        return True

    def update_condition(
        self,
        type_name: str,
        group_index: int,
        condition_index: int,
        *,
        field: Optional[str] = None,
        operator: Optional[Union[Operator, str]] = None,
        value: Optional[str] = None,
    ) -> bool:
        """
        Edit a condition's field, operator and/or value.

        Arguments left as None are not changed.  An empty string clears a
        part (an empty operator token unsets the operator).

        Raises:
            RuleDataError: If *operator* names no operator, or field/value
                are not strings
        """
        tree = self._tree_for_edit(type_name, "update_condition")
        if tree is None:
            return False
        condition = rule_tree.get_condition(tree, group_index, condition_index)
        if condition is None:
            logger.debug(
                f"update_condition: {type_name} has no condition {group_index}/{condition_index}"
            )
            return False
        self._apply_condition_edit(condition, field, operator, value)
        return True

    @staticmethod
    def _apply_condition_edit(
        condition: ConditionRule,
        field: Optional[str],
        operator: Optional[Union[Operator, str]],
        value: Optional[str],
    ) -> None:
        for name, text in (("field", field), ("value", value)):
            if text is not None and not isinstance(text, str):
                raise RuleDataError(f"Condition '{name}' must be a string")
        # Parse first so a bad token leaves the condition untouched.
        parsed = Operator.parse(operator) if operator is not None else condition.operator
        if field is not None:
            condition.field = field
        if value is not None:
            condition.value = value
        condition.operator = parsed

    # ------------------------------------------------------------------
    # Save / reset
    # ------------------------------------------------------------------

    def _commit(self) -> Dict[str, Dict[str, Any]]:
        invalid = self.invalid_types()
        if invalid:
            raise ValidationBlocked(invalid)
        payload = {
            type_name: self._trees[type_name].to_dict()
            for type_name in self._known_types
            if type_name in self._trees
        }
        self._snapshot = copy.deepcopy(payload)
        return payload

    def save_all(self) -> StoreResult:
        """
        Commit every live tree to the snapshot.

        Nothing is committed unless every type is valid.  The live trees
        themselves are left as they are.
        """
        if not self._writable("save_all"):
            return StoreResult(StoreOutcome.READONLY, "Store is readonly")
        if not self.is_form_dirty():
            message = "Nothing to save"
            self.notify(message)
            return StoreResult(StoreOutcome.NOTHING_TO_CHANGE, message)

        dirty = self.dirty_tracker.dirty_types()
        try:
            payload = self._commit()
        except ValidationBlocked as e:
            logger.warning(f"Save blocked by invalid rules: {list(e.invalid_types)}")
            self.notify(str(e))
            return StoreResult(StoreOutcome.VALIDATION_BLOCKED, str(e), invalid_types=e.invalid_types)

        logger.info(f"Saved rules (changed: {dirty}): {json.dumps(payload)}")
        message = "All rules saved"
        self.notify(message)
        return StoreResult(StoreOutcome.SAVED, message, payload=copy.deepcopy(payload))

    def reset_all(self) -> StoreResult:
        """Discard every edit since the last save, after confirmation."""
        if not self._writable("reset_all"):
            return StoreResult(StoreOutcome.READONLY, "Store is readonly")
        if not self.is_form_dirty():
            message = "Nothing to reset"
            self.notify(message)
            return StoreResult(StoreOutcome.NOTHING_TO_CHANGE, message)

        if not self.confirm(self.config.get("confirm_reset_message", "Reset all changes?")):
            logger.info("Reset cancelled")
            return StoreResult(StoreOutcome.CANCELLED, "Reset cancelled")

        had_tree = self._selected in self._trees
        # Replace the collection wholesale; no node from before survives.
        self._trees = self._build_trees(self._snapshot)
        if had_tree and self._selected not in self._trees:
            self._selected = None
        logger.info(f"Reset {len(self._trees)} rule tree(s) to the saved state")
        message = "All changes reset"
        self.notify(message)
        return StoreResult(StoreOutcome.RESET, message)
