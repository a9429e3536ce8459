"""
ruletree - editable AND/OR rule sets keyed by rule type.

Each rule type owns at most one AND root, which holds OR groups of
``field operator value`` conditions.  `RuleSetStore` is the entry point:
it owns the live trees, the last-saved snapshot, selection and the
readonly flag, and answers the dirty/validity questions a UI asks.
"""

import logging
import sys

from .version import __version__

__author__ = "ruletree contributors"
__license__ = "MIT"

# Root of the package logger hierarchy.  An embedding application can
# re-parent it with set_root_logger_name() so records land under its own
# managed logger tree.
_ROOT_LOGGER_NAME: str = "ruletree"

_SUBMODULE_NAMES = (
    "config", "rule_tree", "rule_validation", "dirty_tracker",
    "rule_set_store", "field_lookup", "rule_loader",
)


def set_root_logger_name(name: str) -> None:
    """Re-parent the package loggers under *name*."""
    global _ROOT_LOGGER_NAME
    _ROOT_LOGGER_NAME = name

    # Submodules bind ``logger`` at import time, so rebind the ones
    # already loaded.
    for suffix in _SUBMODULE_NAMES:
        module = sys.modules.get(f"ruletree.{suffix}")
        if module is not None and hasattr(module, "logger"):
            module.logger = package_logger(module.__name__)


def package_logger(module: str) -> logging.Logger:
    """Return a child logger under the package hierarchy.

    Usage in submodules::

        from . import package_logger
        logger = package_logger(__name__)

    By default this yields e.g. ``ruletree.rule_set_store``; after
    ``set_root_logger_name("myapp.rules")`` it yields
    ``myapp.rules.rule_set_store``.
    """
    base = _ROOT_LOGGER_NAME
    prefix = "ruletree."
    if module.startswith(prefix):
        return logging.getLogger(f"{base}.{module[len(prefix):]}")
    return logging.getLogger(base)


from .models import ConditionRule, Operator, OrGroup, RootRule, RuleDataError
from .rule_set_store import RuleSetStore, StoreOutcome, StoreResult, TypeSummary, ValidationBlocked
from .field_lookup import CaseType, FieldLookup, Section

__all__ = [
    "__version__",
    "ConditionRule",
    "Operator",
    "OrGroup",
    "RootRule",
    "RuleDataError",
    "RuleSetStore",
    "StoreOutcome",
    "StoreResult",
    "TypeSummary",
    "ValidationBlocked",
    "FieldLookup",
    "Section",
    "CaseType",
    "package_logger",
    "set_root_logger_name",
]
