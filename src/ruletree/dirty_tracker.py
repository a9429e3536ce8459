"""
Change detection between live rule trees and the last saved snapshot.

The tracker holds no state of its own.  It pulls the snapshot, the live
trees and the known type list from the owner on every query, so the
answer is never stale.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Sequence

from .models import RootRule

SnapshotProvider = Callable[[], Mapping[str, Dict[str, Any]]]
LiveProvider = Callable[[], Mapping[str, RootRule]]
TypesProvider = Callable[[], Sequence[str]]


def structurally_equal(a: Any, b: Any) -> bool:
    """
    Compare two raw values field by field.

    Mappings must have the same key set, sequences the same items in the
    same order.  A bool only ever equals a bool, so ``True`` differs from
    ``1`` and from ``"true"``.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, Mapping) or isinstance(b, Mapping):
        if not (isinstance(a, Mapping) and isinstance(b, Mapping)):
            return False
        if set(a.keys()) != set(b.keys()):
            return False
        return all(structurally_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        if not (isinstance(a, (list, tuple)) and isinstance(b, (list, tuple))):
            return False
        if len(a) != len(b):
            return False
        return all(structurally_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


class DirtyTracker:
    """Answers "has this type changed since the last save?"."""

    def __init__(
        self,
        snapshot_provider: SnapshotProvider,
        live_provider: LiveProvider,
        types_provider: TypesProvider,
    ) -> None:
        self._snapshot = snapshot_provider
        self._live = live_provider
        self._types = types_provider

    def is_dirty(self, type_name: str) -> bool:
        saved = self._snapshot().get(type_name)
        live = self._live().get(type_name)
        if saved is None and live is None:
            return False
        if saved is None or live is None:
            return True
        return not structurally_equal(saved, live.to_dict())

    def _candidate_types(self) -> List[str]:
        # Known types first, then anything else either side still holds.
        ordered = list(self._types())
        seen = set(ordered)
        for type_name in list(self._snapshot()) + list(self._live()):
            if type_name not in seen:
                ordered.append(type_name)
                seen.add(type_name)
        return ordered

    def dirty_types(self) -> List[str]:
        return [t for t in self._candidate_types() if self.is_dirty(t)]

    def is_form_dirty(self) -> bool:
        return any(self.is_dirty(t) for t in self._candidate_types())
