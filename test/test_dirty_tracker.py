"""
Tests for snapshot comparison and dirty tracking.
"""

from ruletree.dirty_tracker import DirtyTracker, structurally_equal
from ruletree.models import RootRule
from ruletree.rule_tree import create_root


class TestStructurallyEqual:
    """Test field-wise structural equality."""

    def test_key_order_does_not_matter(self):
        a = {"enabled": True, "operator": "AND", "children": []}
        b = {"children": [], "operator": "AND", "enabled": True}
        assert structurally_equal(a, b)

    def test_list_order_matters(self):
        assert not structurally_equal([1, 2], [2, 1])
        assert not structurally_equal([1], [1, 1])

    def test_key_sets_must_match(self):
        assert not structurally_equal({"a": 1}, {"a": 1, "b": None})

    def test_bool_is_not_string_or_int(self):
        assert not structurally_equal(True, "true")
        assert not structurally_equal(True, 1)
        assert not structurally_equal(0, False)
        assert structurally_equal(False, False)

    def test_nested(self):
        raw = create_root().to_dict()
        other = create_root().to_dict()
        assert structurally_equal(raw, other)
        other["children"][0]["children"][0]["value"] = "x"
        assert not structurally_equal(raw, other)

    def test_mapping_vs_list(self):
        assert not structurally_equal({}, [])


class TestDirtyTracker:
    """Test the dirty truth table."""

    def setup_method(self):
        self.snapshot = {}
        self.live = {}
        self.types = ["T1", "T2"]
        self.tracker = DirtyTracker(lambda: self.snapshot, lambda: self.live, lambda: self.types)

    def test_absent_both_sides(self):
        assert self.tracker.is_dirty("T1") is False
        assert self.tracker.is_form_dirty() is False

    def test_new_live_tree(self):
        self.live["T1"] = create_root()
        assert self.tracker.is_dirty("T1") is True
        assert self.tracker.dirty_types() == ["T1"]

    def test_deleted_live_tree(self):
        self.snapshot["T1"] = create_root().to_dict()
        assert self.tracker.is_dirty("T1") is True

    def test_equal_trees_clean(self):
        root = create_root()
        self.snapshot["T1"] = root.to_dict()
        self.live["T1"] = create_root(root)
        assert self.tracker.is_dirty("T1") is False

    def test_disabled_change_is_dirty(self):
        root = create_root()
        self.snapshot["T1"] = root.to_dict()
        root.children[0].children[0].enabled = False
        self.live["T1"] = root
        assert self.tracker.is_dirty("T1") is True

    def test_empty_root_differs_from_absent(self):
        self.live["T2"] = RootRule(children=[])
        assert self.tracker.is_dirty("T2") is True

    def test_pull_based(self):
        root = create_root()
        self.snapshot["T1"] = root.to_dict()
        self.live["T1"] = root
        assert self.tracker.is_dirty("T1") is False
        root.enabled = False
        assert self.tracker.is_dirty("T1") is True
        root.enabled = True
        assert self.tracker.is_dirty("T1") is False

    def test_untracked_types_still_count(self):
        self.live["EXTRA"] = create_root()
        assert self.tracker.is_form_dirty() is True
        assert self.tracker.dirty_types() == ["EXTRA"]
