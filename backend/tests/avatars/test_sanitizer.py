"""
Tests for the Graph Sanitizer

Tombstones are removed everywhere under the avatar; any that survive the
forced cleanup abort packaging with every offender listed.
"""
import pytest

from avatars.core.errors import SanitizationError
from avatars.core.sanitizer import GraphSanitizer
from avatars.scene import Component, MissingComponent, Node


class TestGraphSanitizer:
    """Test suite for GraphSanitizer"""

    @pytest.fixture
    def sanitizer(self):
        return GraphSanitizer()

    @pytest.fixture
    def avatar(self):
        """Avatar with tombstones on the root and a nested child"""
        root = Node("Avatar")
        root.add_component(Component())
        root.add_component(MissingComponent("OldShader"))
        body = root.add_child(Node("Body"))
        hands = body.add_child(Node("Hands", active=False))
        hands.add_component(MissingComponent("FingerIK"))
        hands.add_component(None)
        return root

    def test_sweep_removes_every_tombstone(self, sanitizer, avatar):
        """Test tombstones on nested and inactive nodes are removed"""
        assert sanitizer.remove_missing_components(avatar) == 3
        assert sanitizer.find_missing_components(avatar) == []
        assert len(avatar.components) == 1

    def test_sweep_is_idempotent(self, sanitizer, avatar):
        """Test a second sweep on a clean graph removes nothing"""
        sanitizer.remove_missing_components(avatar)
        assert sanitizer.remove_missing_components(avatar) == 0

    def test_find_reports_node_and_index(self, sanitizer, avatar):
        """Test offenders are addressed by node and component index"""
        problems = sanitizer.find_missing_components(avatar)
        assert [(node.name, index) for node, index in problems] == [
            ("Avatar", 1),
            ("Hands", 0),
            ("Hands", 1),
        ]

    def test_sanitize_clean_graph(self, sanitizer, avatar):
        """Test sanitize returns the number removed"""
        assert sanitizer.sanitize(avatar) == 3

    def test_locked_node_is_skipped_then_reported(self, sanitizer, avatar):
        """Test tombstones on a node refusing edits fail sanitization"""
        locked = avatar.add_child(Node("Template"))
        locked.add_component(MissingComponent("Gone"))
        locked.locked = True

        with pytest.raises(SanitizationError) as exc_info:
            sanitizer.sanitize(avatar)

        message = exc_info.value.message
        assert "'Template' at component index 0" in message
        assert "1 problematic component(s)" in message
        # Everything removable was still removed
        assert avatar.get_components(MissingComponent) == []

    def test_forced_clean_recovers(self, sanitizer, avatar, monkeypatch):
        """Test residues that appear after the first sweep are force cleaned"""
        original = sanitizer.remove_missing_components

        def root_only_sweep(root):
            return root.remove_missing_components()

        monkeypatch.setattr(sanitizer, "remove_missing_components", root_only_sweep)
        assert sanitizer.sanitize(avatar) == 1
        assert sanitizer.find_missing_components(avatar) == []
        assert original(avatar) == 0

    def test_final_guard(self, sanitizer, avatar):
        """Test the final guard sweeps like the first pass"""
        assert sanitizer.final_guard(avatar) == 3
        assert sanitizer.final_guard(avatar) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
