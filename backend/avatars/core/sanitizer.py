"""
Graph Sanitizer - Purges tombstone components before packaging

A tombstone (a MissingComponent, or an entry whose component vanished)
aborts serialization, so the avatar is swept three times:

1. Missing-reference sweep over every node
2. Residual check, with one forced cleanup when anything is left
3. Final guard right before the prefab is written

Persisting and packaging can each expose new tombstones, which is why one
sweep is not enough.
"""
import logging
from typing import List, Tuple

from avatars.scene import Node, NodeLockedError, is_tombstone
from avatars.core.errors import SanitizationError

logger = logging.getLogger(__name__)


class GraphSanitizer:
    """GraphSanitizer - Removes unresolved components from an avatar"""

    def remove_missing_components(self, root: Node) -> int:
        """
        Sweep every node under root

        Nodes that refuse edits are logged and skipped.

        Returns:
            Number of tombstones removed
        """
        removed = 0
        for node in root.walk():
            try:
                count = node.remove_missing_components()
            except NodeLockedError as e:
                logger.warning(f"[GraphSanitizer] Skipped '{node.name}': {e}")
                continue
            if count:
                logger.info(f"[GraphSanitizer] Removed {count} missing component(s) from '{node.name}'")
            removed += count
        return removed

    def find_missing_components(self, root: Node) -> List[Tuple[Node, int]]:
        """Every remaining tombstone as (node, component index)"""
        problems = []
        for node in root.walk():
            for index, component in enumerate(node.components):
                if is_tombstone(component):
                    problems.append((node, index))
        return problems

    def force_clean(self, problems: List[Tuple[Node, int]]) -> None:
        """One more removal attempt per offending node"""
        attempted = set()
        for node, index in problems:
            if id(node) in attempted:
                continue
            attempted.add(id(node))
            try:
                node.remove_missing_components()
                logger.info(f"[GraphSanitizer] Force removed missing component at index {index} from '{node.name}'")
            except NodeLockedError as e:
                logger.warning(
                    f"[GraphSanitizer] Failed to force clean component at index {index} from '{node.name}': {e}"
                )

    def sanitize(self, root: Node) -> int:
        """
        Missing-reference sweep followed by the residual check

        Returns:
            Number of tombstones removed

        Raises:
            SanitizationError: If tombstones survive the forced cleanup
        """
        logger.info("[GraphSanitizer] Cleaning up missing components from the avatar and its children...")
        removed = self.remove_missing_components(root)

        problems = self.find_missing_components(root)
        if not problems:
            return removed

        logger.warning(f"[GraphSanitizer] Found {len(problems)} problematic component(s). Attempting to clean them up...")
        self.force_clean(problems)

        problems = self.find_missing_components(root)
        if problems:
            lines = [f"'{node.name}' at component index {index}" for node, index in problems]
            for line in lines:
                logger.error(f"[GraphSanitizer]   - {line}")
            raise SanitizationError(
                f"Avatar contains {len(problems)} problematic component(s) that prevent prefab creation. "
                f"Please fix these issues manually:\n" + "\n".join(f"\t{line}" for line in lines)
            )
        return removed

    def final_guard(self, root: Node) -> int:
        """Last sweep before serialization"""
        removed = self.remove_missing_components(root)
        if removed:
            logger.info(f"[GraphSanitizer] Final cleanup removed {removed} missing component(s)")
        return removed


__all__ = ["GraphSanitizer"]
