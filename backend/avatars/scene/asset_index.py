"""
Asset Index - Stable identities for files in the project

Every file under the project root gets a GUID the first time it is seen.
Packaging only accepts files the index can identify, so anything written
during a build must be followed by refresh().
"""
import logging
import uuid
from pathlib import Path
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)


class AssetIndex:
    """
    Maps project-relative file paths to GUIDs

    Args:
        project_root: Directory the index covers
        excluded: Top-level directory names never indexed (build outputs)
    """

    def __init__(self, project_root: Path, excluded: Iterable[str] = ()):
        self.project_root = Path(project_root).resolve()
        self.excluded = set(excluded)
        self._guids: Dict[str, str] = {}

    def _relative(self, path: Path) -> Optional[str]:
        path = Path(path)
        if not path.is_absolute():
            path = self.project_root / path
        try:
            return path.resolve().relative_to(self.project_root).as_posix()
        except ValueError:
            return None

    def _is_excluded(self, relative: str) -> bool:
        return relative.split("/", 1)[0] in self.excluded

    def can_index(self, path: Path) -> bool:
        """Whether files under path can get a GUID: strictly inside the root and not excluded"""
        relative = self._relative(path)
        return relative is not None and relative != "." and not self._is_excluded(relative)

    def refresh(self, *paths: Path) -> int:
        """
        Re-scan the project root, or only the given files and directories

        New files receive a GUID, files that vanished from the scanned area
        are dropped, known files keep theirs. Excluded directories are
        skipped.

        Args:
            paths: Optional files or directories to limit the scan to

        Returns:
            Number of indexed files
        """
        if not self.project_root.exists():
            self._guids.clear()
            return 0

        if paths:
            scopes = [r for r in (self._relative(p) for p in paths) if r is not None]
        else:
            scopes = ["."]

        added = 0
        removed = 0
        for scope in scopes:
            scope_path = self.project_root / scope
            if scope_path.is_file():
                candidates = [scope_path]
            elif scope_path.is_dir():
                candidates = scope_path.rglob("*")
            else:
                candidates = []

            seen = set()
            for file_path in candidates:
                if not file_path.is_file():
                    continue
                relative = file_path.relative_to(self.project_root).as_posix()
                if self._is_excluded(relative):
                    continue
                seen.add(relative)
                if relative not in self._guids:
                    self._guids[relative] = uuid.uuid4().hex
                    added += 1

            prefix = scope + "/"
            stale = [
                key for key in self._guids
                if key not in seen and (scope == "." or key == scope or key.startswith(prefix))
            ]
            for key in stale:
                del self._guids[key]
            removed += len(stale)

        logger.debug(f"[AssetIndex] Refreshed: {len(self._guids)} files ({added} new, {removed} removed)")
        return len(self._guids)

    def guid_for(self, path: Path) -> Optional[str]:
        """GUID of an indexed file, or None if the file is unknown or outside the project"""
        relative = self._relative(path)
        if relative is None:
            return None
        return self._guids.get(relative)

    def relative_path(self, path: Path) -> Optional[str]:
        """Project-relative path, or None when outside the project root"""
        return self._relative(path)

    def __len__(self):
        return len(self._guids)


__all__ = ["AssetIndex"]
