"""
Workspace Guard - Snapshot and rollback of the workspace composition

Responsibilities:
- Capture which documents are open, and how, before a build mutates anything
- Put that composition back when a build fails
- Give each build a clean scratch directory
- Persist the workspace between stages

Only the composition is restored. Edits made to document content are the
business of whoever made them.
"""
import logging
import shutil
from pathlib import Path
from typing import Optional

from avatars.schemas import WorkspaceSnapshot
from avatars.core.errors import WorkspaceError

logger = logging.getLogger(__name__)


class WorkspaceGuard:
    """
    WorkspaceGuard - Owns the single snapshot of a build

    Args:
        workspace: Workspace the build runs against
    """

    def __init__(self, workspace):
        self.workspace = workspace
        self._active: Optional[WorkspaceSnapshot] = None

    @property
    def has_snapshot(self) -> bool:
        return self._active is not None

    def snapshot(self) -> WorkspaceSnapshot:
        """
        Capture the current composition

        Raises:
            WorkspaceError: If a snapshot is already held
        """
        if self._active is not None:
            raise WorkspaceError("A workspace snapshot is already active.")

        self._active = WorkspaceSnapshot(documents=self.workspace.get_setup())
        logger.debug(f"[WorkspaceGuard] Snapshot taken ({len(self._active.documents)} document(s))")
        return self._active

    def restore(self, snapshot: WorkspaceSnapshot) -> None:
        """
        Re-establish a captured composition and release the snapshot

        The snapshot is released even when restoring fails.
        """
        try:
            self.workspace.restore_setup(snapshot.documents)
            logger.info("[WorkspaceGuard] Workspace restored from snapshot")
        finally:
            self._release(snapshot)

    def discard(self, snapshot: WorkspaceSnapshot) -> None:
        """Release a snapshot without restoring it"""
        self._release(snapshot)

    def _release(self, snapshot: WorkspaceSnapshot) -> None:
        if self._active is snapshot:
            self._active = None

    def prepare_temp_directory(self, path: Path) -> Path:
        """
        Give the build an empty scratch directory

        A leftover directory from a stale run is deleted first.

        Raises:
            WorkspaceError: If the directory cannot be deleted or created
        """
        path = Path(path)
        if path.exists():
            try:
                shutil.rmtree(path)
            except OSError as e:
                raise WorkspaceError(f"Failed to delete temporary directory: {e}") from e

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Failed to create temporary directory: {e}") from e

        logger.debug(f"[WorkspaceGuard] Temporary directory ready: {path}")
        return path

    def persist(self, reason: str = "") -> None:
        """
        Save every open document and refresh their asset index entries

        Raises:
            WorkspaceError: If any document fails to save
        """
        if not self.workspace.save_open_documents():
            message = "Failed to save open documents."
            if reason:
                message = f"Failed to save open documents {reason}."
            raise WorkspaceError(message)

        saved = [document.path for document in self.workspace.documents if document.path is not None]
        if saved:
            self.workspace.asset_index.refresh(*saved)


__all__ = ["WorkspaceGuard"]
