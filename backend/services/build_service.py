"""
Build Service - Runs avatar builds for the HTTP API

Holds the process-wide workspace and its BuildCoordinator, and keeps track
of the last progress report so status can be polled.

A triggered build is reserved before the workspace is touched: while one
build is reserved or running, further triggers are refused without opening
documents or switching the active one.
"""
import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from config import PROJECT_ROOT, BUILDS_DIR_NAME
from avatars.schemas import BuildRequest, BuildResult, BuildResultType, BuildState, Platform, current_platform
from avatars.scene import (
    AvatarDescriptor,
    ComponentRegistry,
    DocumentError,
    EditorHost,
    Workspace,
    find_avatar_descriptor,
    find_avatar_root,
)
from avatars.pipeline import BuildCoordinator
from services.event_service import EventType

logger = logging.getLogger(__name__)


class BuildInProgressError(Exception):
    """Raised when a build is triggered while another one is reserved or running"""
    pass


class BuildService:
    """
    Build service - entry point for triggered builds

    Args:
        project_root: Project the documents and builds live in
        registry: Component registry used to load documents
        host: Editor host state
    """

    def __init__(
        self,
        project_root: Path = PROJECT_ROOT,
        registry: Optional[ComponentRegistry] = None,
        host: Optional[EditorHost] = None
    ):
        self.workspace = Workspace(project_root, registry)
        self.coordinator = BuildCoordinator(self.workspace, host=host)
        self.builds_dir = self.workspace.project_root / BUILDS_DIR_NAME

        self.progress = 0.0
        self.status_message = ""
        self._reserved = False
        self._reserve_lock = threading.Lock()
        self.coordinator.events.subscribe(EventType.BUILD_STARTED, self._on_started)
        self.coordinator.events.subscribe(EventType.BUILD_PROGRESS, self._on_progress)

    def _on_started(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.progress = 0.0
        self.status_message = "Build started"

    def _on_progress(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.progress = payload.get("progress", self.progress)
        self.status_message = payload.get("status", self.status_message)

    @property
    def is_busy(self) -> bool:
        return self._reserved or self.coordinator.is_building or self.coordinator.state != BuildState.IDLE

    def prepare_build(
        self,
        document_path: str,
        node_path: Optional[str] = None,
        platform: Optional[Platform] = None,
        filename: Optional[str] = None
    ) -> BuildRequest:
        """
        Reserve the service and open the document to build from

        Without node_path the first active avatar of the document is built.
        The reservation is held until run_build() finishes. When the request
        cannot be prepared the workspace layout is put back and the
        reservation released.

        Raises:
            BuildInProgressError: If a build is already reserved or running
            DocumentError: If the document, node or avatar cannot be found
        """
        with self._reserve_lock:
            if self.is_busy:
                raise BuildInProgressError("A build is already in progress.")
            self._reserved = True

        setup = self.workspace.get_setup()
        try:
            return self._make_request(document_path, node_path, platform, filename)
        except Exception:
            self.workspace.restore_setup(setup)
            self._reserved = False
            raise

    def _make_request(
        self,
        document_path: str,
        node_path: Optional[str],
        platform: Optional[Platform],
        filename: Optional[str]
    ) -> BuildRequest:
        document = self.workspace.open_document(document_path)
        self.workspace.set_active(document)
        logger.info(f"[BuildService] Build requested for '{document.name}' (node: {node_path or 'auto'})")

        if node_path:
            node = document.find(node_path)
            if node is None:
                raise DocumentError(f"Node not found: {node_path}")
            root = find_avatar_root(node)
            descriptor = root.get_component(AvatarDescriptor) if root is not None else None
        else:
            descriptor = find_avatar_descriptor(document)
            if descriptor is None or descriptor.node is None:
                raise DocumentError("No active avatar found in the active document.")
            node = descriptor.node

        target = platform
        if target is None:
            target = descriptor.target if descriptor is not None else Platform.NONE
            if target == Platform.NONE:
                target = current_platform()

        return BuildRequest(
            subject=node,
            target_platform=target,
            output_directory=self.builds_dir,
            filename=filename,
        )

    async def run_build(self, request: BuildRequest) -> BuildResult:
        """Run a prepared build and release the reservation"""
        try:
            return await self.coordinator.build(request)
        finally:
            self._reserved = False

    def run_build_in_background(self, request: BuildRequest) -> None:
        """
        Run a prepared build on its own event loop

        Called from a worker thread so blocking stages never stall the
        server loop that answers status polls.
        """
        result = asyncio.run(self.run_build(request))
        logger.info(f"[BuildService] Background build finished: {result.type.name}")

    async def trigger_build(
        self,
        document_path: str,
        node_path: Optional[str] = None,
        platform: Optional[Platform] = None,
        filename: Optional[str] = None
    ) -> BuildResult:
        """
        Prepare and run a build in one call

        Returns ALREADY_BUILDING, without touching the workspace, while
        another build is reserved or running.

        Raises:
            DocumentError: If the document, node or avatar cannot be found
        """
        try:
            request = self.prepare_build(document_path, node_path, platform, filename)
        except BuildInProgressError as e:
            logger.warning(f"[BuildService] {e}")
            return BuildResult.failure(BuildResultType.ALREADY_BUILDING, str(e))
        return await self.run_build(request)

    def get_status(self) -> Dict[str, Any]:
        last = self.coordinator.last_result
        return {
            "state": self.coordinator.state.value,
            "is_building": self.is_busy,
            "progress": self.progress,
            "status": self.status_message,
            "last_result": last,
        }

    def artifact_path(self, filename: str) -> Optional[Path]:
        """Path of a built bundle, or None. Only bare filenames are accepted."""
        name = Path(filename).name
        if not name or name != filename:
            return None
        path = self.builds_dir / name
        return path if path.is_file() else None


_build_service: Optional[BuildService] = None


def get_build_service() -> BuildService:
    """Process-wide build service, created on first use"""
    global _build_service
    if _build_service is None:
        _build_service = BuildService()
    return _build_service


__all__ = ["BuildService", "BuildInProgressError", "get_build_service"]
