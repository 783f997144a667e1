"""
Build Pipeline - Orchestrates one avatar build

This module wires together all pipeline components:
Validator → WorkspaceGuard (snapshot) → StepRunner → GraphSanitizer → Packager

States:
    IDLE → VALIDATING → PREPARING → COMPILING → PROCESSING → PACKAGING → COMPLETED
    Any state after IDLE can end in FAILED; both terminal states return to IDLE.

Usage:
    coordinator = BuildCoordinator(workspace)
    result = await coordinator.build(BuildRequest(subject=node, target_platform=Platform.WINDOWS,
                                                  output_directory=Path("Builds")))
"""
import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from config import BUILDS_DIR_NAME
from avatars.schemas import (
    BuildRequest,
    BuildResult,
    BuildResultType,
    BuildState,
    Platform,
    current_platform,
)
from avatars.scene import EditorHost, Workspace, find_avatar_descriptor
from avatars.core.cancellation import CancellationToken
from avatars.core.errors import StageError, BuildCancelledError
from avatars.core.namer import generate_default_filename, generate_temp_path
from avatars.core.packager import Packager
from avatars.core.progress import ProgressReporter
from avatars.core.sanitizer import GraphSanitizer
from avatars.core.step_runner import StepRunner
from avatars.core.validator import PrerequisiteValidator
from avatars.core.workspace_guard import WorkspaceGuard
from services.event_service import EventBus, EventType

logger = logging.getLogger(__name__)


class BuildCoordinator:
    """
    Build coordinator - runs one build at a time against a workspace

    The coordinator owns the build lock and the event bus. Tests build a
    fresh coordinator instead of sharing one.

    Args:
        workspace: Workspace holding the avatar's document
        host: Editor host state (defaults to an idle host)
        event_bus: Bus receiving lifecycle events
        validator, guard, step_runner, sanitizer, packager: Stage overrides
        supported_platforms: Platforms the default validator accepts
    """

    def __init__(
        self,
        workspace: Workspace,
        host: Optional[EditorHost] = None,
        event_bus: Optional[EventBus] = None,
        validator: Optional[PrerequisiteValidator] = None,
        guard: Optional[WorkspaceGuard] = None,
        step_runner: Optional[StepRunner] = None,
        sanitizer: Optional[GraphSanitizer] = None,
        packager: Optional[Packager] = None,
        supported_platforms: Optional[Iterable] = None
    ):
        self.workspace = workspace
        self.host = host or EditorHost()
        self.events = event_bus or EventBus()
        self.validator = validator or PrerequisiteValidator(supported_platforms)
        self.guard = guard or WorkspaceGuard(workspace)
        self.step_runner = step_runner or StepRunner(self.guard)
        self.sanitizer = sanitizer or GraphSanitizer()
        self.packager = packager or Packager(workspace.asset_index, self.sanitizer)

        self._state = BuildState.IDLE
        self._is_building = False
        self._state_lock = threading.Lock()
        self.last_result: Optional[BuildResult] = None

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def is_building(self) -> bool:
        return self._is_building

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        try:
            self.events.emit(event_type, payload)
        except Exception as e:
            logger.warning(f"[BuildCoordinator] Failed to emit '{event_type}': {e}")

    def _emit_progress(self, value: float, status: str) -> None:
        self._emit(EventType.BUILD_PROGRESS, {"progress": value, "status": status})

    async def build(self, request: BuildRequest, token: Optional[CancellationToken] = None) -> BuildResult:
        """
        Run a build

        Returns exactly one BuildResult. Nothing is raised except
        asyncio.CancelledError when the calling task itself is cancelled,
        after the workspace has been restored.

        Args:
            request: What to build and where
            token: Optional cancellation token

        Returns:
            Success with the bundle path, or the failure kind and message
        """
        with self._state_lock:
            if self._is_building or self._state != BuildState.IDLE:
                logger.warning("[BuildCoordinator] A build is already in progress.")
                return BuildResult.failure(BuildResultType.ALREADY_BUILDING, "A build is already in progress.")
            self._state = BuildState.VALIDATING

        token = token or CancellationToken()
        progress = ProgressReporter([self._emit_progress, request.progress_callback])
        result: Optional[BuildResult] = None

        try:
            self._emit(EventType.BUILD_STARTED, {"request": request})
            progress.report(0.05, "Validating build prerequisites...")
            await asyncio.sleep(0)

            validation = self.validator.validate(
                request,
                is_building=self._is_building,
                host=self.host,
                workspace=self.workspace,
            )
            if validation.is_failed:
                result = validation
                return result

            self._fill_defaults(request)

            self._state = BuildState.PREPARING
            self._is_building = True
            snapshot = self.guard.snapshot()
            try:
                output = await self._run_stages(request, token, progress)
            except asyncio.CancelledError:
                self._rollback(snapshot)
                result = BuildResult.failure(BuildResultType.FAILED, BuildCancelledError().message)
                raise
            except StageError as e:
                self._rollback(snapshot)
                logger.error(f"[BuildCoordinator] Build failed: {e.message}")
                result = BuildResult.failure(e.result_type, e.message)
            except Exception as e:
                self._rollback(snapshot)
                logger.exception("[BuildCoordinator] Build failed with exception")
                result = BuildResult.failure(BuildResultType.FAILED, f"{e}\nSee log for details.")
            else:
                self.guard.discard(snapshot)
                result = BuildResult.success(output=str(output))
            return result

        except Exception as e:
            logger.exception("[BuildCoordinator] Build failed with exception")
            result = BuildResult.failure(BuildResultType.FAILED, f"{e}\nSee log for details.")
            return result

        finally:
            if result is not None:
                self._finish(result)
            self._is_building = False
            self._state = BuildState.IDLE

    async def _run_stages(self, request: BuildRequest, token: CancellationToken, progress: ProgressReporter) -> Path:
        """Every stage after validation. Raises on the first failure."""
        subject = request.subject

        # Preparing
        token.raise_if_cancelled()
        progress.report(0.10, "Preparing temporary directories...")
        await asyncio.sleep(0)
        self.guard.prepare_temp_directory(request.temp_directory)
        self.guard.persist("before building. Please ensure all documents can be saved")

        # Compiling
        self._state = BuildState.COMPILING
        token.raise_if_cancelled()
        progress.report(0.20, "Compiling steps...")
        await asyncio.sleep(0)
        await self.step_runner.run(subject, token, progress)

        # Processing
        self._state = BuildState.PROCESSING
        token.raise_if_cancelled()
        progress.report(0.60, "Processing prefab and dependencies...")
        await asyncio.sleep(0)
        self.sanitizer.sanitize(subject)
        self.packager.write_prefab(subject, request.temp_directory)
        await asyncio.sleep(0)

        # Packaging
        self._state = BuildState.PACKAGING
        token.raise_if_cancelled()
        progress.report(0.80, "Building bundle...")
        await asyncio.sleep(0)
        output = self.packager.bundle(
            request.temp_directory,
            request.output_directory,
            request.filename,
            request.target_platform,
            progress,
        )

        progress.report(0.95, "Cleaning up...")
        await asyncio.sleep(0)

        self._state = BuildState.COMPLETED
        progress.report(1.0, "Build completed successfully!")
        await asyncio.sleep(0)
        return output

    def _fill_defaults(self, request: BuildRequest) -> None:
        """Derive filename and temp directory the one time they are empty; anchor a relative temp directory at the project root"""
        if not request.filename:
            document = request.subject.scene
            request.filename = generate_default_filename(document.name, request.target_platform)
        if not request.temp_directory:
            request.temp_directory = generate_temp_path(self.workspace.project_root)
        elif not request.temp_directory.is_absolute():
            request.temp_directory = self.workspace.resolve_path(request.temp_directory)

    def _rollback(self, snapshot) -> None:
        """Restore the snapshot; a failed restore must not hide the build error"""
        try:
            self.guard.restore(snapshot)
        except Exception as e:
            logger.error(f"[BuildCoordinator] Failed to restore workspace: {e}")

    def _finish(self, result: BuildResult) -> None:
        self._state = BuildState.FAILED if result.is_failed else BuildState.COMPLETED
        self.last_result = result
        if result.is_failed:
            logger.error(f"[BuildCoordinator] Build failed ({result.type.name}): {result.message}")
        else:
            logger.info(f"[BuildCoordinator] Build succeeded: {result.output}")
        self._emit(EventType.BUILD_FINISHED, {"result": result})


async def build_active_avatar(
    coordinator: BuildCoordinator,
    output_directory: Optional[Path] = None,
    target_platform: Optional[Platform] = None,
    filename: Optional[str] = None,
    progress_callback: Optional[Callable[[float, str], None]] = None,
    token: Optional[CancellationToken] = None
) -> BuildResult:
    """
    Build the first active avatar of the active document

    Args:
        coordinator: Coordinator to run the build on
        output_directory: Defaults to <project_root>/Builds
        target_platform: Defaults to the descriptor's target, then the current platform
        filename: Optional bundle filename
        progress_callback: Optional progress sink
        token: Optional cancellation token

    Returns:
        The build result
    """
    workspace = coordinator.workspace
    descriptor = find_avatar_descriptor(workspace.active_document)
    if descriptor is None or descriptor.node is None:
        return BuildResult.failure(
            BuildResultType.INVALID_GAME_OBJECT,
            "No active avatar found in the active document."
        )

    platform = target_platform or descriptor.target
    if platform == Platform.NONE:
        platform = current_platform()

    request = BuildRequest(
        subject=descriptor.node,
        target_platform=platform,
        output_directory=output_directory or workspace.project_root / BUILDS_DIR_NAME,
        filename=filename,
        progress_callback=progress_callback,
    )
    return await coordinator.build(request, token)


__all__ = ["BuildCoordinator", "build_active_avatar"]
