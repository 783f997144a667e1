"""
Prerequisite Validator - Read-only checks before a build

Responsibilities:
- Refuse a build while another one holds the lock
- Refuse a build while the host is busy (compiling or playing)
- Check the target platform is resolved and supported
- Check the subject lives in an open, loaded document
- Check a caller supplied temp directory is inside the project

Nothing here mutates state, so a rejection needs no rollback.
"""
import logging
from typing import Iterable, List, Optional

from config import SUPPORTED_PLATFORMS
from avatars.schemas import BuildRequest, BuildResult, BuildResultType, Platform

logger = logging.getLogger(__name__)


class PrerequisiteValidator:
    """
    PrerequisiteValidator - Checks a request can be built

    Args:
        supported_platforms: Platforms accepted (defaults to AVATAR_SUPPORTED_PLATFORMS)
    """

    def __init__(self, supported_platforms: Optional[Iterable] = None):
        names = supported_platforms if supported_platforms is not None else SUPPORTED_PLATFORMS
        self.supported_platforms: List[Platform] = [Platform(name) for name in names]

    def is_supported(self, platform: Platform) -> bool:
        return platform != Platform.NONE and platform in self.supported_platforms

    def validate(self, request: BuildRequest, *, is_building: bool, host, workspace) -> BuildResult:
        """
        Validate a build request

        Checks run in order and the first failure is returned.

        Args:
            request: Build request to check
            is_building: Whether the build lock is held
            host: EditorHost with compiling/playing flags
            workspace: Workspace the subject must be open in

        Returns:
            Success echoing the output directory, or the first failure
        """
        if is_building:
            return BuildResult.failure(
                BuildResultType.ALREADY_BUILDING,
                "A build is already in progress."
            )

        if host.is_compiling:
            return BuildResult.failure(
                BuildResultType.EDITOR_COMPILING,
                "The editor is currently compiling scripts. Please wait until the compilation is complete."
            )

        if host.is_playing:
            return BuildResult.failure(
                BuildResultType.EDITOR_PLAYING,
                "The editor is currently in play mode. Please stop playing before building."
            )

        if request.target_platform == Platform.NONE:
            return BuildResult.failure(
                BuildResultType.INVALID_TARGET,
                "No build target specified. Please select a valid target platform."
            )

        if not self.is_supported(request.target_platform):
            return BuildResult.failure(
                BuildResultType.UNSUPPORTED_TARGET,
                f"The build target {request.target_platform.value} is not supported."
            )

        subject = request.subject
        if subject is None:
            return BuildResult.failure(
                BuildResultType.INVALID_GAME_OBJECT,
                "The avatar is not set or the node is invalid."
            )

        document = workspace.find_document(subject)
        if document is None or not workspace.is_loaded(document):
            return BuildResult.failure(
                BuildResultType.INVALID_GAME_OBJECT,
                "The document is not valid. Please ensure the document is open and loaded."
            )

        if request.temp_directory and not workspace.asset_index.can_index(
            workspace.resolve_path(request.temp_directory)
        ):
            return BuildResult.failure(
                BuildResultType.FAILED,
                f"The temporary directory '{request.temp_directory}' must be inside the project "
                f"'{workspace.project_root}' and outside its build output so its files can be indexed."
            )

        if not subject.active_in_hierarchy:
            logger.warning(
                f"[PrerequisiteValidator] Avatar node '{subject.name}' is not active in hierarchy. "
                "This might cause prefab creation to fail."
            )

        return BuildResult.success(output=str(request.output_directory))


__all__ = ["PrerequisiteValidator"]
