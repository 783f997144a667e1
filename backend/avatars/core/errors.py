"""
Stage errors raised inside a build

Every stage after validation reports failure by raising a StageError. The
BuildCoordinator rolls the workspace back and turns the error into a
BuildResult of the carried kind.
"""
from avatars.schemas import BuildResultType


class StageError(Exception):
    """Raised when a build stage fails"""

    def __init__(self, message: str, result_type: BuildResultType = BuildResultType.FAILED):
        super().__init__(message)
        self.message = message
        self.result_type = result_type


class WorkspaceError(StageError):
    """Raised when the workspace cannot be prepared, saved or restored"""
    pass


class StepExecutionError(StageError):
    """Raised when a compile or remove-on-build step fails"""
    pass


class SanitizationError(StageError):
    """Raised when tombstones survive every cleanup attempt"""
    pass


class PackagingError(StageError):
    """Raised when the bundle cannot be produced"""
    pass


class BuildCancelledError(StageError):
    """Raised when a build is cancelled through its token"""

    def __init__(self, message: str = "Build was cancelled."):
        super().__init__(message, BuildResultType.FAILED)


__all__ = [
    "StageError",
    "WorkspaceError",
    "StepExecutionError",
    "SanitizationError",
    "PackagingError",
    "BuildCancelledError",
]
