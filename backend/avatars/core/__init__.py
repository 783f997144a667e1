"""
Core Pipeline Components

These components form the build pipeline for avatar bundles:
1. Namer - Default filenames and scratch paths
2. Validator - Read-only prerequisite checks
3. Workspace Guard - Snapshot, rollback and persistence
4. Step Runner - Compile and remove-on-build steps
5. Sanitizer - Tombstone removal
6. Packager - Prefab serialization and bundling
"""
from .errors import (
    StageError,
    WorkspaceError,
    StepExecutionError,
    SanitizationError,
    PackagingError,
    BuildCancelledError,
)
from .cancellation import CancellationToken
from .progress import ProgressReporter
from .namer import generate_default_filename, generate_random_hash, generate_temp_path
from .validator import PrerequisiteValidator
from .workspace_guard import WorkspaceGuard
from .step_runner import StepRunner
from .sanitizer import GraphSanitizer
from .packager import Packager

__all__ = [
    "StageError",
    "WorkspaceError",
    "StepExecutionError",
    "SanitizationError",
    "PackagingError",
    "BuildCancelledError",
    "CancellationToken",
    "ProgressReporter",
    "generate_default_filename",
    "generate_random_hash",
    "generate_temp_path",
    "PrerequisiteValidator",
    "WorkspaceGuard",
    "StepRunner",
    "GraphSanitizer",
    "Packager",
]
