"""
Schemas for the Avatar Build Pipeline

These schemas define the contracts between pipeline stages:
- Scene: Serialized documents and workspace layout
- Build: Requests, results and bundle records
"""
from .scene_schema import (
    ComponentModel,
    NodeModel,
    DocumentModel,
    DocumentSetup,
    WorkspaceSnapshot,
)
from .build_schema import (
    Platform,
    current_platform,
    BuildResultType,
    BuildResult,
    BuildState,
    BuildRequest,
    BundleOptions,
    BundleAsset,
    BundleBuild,
    BundleManifest,
)

__all__ = [
    # Scene
    "ComponentModel",
    "NodeModel",
    "DocumentModel",
    "DocumentSetup",
    "WorkspaceSnapshot",
    # Build
    "Platform",
    "current_platform",
    "BuildResultType",
    "BuildResult",
    "BuildState",
    "BuildRequest",
    "BundleOptions",
    "BundleAsset",
    "BundleBuild",
    "BundleManifest",
]
