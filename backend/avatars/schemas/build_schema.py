"""
Build Schema - Requests, Results and Bundle Contracts

This defines what a caller hands to the BuildCoordinator and what it gets
back, plus the records the Packager exchanges with bundle backends.

The subject of a request is a live scene node. It is typed loosely here so
the schemas stay importable without the scene model.
"""
import sys
from enum import Enum, IntFlag
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    """Build target platforms"""
    NONE = "none"  # Resolve to the current platform
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"
    ANDROID = "android"
    IOS = "ios"


def current_platform() -> Platform:
    """Platform of the running interpreter"""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform.startswith("linux"):
        return Platform.LINUX
    if sys.platform == "darwin":
        return Platform.MACOS
    return Platform.NONE


class BuildResultType(IntFlag):
    """
    Outcome of a build

    Every specific failure carries the FAILED bit, so a single bit test
    tells success from failure.
    """
    SUCCESS = 0
    FAILED = 1
    ALREADY_BUILDING = 2 | FAILED
    EDITOR_COMPILING = 4 | FAILED
    EDITOR_PLAYING = 8 | FAILED
    INVALID_TARGET = 16 | FAILED
    UNSUPPORTED_TARGET = 32 | FAILED
    INVALID_GAME_OBJECT = 64 | FAILED


class BuildResult(BaseModel):
    """Outcome of one build call"""
    type: BuildResultType = Field(BuildResultType.SUCCESS)
    message: Optional[str] = Field(None, description="Failure reason")
    output: Optional[str] = Field(None, description="Output path on success")

    @property
    def is_failed(self) -> bool:
        return bool(self.type & BuildResultType.FAILED)

    @property
    def is_success(self) -> bool:
        return not self.is_failed

    @classmethod
    def success(cls, output: Optional[str] = None) -> "BuildResult":
        return cls(type=BuildResultType.SUCCESS, output=output)

    @classmethod
    def failure(cls, result_type: BuildResultType, message: str) -> "BuildResult":
        return cls(type=result_type, message=message)


class BuildState(str, Enum):
    """Coordinator state machine"""
    IDLE = "idle"
    VALIDATING = "validating"
    PREPARING = "preparing"
    COMPILING = "compiling"
    PROCESSING = "processing"
    PACKAGING = "packaging"
    COMPLETED = "completed"
    FAILED = "failed"


class BuildRequest(BaseModel):
    """
    Parameters of one build

    The pipeline fills filename and temp_directory once when they are empty,
    resolves a relative temp_directory against the project root, and
    otherwise only reads the request. temp_directory must lie inside the
    project root so its files can be indexed.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    subject: Optional[Any] = Field(None, description="Root node of the avatar to package")
    target_platform: Platform = Field(Platform.NONE)
    output_directory: Path = Field(..., description="Directory the bundle is written to")
    filename: Optional[str] = Field(None, description="Bundle filename, generated when empty")
    temp_directory: Optional[Path] = Field(None, description="Scratch directory, generated when empty")
    progress_callback: Optional[Callable[[float, str], None]] = Field(None, exclude=True)


# Bundles

class BundleOptions(BaseModel):
    """Options handed to a bundle backend"""
    force_rebuild: bool = Field(True, description="Delete a stale bundle before writing")
    strict_mode: bool = Field(True, description="Escalate bundle warnings to errors")
    compression_level: int = Field(9, ge=0, le=9)


class BundleAsset(BaseModel):
    """An indexed file going into a bundle"""
    path: Path
    guid: str
    addressable_name: str


class BundleBuild(BaseModel):
    """One bundle to produce"""
    bundle_name: str
    assets: List[BundleAsset] = Field(default_factory=list)


class BundleManifest(BaseModel):
    """manifest.json written at the top of every bundle"""
    bundle_name: str
    platform: Platform
    backend: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    assets: Dict[str, Dict[str, str]] = Field(
        default_factory=dict,
        description="addressable name -> {guid, entry, sha256}"
    )


__all__ = [
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
