"""
Pydantic schemas shared by the FastAPI endpoints.
"""
from typing import Optional

from pydantic import BaseModel, Field

from avatars.schemas import BuildResult, Platform


class BuildTriggerRequest(BaseModel):
    """Incoming payload when a build is triggered over HTTP."""

    document_path: str = Field(..., min_length=1, description="Project-relative path of the scene document.")
    node_path: Optional[str] = Field(
        default=None,
        description="Slash separated path of the avatar root. Defaults to the first active avatar.",
    )
    platform: Optional[Platform] = Field(
        default=None,
        description="Target platform. Defaults to the avatar's target, then the server platform.",
    )
    filename: Optional[str] = Field(default=None, description="Optional bundle filename override.")


class BuildResponse(BaseModel):
    """Outcome of a triggered build."""

    success: bool
    result_type: str = Field(..., description="BuildResultType name, e.g. SUCCESS or EDITOR_PLAYING")
    message: Optional[str] = None
    output: Optional[str] = None
    filename: Optional[str] = Field(default=None, description="Bundle filename for the artifacts endpoint.")

    @classmethod
    def from_result(cls, result: BuildResult) -> "BuildResponse":
        filename = None
        if result.output and result.is_success:
            filename = result.output.replace("\\", "/").rsplit("/", 1)[-1]
        return cls(
            success=result.is_success,
            result_type=result.type.name,
            message=result.message,
            output=result.output,
            filename=filename,
        )


class BuildStatusResponse(BaseModel):
    """Current state of the build coordinator."""

    state: str
    is_building: bool
    progress: float = Field(..., ge=0.0, le=1.0)
    status: str = ""
    last_result: Optional[BuildResponse] = None


class BuildAcceptedResponse(BaseModel):
    """Returned when a build has been started in the background."""

    accepted: bool = True
    document_path: str
    node_path: Optional[str] = None
    platform: Platform
    filename: Optional[str] = None
    status_url: str = Field(default="/api/builds/status", description="Poll this for progress and the result.")
