"""
Builds router
FastAPI routes for triggering avatar builds and downloading bundles

Builds run in the background; clients poll /api/builds/status for progress
and the final result.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import FileResponse

from models import BuildTriggerRequest, BuildAcceptedResponse, BuildResponse, BuildStatusResponse
from avatars.scene import DocumentError
from services.build_service import BuildInProgressError, BuildService, get_build_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/builds", tags=["builds"])


@router.post("", response_model=BuildAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_build(
    request: BuildTriggerRequest,
    background_tasks: BackgroundTasks,
    service: BuildService = Depends(get_build_service)
):
    """
    Start building an avatar from a document

    Returns 409 while another build is running and 404 when the document,
    node or avatar does not exist. Validation and build failures are
    reported by the status endpoint.
    """
    try:
        build_request = service.prepare_build(
            request.document_path,
            node_path=request.node_path,
            platform=request.platform,
            filename=request.filename,
        )
    except BuildInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except DocumentError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    # Sync task, so Starlette runs it in the threadpool
    background_tasks.add_task(service.run_build_in_background, build_request)
    logger.info(f"[Builds] Build queued for '{request.document_path}'")

    return BuildAcceptedResponse(
        document_path=request.document_path,
        node_path=request.node_path,
        platform=build_request.target_platform,
        filename=build_request.filename,
    )


@router.get("/status", response_model=BuildStatusResponse)
async def get_build_status(service: BuildService = Depends(get_build_service)):
    """Current coordinator state, progress and the last result"""
    current = service.get_status()
    last = current.pop("last_result")
    return BuildStatusResponse(
        **current,
        last_result=BuildResponse.from_result(last) if last is not None else None,
    )


@router.get("/artifacts/{filename}")
async def download_artifact(filename: str, service: BuildService = Depends(get_build_service)):
    """Download a built bundle"""
    path = service.artifact_path(filename)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artifact not found")

    return FileResponse(
        path=path,
        media_type="application/octet-stream",
        filename=path.name,
    )
