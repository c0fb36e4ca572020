from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from ..auth.bearer import get_bearer_token
from ..services.mesh_service import MeshService, get_mesh_service

router = APIRouter(tags=["eventmesh"])


@router.get("/v1/eventmesh")
@router.get("/", include_in_schema=False)
def get_event_mesh(
    token: str | None = Depends(get_bearer_token),
    service: MeshService = Depends(get_mesh_service),
):
    """
    Build the event mesh visible to the caller.

    Returns brokers, event types, subscribables and sources with their
    relations. Runs in the worker thread pool; each request lists the
    cluster afresh.
    """
    mesh = service.build(token)
    return JSONResponse(mesh.to_json_dict())
