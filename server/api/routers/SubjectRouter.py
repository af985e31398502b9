"""Tracked subject router."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key

subject_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Subjects"])


@subject_router.get("/subjects")
async def list_subjects(request: Request, sensitive: bool | None = None) -> JSONResponse:
    """List tracked subjects with their document mentions.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        sensitive (bool | None): Only subjects with this sensitive flag.

    Returns:
        JSONResponse: ``{"subjects": [...], "total": n}``.
    """
    subjects = request.app.state.orchestrator.list_subjects()
    if sensitive is not None:
        subjects = [s for s in subjects if s.sensitive == sensitive]
    return JSONResponse(content={
        "subjects": [s.model_dump(mode="json") for s in subjects],
        "total": len(subjects),
    })
