"""Document router: ingestion, inspection, retry and archive reset."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from server.models.requests import IngestTextRequest
from server.models.responses import DocumentListResponse, DocumentResponse, RetryResponse, StatusResponse
from shared.dependencies.auth import verify_api_key
from shared.models.document import DocumentStatus
from shared.models.errors import DocumentNotFound, NoProvidersEnabled

document_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Documents"])


@document_router.post("/documents", status_code=202)
async def ingest_document(request: Request) -> JSONResponse:
    """Ingest a document and queue it for analysis.

    Accepts either a multipart upload (field ``file``) or a JSON body with
    already extracted ``text``.

    Args:
        request (Request): The incoming FastAPI request (carries app state).

    Returns:
        JSONResponse: The pending document record (202).

    Raises:
        HTTPException: 400 on missing content, 422 on an invalid JSON body,
            409 if no analysis provider is enabled.
    """
    orchestrator = request.app.state.orchestrator
    content_type = request.headers.get("content-type", "")

    try:
        if content_type.startswith("multipart/form-data"):
            form = await request.form()
            upload = form.get("file")
            if upload is None or isinstance(upload, str):
                raise HTTPException(status_code=400, detail="Multipart field 'file' is required.")
            data = await upload.read()
            record = await orchestrator.ingest(upload.filename or "upload", data=data)
        else:
            try:
                body = IngestTextRequest.model_validate(await request.json())
            except (ValidationError, ValueError) as e:
                raise HTTPException(status_code=422, detail=str(e))
            record = await orchestrator.ingest(body.name, text=body.text, images=body.images)
    except NoProvidersEnabled as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    request.app.state.logging.info("Document %s accepted via API.", record.id)
    return JSONResponse(status_code=202, content=DocumentResponse.from_record(record).model_dump(mode="json"))


@document_router.get("/documents")
async def list_documents(request: Request, status: DocumentStatus | None = None, poi: bool | None = None) -> JSONResponse:
    """List documents, oldest first, optionally filtered by status and POI flag."""
    records = request.app.state.orchestrator.list_documents(status)
    if poi is not None:
        records = [r for r in records if r.is_poi == poi]
    response = DocumentListResponse(
        documents=[DocumentResponse.from_record(r) for r in records],
        total=len(records),
    )
    return JSONResponse(content=response.model_dump(mode="json"))


@document_router.get("/documents/{doc_id}")
async def get_document(request: Request, doc_id: str) -> JSONResponse:
    try:
        record = request.app.state.orchestrator.get_document(doc_id)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return JSONResponse(content=DocumentResponse.from_record(record).model_dump(mode="json"))


@document_router.post("/documents/retry")
async def retry_failed(request: Request) -> JSONResponse:
    """Re-queue every document in error or left pending."""
    try:
        queued = await request.app.state.orchestrator.retry_failed()
    except NoProvidersEnabled as e:
        raise HTTPException(status_code=409, detail=str(e))
    return JSONResponse(content=RetryResponse(queued=queued).model_dump())


@document_router.post("/documents/{doc_id}/retry")
async def retry_document(request: Request, doc_id: str) -> JSONResponse:
    """Re-queue one document.

    Raises:
        HTTPException: 404 for an unknown id, 409 if it is already scheduled,
            still being analysed, or no provider is enabled.
    """
    orchestrator = request.app.state.orchestrator
    try:
        queued = await orchestrator.retry(doc_id)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoProvidersEnabled as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not queued:
        raise HTTPException(status_code=409, detail=f"Document {doc_id!r} is already scheduled or in progress.")
    return JSONResponse(content=DocumentResponse.from_record(orchestrator.get_document(doc_id)).model_dump(mode="json"))


@document_router.delete("/documents")
async def clear_documents(request: Request) -> JSONResponse:
    """Wipe every document and tracked subject."""
    await request.app.state.orchestrator.clear()
    return JSONResponse(content={"status": "cleared"})


@document_router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Queue sizes, worker counts and document counts per status."""
    status = StatusResponse.model_validate(request.app.state.orchestrator.get_status())
    return JSONResponse(content=status.model_dump())
