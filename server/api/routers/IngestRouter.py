"""Ingest router: (re)builds the vector index from the knowledge directory."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.ingest import IngestRequest

ingest_router = APIRouter()


@ingest_router.post(
    "/ingest",
    dependencies=[Depends(verify_api_key)],
    tags=["Ingest"],
)
async def handle_ingest(request: Request, body: IngestRequest | None = None) -> JSONResponse:
    """Run an ingestion of the whole knowledge directory.

    The request returns once the run is finished. Errors are turned into
    {"ok": false, "error": ...} by the application's exception handlers.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (IngestRequest | None): Optional {"reindex": bool}, defaults to no reindex.

    Returns:
        JSONResponse: {"ok": true, "files", "totalChunks", "embedded", "kbDir", "model", ...}
    """
    reindex = body.reindex if body else False
    request.app.state.logging.info("Ingestion requested: reindex=%s", reindex)

    summary = await request.app.state.ingest_service.do_ingest(reindex=reindex)
    return JSONResponse(content=summary.model_dump(by_alias=True))
