"""Search router: free-text similarity search against the vector store."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.search import DEFAULT_RESULT_COUNT, SearchRequest

search_router = APIRouter()


@search_router.get(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search(request: Request, q: str = "", k: int = DEFAULT_RESULT_COUNT) -> JSONResponse:
    """Handle GET /search?q=...&k=5.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        q (str): The query text.
        k (int): Number of results.

    Returns:
        JSONResponse: {"ok": true, "q": ..., "results": [...]}
    """
    result = await request.app.state.search_service.do_search(q, k)
    return JSONResponse(content=result.model_dump())


@search_router.post(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search_body(request: Request, body: SearchRequest) -> JSONResponse:
    """Handle POST /search with a JSON body {"q": ..., "k": ...}."""
    result = await request.app.state.search_service.do_search(body.q, body.k)
    return JSONResponse(content=result.model_dump())
