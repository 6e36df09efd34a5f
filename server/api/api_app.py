"""FastAPI application entry point for the knowledge base bridge API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import os
from server.api.routers.IngestRouter import ingest_router
from server.api.routers.SearchRouter import search_router
from server.api.services.SearchService import SearchService
from services.kb_ingest.IngestService import IngestService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.store.VectorStoreManager import VectorStoreManager
from shared.exceptions import BridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = logging
    app.state.config = HelperConfig(logger=app.state.logging)

    # one store and one embed client per process, shared by both services
    embed_client = EmbedClientManager(helper_config=app.state.config).get_client()
    store = VectorStoreManager(helper_config=app.state.config).get_store()
    await embed_client.boot()
    await store.initialize()

    # embedding backend down is not fatal at startup, requests will report it
    if not await embed_client.do_healthcheck():
        app.state.logging.warning(
            "Embed client '%s' is not reachable. Ingestion and search will fail until it is.",
            embed_client.get_engine_name(),
        )

    # Wire up services
    app.state.ingest_service = IngestService(
        helper_config=app.state.config,
        store=store,
        embed_client=embed_client,
    )
    app.state.search_service = SearchService(
        helper_config=app.state.config,
        store=store,
        embed_client=embed_client,
    )

    app.state.logging.info("Knowledge base API ready.")
    yield

    # Shutdown
    await embed_client.close()
    await store.close()
    app.state.logging.info("Knowledge base API shut down.")


##########################################
########### ERROR HANDLERS ###############
##########################################

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


async def handle_bridge_error(request: Request, exc: BridgeError) -> JSONResponse:
    level = request.app.state.logging.warning if exc.status_code < 500 else request.app.state.logging.error
    level("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(exc.status_code, str(exc))


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    return _error_response(400, "; ".join(messages) or "Invalid request.")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    request.app.state.logging.exception("%s %s failed unexpectedly: %s", request.method, request.url.path, exc)
    return _error_response(500, str(exc) or exc.__class__.__name__)


##########################################
############## APP FACTORY ###############
##########################################

def create_app(lifespan_handler: Callable | None = lifespan) -> FastAPI:
    """Build the FastAPI application.

    Args:
        lifespan_handler (Callable | None): Lifespan context that wires
            app.state (config, logging, ingest_service, search_service).

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="Knowledge Base Bridge",
        description=(
            "Chunks a knowledge directory into an embedding index and serves "
            "similarity search over it. Ingestion via POST /ingest, search via /search."
        ),
        version=app_version,
        lifespan=lifespan_handler,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BridgeError, handle_bridge_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/health", tags=["Health"])
    async def handle_health() -> JSONResponse:
        return JSONResponse(content={"ok": True, "version": app_version})

    app.include_router(ingest_router)
    app.include_router(search_router)
    return app


app = create_app()


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    port = int(os.getenv("APP_PORT", "8000"))
    logging.info(f"Starting Knowledge Base API Server v{app_version} on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port)
