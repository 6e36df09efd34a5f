"""Pydantic models for search requests and responses."""

from pydantic import BaseModel

from shared.models.record import ScoredRecord

DEFAULT_RESULT_COUNT = 5


class SearchRequest(BaseModel):
    """Incoming free-text search query.

    Validation of q and k happens in SearchService so that GET and POST
    requests are rejected with the same error.
    """

    q: str = ""
    k: int = DEFAULT_RESULT_COUNT


class SearchResponse(BaseModel):
    """Ranked chunks returned to the caller, highest score first."""

    ok: bool = True
    q: str
    results: list[ScoredRecord]
