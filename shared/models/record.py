"""Pydantic models for chunks and the records persisted in the vector store.

Hierarchy:
  Chunk: a contiguous, trimmed slice of a source document.
  EmbeddingRecord: the unit written to the vector store (one per chunk).
  ScoredRecord: a search hit, the record without its vector, plus a score.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

RECORD_ID_SEPARATOR = "::"


def make_record_id(document_id: str, chunk_index: int) -> str:
    """Build the deterministic record ID for a document chunk.

    The same document chunk always maps to the same ID so that re-ingesting
    overwrites rather than duplicates.

    Args:
        document_id (str): Canonical relative path of the source document.
        chunk_index (int): Zero-based chunk index within the document.

    Returns:
        str: "<document_id>::<chunk_index>"
    """
    return f"{document_id}{RECORD_ID_SEPARATOR}{chunk_index}"


class Chunk(BaseModel):
    """A bounded slice of document text prepared for embedding."""

    text: str
    index: int = Field(ge=0)


class EmbeddingRecord(BaseModel):
    """Record stored in the vector store for every chunk of every document.

    Attributes:
        id:              "<document_id>::<chunk_index>", primary key.
        document_id:     Path of the source file relative to the knowledge root, "/" separated.
        chunk_index:     Zero-based position of the chunk within its document.
        content:         The chunk text, returned at search time.
        embedding:       The vector. All records of a store share one dimensionality.
        token_estimate:  round(len(content) / 4).
        source_path:     Original file path, informational only.
        model_id:        Embedding model that produced the vector.
        updated_at:      ISO-8601 timestamp of the last write, set by the store.
    """

    model_config = ConfigDict(protected_namespaces=())

    id: str = Field(min_length=1)
    document_id: str = Field(min_length=1)
    chunk_index: int = Field(ge=0)
    content: str = Field(min_length=1)
    embedding: list[float] = Field(min_length=1)
    token_estimate: int = Field(default=0, ge=0)
    source_path: str | None = None
    model_id: str | None = None
    updated_at: str | None = None

    @model_validator(mode="after")
    def _check_id(self) -> "EmbeddingRecord":
        expected = make_record_id(self.document_id, self.chunk_index)
        if self.id != expected:
            raise ValueError(f"Record id '{self.id}' does not match document_id/chunk_index (expected '{expected}').")
        return self


class ScoredRecord(BaseModel):
    """A stored record ranked against a query vector. The vector itself is never returned."""

    id: str
    document_id: str
    chunk_index: int
    content: str
    token_estimate: int
    source_path: str | None = None
    updated_at: str | None = None
    score: float
