"""Pydantic models for ingestion requests and run summaries."""

from pydantic import BaseModel, ConfigDict, Field


class IngestRequest(BaseModel):
    """Body of POST /ingest."""

    reindex: bool = False


class IngestSummary(BaseModel):
    """Aggregate result of one ingestion run.

    Serialised with camelCase aliases (totalChunks, kbDir) to keep the
    response shape expected by existing callers.

    Attributes:
        files:          Number of eligible files processed.
        total_chunks:   Number of chunks produced across all files.
        embedded:       Number of records embedded and upserted.
        kb_dir:         Resolved knowledge directory.
        model:          Embedding model identifier used for the run.
        rejected:       Records refused by the store's validation (not counted in embedded).
        skipped_files:  Files that could not be read (only with KB_SKIP_UNREADABLE).
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    files: int = 0
    total_chunks: int = Field(default=0, alias="totalChunks")
    embedded: int = 0
    kb_dir: str = Field(alias="kbDir")
    model: str
    rejected: int = 0
    skipped_files: list[str] = Field(default_factory=list, alias="skippedFiles")
