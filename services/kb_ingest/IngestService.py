"""Ingestion service.

Walks the knowledge directory, splits every text/markdown file into chunks,
generates embeddings via an EmbedClient in batches, and upserts one
EmbeddingRecord per chunk into the vector store.
"""

import asyncio
from pathlib import Path
from typing import Iterator, Sequence

from services.kb_ingest.chunking import (
    DEFAULT_MAX_CHARS,
    DEFAULT_MIN_CHARS,
    DEFAULT_OVERLAP,
    chunk_text,
    estimate_tokens,
)
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.VectorStoreInterface import VectorStoreInterface
from shared.exceptions import ConfigurationError, DocumentReadError, EmbeddingError, RecordValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.ingest import IngestSummary
from shared.models.record import Chunk, make_record_id

DEFAULT_KB_DIR = "./data/knowledge"
DEFAULT_EXTENSIONS = [".md", ".mdx", ".txt"]
EMBED_BATCH_SIZE = 64  # texts per embedding request


def list_text_files(root: Path | str, extensions: Sequence[str]) -> list[Path]:
    """Recursively collect the files below root whose extension is allowed.

    Args:
        root (Path | str): Directory to walk.
        extensions (Sequence[str]): Allowed extensions, with or without the
                                    leading dot; matched case-insensitively.

    Returns:
        list[Path]: Matching files in sorted order; empty if root is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        return []
    allowed = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}
    return sorted(path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in allowed)


def document_id_from_path(root: Path | str, path: Path | str) -> str:
    """Derive the document id of a file: its path relative to root, "/" separated.

    Args:
        root (Path | str): The knowledge root.
        path (Path | str): A file below root.

    Returns:
        str: e.g. "guides/setup.md"
    """
    return Path(path).relative_to(Path(root)).as_posix()


def _batched(chunks: list[Chunk], size: int) -> Iterator[list[Chunk]]:
    for start in range(0, len(chunks), size):
        yield chunks[start:start + size]


class IngestService:
    """Orchestrates the ingestion pipeline from the knowledge directory into the vector store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: VectorStoreInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embed_client = embed_client

        self._kb_dir = helper_config.get_path_val("KB_DIR", default=DEFAULT_KB_DIR)
        self._extensions = helper_config.get_list_val("KB_EXTENSIONS", default=DEFAULT_EXTENSIONS)
        self._batch_size = int(helper_config.get_number_val("KB_BATCH_SIZE", default=EMBED_BATCH_SIZE))
        self._skip_unreadable = helper_config.get_bool_val("KB_SKIP_UNREADABLE", default=False)
        self._min_chars = int(helper_config.get_number_val("CHUNK_MIN_CHARS", default=DEFAULT_MIN_CHARS))
        self._max_chars = int(helper_config.get_number_val("CHUNK_MAX_CHARS", default=DEFAULT_MAX_CHARS))
        self._overlap = int(helper_config.get_number_val("CHUNK_OVERLAP", default=DEFAULT_OVERLAP))
        if self._batch_size < 1:
            raise ValueError(f"KB_BATCH_SIZE must be >= 1, got {self._batch_size}.")

    def get_kb_dir(self) -> Path:
        return self._kb_dir

    ##########################################
    ############### CORE RUN #################
    ##########################################

    async def do_ingest(self, reindex: bool = False) -> IngestSummary:
        """Ingest every eligible file of the knowledge directory.

        Files are processed in sorted path order and chunks in index order.
        Nothing is rolled back on failure: records upserted before an error
        stay in the store.

        Args:
            reindex (bool): Delete all stored chunks of a document before
                            re-ingesting it, so no stale chunks remain when a
                            document got shorter.

        Returns:
            IngestSummary: Counts of files, chunks and embedded records.

        Raises:
            ConfigurationError: If the knowledge directory does not exist.
            DocumentReadError: If a file cannot be read and KB_SKIP_UNREADABLE is off.
            EmbeddingError: If an embedding batch fails.
        """
        kb_dir = self._kb_dir
        if not kb_dir.is_dir():
            raise ConfigurationError(f"Knowledge directory not found: {kb_dir}")

        await self._store.initialize()

        files = list_text_files(kb_dir, self._extensions)
        model = self._embed_client.get_model_id()
        self.logging.info(
            "Starting ingestion of %d file(s) from %s (model=%s, reindex=%s)...",
            len(files), kb_dir, model, reindex,
        )

        summary = IngestSummary(kb_dir=str(kb_dir), model=model)
        for path in files:
            document_id = document_id_from_path(kb_dir, path)
            try:
                content = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                if not self._skip_unreadable:
                    self.logging.error("Could not read %s: %s. Aborting ingestion.", path, exc)
                    raise DocumentReadError(f"Could not read {path}: {exc}") from exc
                self.logging.warning("Could not read %s: %s. Skipping file.", path, exc)
                summary.skipped_files.append(document_id)
                continue

            chunk_count, embedded, rejected = await self._ingest_document(document_id, path, content, reindex)
            summary.files += 1
            summary.total_chunks += chunk_count
            summary.embedded += embedded
            summary.rejected += rejected

        self.logging.info(
            "Ingestion complete: %d file(s), %d chunk(s), %d record(s) embedded, %d rejected, %d file(s) skipped.",
            summary.files, summary.total_chunks, summary.embedded, summary.rejected, len(summary.skipped_files),
            color="green",
        )
        return summary

    ##########################################
    ############ DOCUMENT RUN ################
    ##########################################

    async def _ingest_document(self, document_id: str, path: Path, content: str, reindex: bool) -> tuple[int, int, int]:
        """Chunk, embed and upsert a single document.

        Args:
            document_id (str): Canonical id of the document.
            path (Path): Source file, stored as source_path.
            content (str): Full text of the file.
            reindex (bool): Purge the document's stored chunks first.

        Returns:
            tuple[int, int, int]: (chunks produced, records upserted, records rejected).

        Raises:
            EmbeddingError: Propagated if a batch cannot be embedded.
        """
        chunks = chunk_text(content, min_chars=self._min_chars, max_chars=self._max_chars, overlap=self._overlap)

        if reindex:
            deleted = await self._store.delete_by_document(document_id)
            self.logging.debug("Reindex: removed %d old chunk(s) of %r.", deleted, document_id)

        model = self._embed_client.get_model_id()
        embedded = 0
        rejected = 0
        for batch in _batched(chunks, self._batch_size):
            try:
                vectors = await self._embed_client.do_embed([chunk.text for chunk in batch])
            except EmbeddingError as exc:
                self.logging.error(
                    "Embedding failed for %r (chunks %d-%d): %s",
                    document_id, batch[0].index, batch[-1].index, exc,
                )
                raise

            for chunk, vector in zip(batch, vectors):
                record = {
                    "id": make_record_id(document_id, chunk.index),
                    "document_id": document_id,
                    "chunk_index": chunk.index,
                    "content": chunk.text,
                    "embedding": vector,
                    "token_estimate": estimate_tokens(chunk.text),
                    "source_path": str(path),
                    "model_id": model,
                }
                try:
                    await self._store.upsert(record)
                except RecordValidationError as exc:
                    self.logging.warning("Rejected chunk %d of %r: %s", chunk.index, document_id, exc)
                    rejected += 1
                    continue
                embedded += 1

        self.logging.info("Ingested %r: %d chunk(s), %d record(s) upserted.", document_id, len(chunks), embedded)
        return len(chunks), embedded, rejected
