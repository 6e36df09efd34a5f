from abc import abstractmethod
from typing import Any

from pydantic import ValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ModelMismatchError, QueryValidationError, RecordValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.similarity import cosine_similarity
from shared.models.record import EmbeddingRecord, ScoredRecord


class VectorStoreInterface(ClientInterface):
    """Durable table of EmbeddingRecords with an exhaustive cosine similarity scan.

    Subclasses provide the storage primitives (_do_*); validation, scoring
    and ranking are shared and live here.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "store"
        """
        return "store"

    ##########################################
    ########### STORAGE PRIMITIVES ###########
    ##########################################

    @abstractmethod
    async def initialize(self) -> None:
        """Ensure the storage location and schema exist.

        Idempotent and safe to call concurrently.

        Raises:
            ConfigurationError: If the storage cannot be opened or created.
        """
        pass

    @abstractmethod
    async def _do_upsert(self, record: EmbeddingRecord) -> None:
        """Insert the record, or replace content, embedding, token_estimate,
        source_path and model_id of the record with the same id and refresh updated_at.

        Args:
            record (EmbeddingRecord): An already validated record.
        """
        pass

    @abstractmethod
    async def _do_delete_by_document(self, document_id: str) -> int:
        """Delete all records of a document.

        Returns:
            int: Number of deleted records.
        """
        pass

    @abstractmethod
    async def _do_fetch_all(self) -> list[dict[str, Any]]:
        """Load every stored record in the natural scan order of the backend.

        Returns:
            list[dict[str, Any]]: Record dicts including the decoded "embedding" list.
        """
        pass

    @abstractmethod
    async def count(self, document_id: str | None = None) -> int:
        """Count stored records, optionally restricted to one document.

        Args:
            document_id (str | None): Restrict the count to this document.

        Returns:
            int: Number of records.
        """
        pass

    @abstractmethod
    async def list_document_ids(self) -> list[str]:
        """Return the distinct document ids present in the store, sorted."""
        pass

    ##########################################
    ############## VALIDATION ################
    ##########################################

    def validate_record(self, record: EmbeddingRecord | dict[str, Any]) -> EmbeddingRecord:
        """Validate a record at the store boundary.

        Args:
            record (EmbeddingRecord | dict[str, Any]): The record, typed or loosely shaped.

        Returns:
            EmbeddingRecord: The validated record.

        Raises:
            RecordValidationError: If required fields are missing or inconsistent.
        """
        try:
            if isinstance(record, EmbeddingRecord):
                return EmbeddingRecord.model_validate(record.model_dump())
            return EmbeddingRecord.model_validate(record)
        except ValidationError as exc:
            record_id = record.get("id") if isinstance(record, dict) else getattr(record, "id", None)
            raise RecordValidationError(f"Invalid embedding record {record_id!r}: {exc}") from exc

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    async def upsert(self, record: EmbeddingRecord | dict[str, Any]) -> None:
        """Validate and write a single record. A rejected record never reaches storage.

        Args:
            record (EmbeddingRecord | dict[str, Any]): The record to write.

        Raises:
            RecordValidationError: If the record is malformed.
            StoreError: If the write fails.
        """
        validated = self.validate_record(record)
        await self._do_upsert(validated)

    async def delete_by_document(self, document_id: str) -> int:
        """Remove every record of a document, e.g. before rebuilding it from scratch.

        Args:
            document_id (str): The document whose chunks are dropped.

        Returns:
            int: Number of deleted records.
        """
        deleted = await self._do_delete_by_document(document_id)
        self.logging.debug("Deleted %d record(s) of document %r.", deleted, document_id)
        return deleted

    async def top_k(self, query_vector: list[float], k: int, model_id: str | None = None) -> list[ScoredRecord]:
        """Rank all stored records against a query vector.

        Loads every record, scores it with cosine similarity, sorts by score
        descending (equal scores keep scan order) and returns the first k,
        without the embedding.

        Args:
            query_vector (list[float]): The query embedding.
            k (int): Maximum number of results, must be >= 1.
            model_id (str | None): Embedding model of the query vector. When
                given, records produced by another model make the search fail.

        Returns:
            list[ScoredRecord]: min(k, total records) results, best first.

        Raises:
            QueryValidationError: If k is not a positive integer.
            ModelMismatchError: If stored records come from a different model.
        """
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise QueryValidationError(f"k must be a positive integer, got {k!r}.")

        rows = await self._do_fetch_all()

        if model_id is not None:
            foreign = sorted({row["model_id"] for row in rows if row.get("model_id") and row["model_id"] != model_id})
            if foreign:
                raise ModelMismatchError(expected=model_id, found=foreign)

        scored: list[ScoredRecord] = []
        for row in rows:
            embedding = row.pop("embedding")
            row.pop("model_id", None)
            scored.append(ScoredRecord(**row, score=cosine_similarity(query_vector, embedding)))

        # sorted() is stable, ties keep the scan order
        scored = sorted(scored, key=lambda item: item.score, reverse=True)
        return scored[:k]
