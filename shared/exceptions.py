"""Error taxonomy shared by the ingestion pipeline, the vector store and the API.

Hierarchy:
  BridgeError: base for every error raised on purpose by this project.
  ConfigurationError: missing knowledge dir, uncreatable storage path, store not initialised.
  DocumentReadError: a knowledge base file could not be read.
  RecordValidationError: malformed EmbeddingRecord rejected before it reaches storage.
  QueryValidationError: empty query text or non-positive result count.
  EmbeddingError: embedding backend unreachable, erroring or returning garbage.
  StoreError: storage unavailable while serving an operation.
  ModelMismatchError: stored vectors come from another embedding model than the query.
"""


class BridgeError(Exception):
    """Base class for all expected errors of the knowledge base bridge."""

    # HTTP status used by the API layer when this error crosses the boundary
    status_code: int = 500


class ConfigurationError(BridgeError):
    """Raised when the runtime environment does not allow any work to be done."""

    status_code = 500


class DocumentReadError(BridgeError):
    """Raised when a knowledge base file cannot be read as UTF-8 text."""

    status_code = 500


class RecordValidationError(BridgeError):
    """Raised when a record handed to the vector store is incomplete or inconsistent."""

    status_code = 400


class QueryValidationError(BridgeError):
    """Raised when a search request is rejected before any embedding call."""

    status_code = 400


class EmbeddingError(BridgeError):
    """Raised when the embedding backend cannot produce the requested vectors."""

    status_code = 502


class StoreError(BridgeError):
    """Raised when the vector store cannot serve a read or write."""

    status_code = 502


class ModelMismatchError(StoreError):
    """Raised when a similarity search would compare vectors of different models.

    Attributes:
        expected (str): The model id of the query vector.
        found (list[str]): The model ids present in the store.
    """

    status_code = 409

    def __init__(self, expected: str, found: list[str]) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Stored embeddings were created with model(s) {found}, but the query uses '{expected}'. "
            "Re-run the ingestion with reindex=true."
        )
