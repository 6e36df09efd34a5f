"""Search service: answers free-text queries with the most similar stored chunks.

embed query text → exhaustive cosine scan of the vector store → top-k chunks.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.VectorStoreInterface import VectorStoreInterface
from shared.exceptions import QueryValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import DEFAULT_RESULT_COUNT, SearchResponse


class SearchService:
    """Orchestrates embedding, vector retrieval, and result assembly for chunk search."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: VectorStoreInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_search(self, q: str | None, k: int = DEFAULT_RESULT_COUNT) -> SearchResponse:
        """Execute a free-text query against the vector store.

        The query is validated before anything else happens: an empty query
        never reaches the embedding backend or the store. k is used as given;
        fewer results come back when the store holds fewer than k records.

        Args:
            q (str | None): The query text.
            k (int): Number of results, must be >= 1.

        Returns:
            SearchResponse: Ranked chunks, highest score first.

        Raises:
            QueryValidationError: If q is empty or k is not a positive integer.
            EmbeddingError: If the query cannot be embedded.
            StoreError: If the store cannot be scanned.
        """
        q = (q or "").strip()
        if not q:
            raise QueryValidationError("Missing q")
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise QueryValidationError(f"k must be a positive integer, got {k!r}.")

        self.logging.info("Executing search: q=%r k=%d", q[:80], k)

        vector = await self._embed.embed(q)
        results = await self._store.top_k(vector, k, model_id=self._embed.get_model_id())

        self.logging.info("Search complete: q=%r results=%d", q[:80], len(results))
        return SearchResponse(q=q, results=results)
