from abc import abstractmethod

import httpx
from shared.clients.HttpClientInterface import HttpClientInterface
from shared.exceptions import EmbeddingError

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(HttpClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    def get_model_id(self) -> str:
        """
        Returns the identifier of the embedding model, stored with every record.
        """
        return self.embed_model

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            EmbeddingError: If the response format is invalid or embeddings are empty.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send one embedding request and return the extracted vectors.

        Normalises the input to a list, builds the backend-specific payload via
        get_embed_payload(), sends the request, validates the status, and extracts
        the vectors via extract_embeddings_from_response(). No retry is attempted.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            EmbeddingError: If the request fails, the status is not 200, or the
                response does not hold exactly one vector per input.
        """
        texts = [texts] if isinstance(texts, str) else list(texts)
        if not texts:
            return []
        body = self.get_embed_payload(texts)
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except httpx.HTTPError as exc:
            self.logging.error("Embedding request to '%s' failed: %s", self.get_engine_name(), exc)
            raise EmbeddingError(f"Embedding backend '{self.get_engine_name()}' unreachable: {exc}") from exc
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingError("Embedding request failed with status %d." % response.status_code)
        try:
            response_data = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc
        vectors = self.extract_embeddings_from_response(response_data)
        if len(vectors) != len(texts):
            raise EmbeddingError(f"Embedding backend returned {len(vectors)} vectors for {len(texts)} inputs.")
        return vectors

    async def embed(self, input: str | list[str]) -> list[float] | list[list[float]]:
        """Embed one text or many texts.

        A single string yields a single vector, a list yields one vector per
        element in input order.

        Args:
            input (str | list[str]): Text or texts to embed.

        Returns:
            list[float] | list[list[float]]: The vector or the list of vectors.
        """
        vectors = await self.do_embed(input)
        return vectors[0] if isinstance(input, str) else vectors
