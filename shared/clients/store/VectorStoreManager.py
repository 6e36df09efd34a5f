from shared.clients.ClientManager import ClientManager
from shared.clients.store.VectorStoreInterface import VectorStoreInterface


class VectorStoreManager(ClientManager):
    """
    Instantiates the vector store selected by STORE_ENGINE (default "sqlite").

    The store is constructed once per process and handed to the ingestion and
    search services, which share the same instance.
    """

    def _get_client_type(self) -> str:
        return "store"

    def _get_class_prefix(self) -> str:
        return "VectorStore"

    def _get_default_engine(self) -> str | None:
        return "sqlite"

    def get_store(self) -> VectorStoreInterface:
        """
        Returns the instantiated vector store.

        Returns:
            VectorStoreInterface: The store, not yet initialised.
        """
        return self.client
