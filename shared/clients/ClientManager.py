from abc import ABC, abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager(ABC):
    """
    Resolves the engine configured in "<TYPE>_ENGINE" to its client class and instantiates it.

    Engine classes live at shared.clients.<package>.<engine>.<Prefix><Engine>,
    e.g. shared.clients.embed.ollama.EmbedClientOllama.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the client type, used as ENV prefix and package name. E.g. "embed"
        """
        pass

    @abstractmethod
    def _get_class_prefix(self) -> str:
        """
        Returns the class name prefix of the engine classes. E.g. "EmbedClient"
        """
        pass

    def _get_default_engine(self) -> str | None:
        """
        Returns the engine used when "<TYPE>_ENGINE" is not set. None makes the setting required.
        """
        return None

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: The name of the engine, capitalized (e.g. "Ollama").

        Raises:
            ValueError: If no engine is specified and there is no default.
        """
        env_key = f"{self._get_client_type().upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key, default=self._get_default_engine())
        # lowercase all and uppercase first letter to match the class name
        return engine.strip().lower().capitalize()

    ##########################################
    ################ LOADING #################
    ##########################################

    def _initialize_client(self) -> ClientInterface:
        """
        Imports the class of the configured engine and instantiates it.

        Returns:
            ClientInterface: The client, not yet booted.

        Raises:
            ValueError: If the specified engine has no matching class.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self._get_class_prefix()}{engine}"
        module_path = f"shared.clients.{self._get_client_type()}.{engine.lower()}.{class_name}"
        try:
            module = __import__(module_path, fromlist=[class_name])
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self._get_client_type()} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug(f"Instantiated {class_name} for {self._get_client_type()} engine '{engine.lower()}'.")
        return client
