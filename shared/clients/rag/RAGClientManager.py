from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager:
    """
    Manager class to handle the RAG client based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the RAG engine from ENV configuration (RAG_ENGINE).

        Returns:
            str: The capitalised RAG engine name, e.g. "Upstash".

        Raises:
            ValueError: If the configured engine is not supported.
        """
        engine = self.helper_config.get_choice_val("RAG_ENGINE", choices=["upstash"], default="upstash")
        return engine.capitalize()

    def _initialize_client(self) -> RAGClientInterface:
        """
        Initializes the RAG client for the engine specified in the configuration.

        Returns:
            RAGClientInterface: An instance of the RAG client.

        Raises:
            ValueError: If the client class cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"RAGClient{engine}"
        try:
            module = __import__(
                f"shared.clients.rag.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported RAG engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated RAG client for engine: %s", engine)
        return client

    def get_client(self) -> RAGClientInterface:
        """
        Returns the instantiated RAG client.

        Returns:
            RAGClientInterface: The RAG client instance.
        """
        return self.client
