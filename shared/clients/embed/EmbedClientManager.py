from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface

# engine and model per role; both defaults emit 384-dimensional vectors
_ROLE_DEFAULTS = {
    "query": ("huggingface", "BAAI/bge-small-en-v1.5"),
    "ingest": ("huggingface", "sentence-transformers/all-MiniLM-L6-v2"),
}


class EmbedClientManager:
    """
    Manager class to handle the Embed client of one role ("query" or "ingest") based on configuration.
    """

    def __init__(self, helper_config: HelperConfig, role: str = "query", **client_kwargs):
        if role not in _ROLE_DEFAULTS:
            raise ValueError(f"Unknown embedding role '{role}'. Expected one of {list(_ROLE_DEFAULTS)}.")
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.role = role
        self._client_kwargs = client_kwargs
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the Embed engine for this role from ENV configuration (EMBED_QUERY_ENGINE / EMBED_INGEST_ENGINE).

        Returns:
            str: The capitalised name of the Embed engine, e.g. "Huggingface".
        """
        engine = self.helper_config.get_string_val(f"EMBED_{self.role.upper()}_ENGINE", default=_ROLE_DEFAULTS[self.role][0])
        return engine.strip().lower().capitalize()

    def _get_model_from_env(self, engine: str) -> str | None:
        """
        Reads the model for this role (EMBED_QUERY_MODEL / EMBED_INGEST_MODEL).

        Falls back to EMBED_<ENGINE>_MODEL, then to the role's default model when the
        role runs on its default engine. None leaves the choice to the client.
        """
        default_engine, default_model = _ROLE_DEFAULTS[self.role]
        role_model = self.helper_config.get_string_val(f"EMBED_{self.role.upper()}_MODEL", default="")
        engine_model = self.helper_config.get_string_val(f"EMBED_{engine.upper()}_MODEL", default="")
        fallback = default_model if engine.lower() == default_engine else None
        return role_model or engine_model or fallback

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Initializes the Embed client based on the engine specified in the configuration.

        Returns:
            EmbedClientInterface: An instance of the Embed client that implements the EmbedClientInterface.

        Raises:
            ValueError: If the configured engine is unsupported.
        """
        engine = self._get_engine_from_env()
        class_name = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"shared.clients.embed.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Embed engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config, model=self._get_model_from_env(engine), **self._client_kwargs)
        self.logging.debug("Instantiated %s Embed client for engine: %s (model %s)", self.role, engine, client.embed_model)
        return client

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.

        Returns:
            EmbedClientInterface: The Embed client instance.
        """
        return self.client
