import asyncio
from abc import abstractmethod
from typing import Any, Awaitable, Callable

from shared.clients.ClientInterface import ClientInterface
from shared.errors import InvalidEmbeddingError, RetryExhaustedError, UpstreamRequestError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperRetry import EmbeddingRetryPolicy, HelperRetry
from shared.helper.HelperVector import normalize_vector, validate_vector


class EmbedClientInterface(ClientInterface):
    def __init__(
        self,
        helper_config: HelperConfig,
        model: str | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        super().__init__(helper_config=helper_config)

        # model and embedding config; an explicit model (per role) wins over EMBED_<ENGINE>_MODEL
        self.embed_model = model or self.get_config_val("MODEL", default=self._get_default_model(), val_type="string")
        self.embed_dimension = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_DIMENSION", default=384))

        # adapter retry config
        self._retry = HelperRetry(
            policy=EmbeddingRetryPolicy(
                max_attempts=int(helper_config.get_number_val("EMBED_MAX_ATTEMPTS", default=5)),
                base_delay=float(helper_config.get_number_val("EMBED_RETRY_BASE_DELAY", default=3.0)),
                jitter=float(helper_config.get_number_val("EMBED_RETRY_JITTER", default=0.0)),
            ),
            logger=self.logging,
            label=f"Embedding ({self.get_engine_name()})",
            sleep=sleep,
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_<ENGINE>_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/v1/embeddings")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for embedding a single text.

        Args:
            text (str): The text to embed.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def check_embedding_response(self, status_code: int, response_data: Any) -> None:
        """Raise for responses that carry no embedding at all.

        Engines override this to recognise backend-specific signals such as a
        model that is still loading.

        Raises:
            UpstreamRequestError: If the status is not 2xx.
        """
        if status_code >= 300:
            raise UpstreamRequestError(status_code=status_code, url=self.get_endpoint_embedding(), body=str(response_data)[:200])

    @abstractmethod
    def extract_embedding_from_response(self, response_data: Any) -> Any:
        """Extract the raw (unvalidated) embedding from a decoded response body.

        Args:
            response_data (Any): The parsed JSON response body.

        Returns:
            Any: The candidate vector, validated afterwards by the caller.

        Raises:
            InvalidEmbeddingError: If the body does not have the expected shape.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed_once(self, text: str) -> list[float]:
        """Request one embedding, validate it and normalise it to unit length.

        Used directly by ingestion, which wraps it in its own request retry.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: A normalised vector of length embed_dimension.

        Raises:
            UpstreamRequestError: On a non-2xx response.
            EmbeddingModelLoadingError: If the backend reports the model is loading.
            InvalidEmbeddingError: If the payload is not a valid vector.
            httpx.TransportError: On connection problems.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(text),
        )
        try:
            response_data = response.json()
        except ValueError:
            response_data = None
        self.check_embedding_response(response.status_code, response_data)
        if response_data is None:
            raise InvalidEmbeddingError("Embedding response is not valid JSON.")
        raw = self.extract_embedding_from_response(response_data)
        return normalize_vector(validate_vector(raw, self.embed_dimension))

    async def do_embed(self, text: str) -> list[float] | None:
        """Embed a text, retrying transient and malformed responses.

        Returns None once the retry budget is spent so that the caller can
        switch to lexical search.

        Args:
            text (str): The text to embed.

        Returns:
            list[float] | None: A normalised vector, or None on exhaustion.
        """
        try:
            return await self._retry.run(self.do_embed_once, text)
        except RetryExhaustedError as exc:
            self.logging.warning(
                "Embedding via '%s' unavailable after %d attempt(s) (%s). Falling back to keyword search.",
                self.get_engine_name(), exc.attempts, exc.last_error,
            )
            return None
