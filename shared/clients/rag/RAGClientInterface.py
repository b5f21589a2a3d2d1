from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upsert_vector(self) -> str:
        """
        Returns the endpoint path for upserting records with a precomputed vector.

        Returns:
            str: The endpoint path (e.g. "/upsert")
        """
        pass

    @abstractmethod
    def _get_endpoint_upsert_data(self) -> str:
        """
        Returns the endpoint path for upserting records keyed by raw text, embedded by the backend.

        Returns:
            str: The endpoint path (e.g. "/upsert-data")
        """
        pass

    @abstractmethod
    def _get_endpoint_query_vector(self) -> str:
        """
        Returns the endpoint path for nearest-neighbour queries with a vector.

        Returns:
            str: The endpoint path (e.g. "/query")
        """
        pass

    @abstractmethod
    def _get_endpoint_query_data(self) -> str:
        """
        Returns the endpoint path for lexical/text queries.

        Returns:
            str: The endpoint path (e.g. "/query-data")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def build_equality_filter(self, field: str, value: str) -> Any:
        """
        Builds the backend-specific filter matching records whose metadata field equals value.

        Args:
            field (str): Metadata field name, e.g. "model".
            value (str): Exact value to match.

        Returns:
            Any: The filter in the backend's syntax.
        """
        pass

    @abstractmethod
    def get_upsert_vector_payload(self, record_id: str, vector: list[float], metadata: dict) -> Any:
        """
        Returns the body for upserting one record with a precomputed vector.
        """
        pass

    @abstractmethod
    def get_upsert_data_payload(self, record_id: str, data: str, metadata: dict) -> Any:
        """
        Returns the body for upserting one record keyed by raw text.
        """
        pass

    @abstractmethod
    def get_query_vector_payload(self, vector: list[float], top_k: int, filter: Any | None = None) -> dict:
        """
        Returns the body for a vector similarity query.

        Args:
            vector (list[float]): The normalised query vector.
            top_k (int): Maximum number of candidates.
            filter (Any | None): Optional filter from build_equality_filter().
        """
        pass

    @abstractmethod
    def get_query_data_payload(self, data: str, top_k: int, filter: Any | None = None) -> dict:
        """
        Returns the body for a lexical query with raw text.
        """
        pass

    ########### RESPONSE PARSER ##############
    @abstractmethod
    def extract_query_hits(self, raw_response: dict) -> list[dict]:
        """
        Extracts the list of raw hits ({"id", "score", "metadata"}) from a query response.

        Args:
            raw_response (dict): The raw JSON response from a query endpoint.

        Returns:
            list[dict]: The ranked hits.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_upsert_vector(self, record_id: str, vector: list[float], metadata: dict) -> None:
        """Insert or wholesale-replace one record with a precomputed vector.

        Args:
            record_id (str): The record id, e.g. "manual.txt-0".
            vector (list[float]): The normalised embedding.
            metadata (dict): Wire-format metadata.

        Raises:
            UpstreamRequestError: If the backend rejects the upsert.
        """
        await self.do_request(
            method="POST",
            json=self.get_upsert_vector_payload(record_id, vector, metadata),
            endpoint=self._get_endpoint_upsert_vector(),
            raise_on_error=True,
        )

    async def do_upsert_data(self, record_id: str, data: str, metadata: dict) -> None:
        """Insert or replace one record keyed by raw text; the backend embeds it.

        Raises:
            UpstreamRequestError: If the backend rejects the upsert.
        """
        await self.do_request(
            method="POST",
            json=self.get_upsert_data_payload(record_id, data, metadata),
            endpoint=self._get_endpoint_upsert_data(),
            raise_on_error=True,
        )

    async def do_query_vector(self, vector: list[float], top_k: int, filter: Any | None = None) -> list[SearchHit]:
        """Run a nearest-neighbour query.

        Args:
            vector (list[float]): The normalised query vector.
            top_k (int): Maximum number of candidates.
            filter (Any | None): Optional metadata filter.

        Returns:
            list[SearchHit]: Hits in the backend's ranking order.

        Raises:
            UpstreamRequestError: If the query fails.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_query_vector_payload(vector, top_k, filter),
            endpoint=self._get_endpoint_query_vector(),
            raise_on_error=True,
        )
        return [SearchHit.from_raw(hit) for hit in self.extract_query_hits(resp.json())]

    async def do_query_data(self, data: str, top_k: int, filter: Any | None = None) -> list[SearchHit]:
        """Run a lexical query with raw text.

        Returns:
            list[SearchHit]: Hits in the backend's ranking order.

        Raises:
            UpstreamRequestError: If the query fails.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_query_data_payload(data, top_k, filter),
            endpoint=self._get_endpoint_query_data(),
            raise_on_error=True,
        )
        return [SearchHit.from_raw(hit) for hit in self.extract_query_hits(resp.json())]
