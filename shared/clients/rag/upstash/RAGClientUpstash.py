from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.models.config import EnvConfig


class RAGClientUpstash(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Upstash"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/info"

    def _get_endpoint_upsert_vector(self) -> str:
        return "/upsert"

    def _get_endpoint_upsert_data(self) -> str:
        return "/upsert-data"

    def _get_endpoint_query_vector(self) -> str:
        return "/query"

    def _get_endpoint_query_data(self) -> str:
        return "/query-data"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def build_equality_filter(self, field: str, value: str) -> str:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'{field} = "{escaped}"'

    def get_upsert_vector_payload(self, record_id: str, vector: list[float], metadata: dict) -> dict:
        return {"id": record_id, "vector": vector, "metadata": metadata}

    def get_upsert_data_payload(self, record_id: str, data: str, metadata: dict) -> dict:
        return {"id": record_id, "data": data, "metadata": metadata}

    def get_query_vector_payload(self, vector: list[float], top_k: int, filter: Any | None = None) -> dict:
        payload = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeVectors": False,
        }
        if filter:
            payload["filter"] = filter
        return payload

    def get_query_data_payload(self, data: str, top_k: int, filter: Any | None = None) -> dict:
        payload = {
            "data": data,
            "topK": top_k,
            "includeMetadata": True,
        }
        if filter:
            payload["filter"] = filter
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_query_hits(self, raw_response: dict) -> list[dict]:
        return raw_response.get("result") or []
