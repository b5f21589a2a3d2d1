from typing import Any

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.errors import InvalidEmbeddingError
from shared.models.config import EnvConfig


class EmbedClientVoyage(EmbedClientInterface):
    def __init__(self, helper_config, **kwargs):
        super().__init__(helper_config=helper_config, **kwargs)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.voyageai.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Voyage"

    def _get_default_model(self) -> str:
        return "voyage-2"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.voyageai.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # voyage has no health route; a one-word embedding proves key and model
        return "/v1/embeddings"

    def _get_healthcheck_method(self) -> str:
        return "POST"

    def _get_healthcheck_payload(self) -> dict:
        return self.get_embed_payload("ping")

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, text: str) -> dict:
        """Build the Voyage embedding request body.

        Returns:
            dict: {"input": [...], "model": "..."}
        """
        return {"input": [text], "model": self.embed_model}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_embedding_from_response(self, response_data: Any) -> Any:
        """Extract data[0].embedding from a Voyage /v1/embeddings response.

        Raises:
            InvalidEmbeddingError: If the embedding is missing.
        """
        data = response_data.get("data") if isinstance(response_data, dict) else None
        if not data or not isinstance(data[0], dict) or "embedding" not in data[0]:
            raise InvalidEmbeddingError(f"Invalid embedding response: {str(response_data)[:200]}")
        return data[0]["embedding"]
