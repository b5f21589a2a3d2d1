from typing import Any

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.errors import EmbeddingModelLoadingError, InvalidEmbeddingError
from shared.models.config import EnvConfig


class EmbedClientHuggingface(EmbedClientInterface):
    def __init__(self, helper_config, **kwargs):
        super().__init__(helper_config=helper_config, **kwargs)
        self._base_url = self.get_config_val("BASE_URL", default="https://api-inference.huggingface.co", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Huggingface"

    def _get_default_model(self) -> str:
        return "BAAI/bge-small-en-v1.5"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api-inference.huggingface.co"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/models/{self.embed_model}"

    def get_endpoint_embedding(self) -> str:
        # the inference API addresses the model in the path
        return f"/models/{self.embed_model}"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, text: str) -> dict:
        return {"inputs": text}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def check_embedding_response(self, status_code: int, response_data: Any) -> None:
        """Recognise the inference API's "model is currently loading" answer.

        Raises:
            EmbeddingModelLoadingError: If the body reports a loading model.
            UpstreamRequestError: For any other non-2xx status.
        """
        if isinstance(response_data, dict):
            error = str(response_data.get("error", ""))
            if "loading" in error.lower():
                raise EmbeddingModelLoadingError(f"Model '{self.embed_model}' is loading: {error}")
        super().check_embedding_response(status_code, response_data)

    def extract_embedding_from_response(self, response_data: Any) -> Any:
        """Accept both a flat vector and a vector nested in a one-element batch.

        Raises:
            InvalidEmbeddingError: If the body is not an array.
        """
        if not isinstance(response_data, list):
            raise InvalidEmbeddingError(f"Invalid embedding response: {str(response_data)[:200]}")
        if response_data and isinstance(response_data[0], list):
            return response_data[0]
        return response_data
