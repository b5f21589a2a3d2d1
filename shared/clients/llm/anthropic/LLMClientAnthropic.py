from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ContentBlock import ContentBlock
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientAnthropic(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.anthropic.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="2023-06-01", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Anthropic"

    def _get_default_model(self) -> str:
        return "claude-3-opus-20240229"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.anthropic.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="API_VERSION", val_type="string", default="2023-06-01"),
            EnvConfig(env_key="MAX_TOKENS", val_type="number", default=1024),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-api-key": self._api_key, "anthropic-version": self._api_version}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_chat(self) -> str:
        return "/v1/messages"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, system_prompt: str, messages: list[dict]) -> dict:
        """Build the Anthropic Messages API request body.

        Returns:
            dict: {"model": "...", "max_tokens": ..., "system": "...", "messages": [...]}
        """
        return {
            "model": self.chat_model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": msg["role"], "content": msg["content"]} for msg in messages],
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_content_blocks(self, response_data: dict) -> list[ContentBlock]:
        content = response_data.get("content")
        if not isinstance(content, list):
            raise ValueError(
                "Anthropic response does not contain a content list. "
                "Response keys: %s" % list(response_data.keys())
            )
        return [ContentBlock.model_validate(block) for block in content]
