from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.llm.models.ContentBlock import ContentBlock
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = self.get_config_val("MODEL", default=self._get_default_model(), val_type="string")
        self.max_tokens = int(self.get_config_val("MAX_TOKENS", default=1024, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the chat model used when LLM_<ENGINE>_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/v1/messages")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, system_prompt: str, messages: list[dict]) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            system_prompt (str): The system instruction, including the retrieved context.
            messages (list[dict]): Role-tagged turns
                (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_content_blocks(self, response_data: dict) -> list[ContentBlock]:
        """Extract the content blocks from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[ContentBlock]: The blocks in response order.

        Raises:
            ValueError: If the response carries no content list.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, system_prompt: str, messages: list[dict]) -> list[ContentBlock]:
        """Send one chat/completion request and return its content blocks.

        Args:
            system_prompt (str): The system instruction.
            messages (list[dict]): Role-tagged conversation turns.

        Returns:
            list[ContentBlock]: The response content blocks.

        Raises:
            UpstreamRequestError: If the HTTP request fails.
            ValueError: If the response does not contain content.
        """
        body = self.get_chat_payload(system_prompt, messages)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        return self.extract_content_blocks(response.json())
