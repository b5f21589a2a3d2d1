from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig

NON_TEXT_REPLY = "I apologize, but I can only provide text responses at this time."

SYSTEM_PROMPT_TEMPLATE = """You are an expert {brand} product support representative with comprehensive knowledge of all {brand} equipment, from tractors and harvesters to lawn mowers and utility vehicles.

To get information about a specific model, users can include "model:" followed by the model number in their question (e.g., "model: 5075E what is the oil capacity?"). This will ensure responses are specific to that model.

You specialize in:

1. Technical specifications and features of all {brand} products
2. Troubleshooting common issues and maintenance procedures
3. Parts identification and replacement guidance with exact catalog locations
4. Operating instructions and best practices
5. Warranty information and service schedules

When discussing parts or components, you MUST include their exact location in the catalog using the breadcrumb navigation path provided in the Details field. Always format part locations as "Location in catalog: [breadcrumb path]" to help users find the exact part they need.

IMPORTANT: Base your responses PRIMARILY on the following knowledge base context. If the context doesn't contain relevant information for the query, acknowledge that you don't have specific information about that topic in your knowledge base:

{context}

Maintain a professional, helpful tone and provide detailed, accurate information based on the context provided. If the context doesn't contain specific information about a topic, clearly state that and suggest consulting official {brand} documentation or a certified dealer."""


class CompletionService:
    """Builds the support persona prompt and asks the LLM for a reply."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self.brand_name = helper_config.get_string_val("CHAT_BRAND_NAME", default="John Deere")

    def build_system_prompt(self, context: str) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(brand=self.brand_name, context=context)

    async def do_complete(self, messages: list[dict], context: str) -> str:
        """Generate the assistant reply for a conversation.

        Args:
            messages (list[dict]): The full conversation as role/content dicts.
            context (str): The formatted knowledge-base context, inserted verbatim.

        Returns:
            str: The text of the first content block, or a fixed apology if it is not text.

        Raises:
            UpstreamRequestError: If the completion request fails.
        """
        blocks = await self._llm_client.do_chat(
            self.build_system_prompt(context),
            [{"role": message["role"], "content": message["content"]} for message in messages],
        )
        if blocks and blocks[0].is_text():
            return blocks[0].text or ""
        self.logging.warning("Completion returned no text block. Sending fallback reply.")
        return NON_TEXT_REPLY
