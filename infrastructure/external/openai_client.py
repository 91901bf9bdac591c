"""
OpenAI client adapter for the assistant.
Builds the LangChain chat model lazily and performs single provider round trips.
"""

from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage
from typing import List, Optional, Any

from config.app_config import AIConfig, get_config
from utils.logging_config import get_logger


class OpenAIClient:
    """
    Adapter for the OpenAI chat completion API.
    Retries are handled by the resilience layer, so the SDK's own retries are disabled.
    """

    def __init__(self, api_key: Optional[str] = None, ai_config: Optional[AIConfig] = None):
        self.logger = get_logger(__name__)
        config = get_config() if api_key is None or ai_config is None else None
        self.api_key = api_key if api_key is not None else config.api.openai_api_key
        self.ai_config = ai_config if ai_config is not None else config.ai
        self._chat_client: Optional[ChatOpenAI] = None

    @property
    def model(self) -> str:
        return self.ai_config.model

    def is_configured(self) -> bool:
        """True when a credential is available"""
        return bool(self.api_key)

    def get_chat_client(self) -> ChatOpenAI:
        """
        Get configured ChatOpenAI client

        Returns:
            ChatOpenAI: Configured chat client

        Raises:
            ValueError: If no API key is configured
        """
        if self._chat_client is None:
            if not self.api_key:
                raise ValueError("OpenAI API key not configured")

            try:
                self._chat_client = ChatOpenAI(
                    model=self.ai_config.model,
                    temperature=self.ai_config.temperature,
                    max_tokens=self.ai_config.max_tokens,
                    timeout=self.ai_config.timeout_seconds,
                    max_retries=0,
                    openai_api_key=self.api_key,
                )

                self.logger.info(f"OpenAI chat client initialized: {self.ai_config.model}")

            except Exception as e:
                self.logger.error(f"Error initializing OpenAI chat client: {e}")
                raise

        return self._chat_client

    def invoke(self, messages: List[BaseMessage], callbacks: Optional[List[Any]] = None) -> BaseMessage:
        """
        Send one chat completion request

        Args:
            messages: System and human messages making up the prompt
            callbacks: Optional LangChain callback handlers (tracing)

        Returns:
            BaseMessage: The provider's reply
        """
        client = self.get_chat_client()
        run_config = {"callbacks": callbacks} if callbacks else None
        return client.invoke(messages, config=run_config)

    def test_connection(self) -> bool:
        """
        Test connection to OpenAI API

        Returns:
            bool: True if connection successful
        """
        try:
            response = self.invoke([HumanMessage(content="Hello")])
            if not getattr(response, "content", None):
                self.logger.warning("OpenAI connection test returned an empty reply")
                return False
            self.logger.info("OpenAI connection test successful")
            return True

        except Exception as e:
            self.logger.error(f"OpenAI connection test failed: {e}")
            return False
