"""
AI service - answers portfolio questions through the language-model provider.
"""

from typing import List, Optional

from langchain_core.messages import BaseMessage

from config.app_config import AppConfig, get_config
from infrastructure.external.langfuse_client import LangfuseClient
from infrastructure.external.openai_client import OpenAIClient
from infrastructure.resilience.retry_service import CircuitBreakerError, RetryService, get_retry_service
from services.ai_service.fallback_service import FallbackService
from services.ai_service.models import AIStatus
from services.ai_service.prompts import build_prompt_messages
from services.chat_service.models import ConversationContext, Intent
from services.knowledge_service.models import KnowledgeBaseData
from utils.exceptions import ProviderFailure
from utils.logging_config import get_error_tracker, get_logger, log_execution_time, log_model_usage


class AIService:
    """
    Wraps the chat provider behind retry and circuit-breaker protection.
    Without a credential the service starts degraded and reports itself unavailable.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        client: Optional[OpenAIClient] = None,
        retry_service: Optional[RetryService] = None,
        tracing: Optional[LangfuseClient] = None,
        fallback_service: Optional[FallbackService] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.ai_config = self.config.ai
        self.client = client or OpenAIClient(self.config.api.openai_api_key, self.ai_config)
        self.retry_service = retry_service or get_retry_service()
        self.tracing = tracing or LangfuseClient(
            self.config.get_langfuse_config(), self.config.logging.enable_langfuse_tracing
        )
        self.fallback_service = fallback_service or FallbackService(self.config.assistant)
        self.circuit_breaker = self.retry_service.provider_breaker(
            failure_threshold=self.ai_config.circuit_failure_threshold,
            recovery_timeout=self.ai_config.circuit_recovery_timeout
        )

        if not self.is_ai_available():
            self.logger.warning("OpenAI API key not found or AI disabled. AI features will be disabled.")

    def is_ai_available(self) -> bool:
        return self.config.features.enable_ai and self.client.is_configured()

    def generate_response(
        self,
        user_message: str,
        context: ConversationContext,
        knowledge_base_data: KnowledgeBaseData,
        intent: Intent,
        use_fallback: Optional[bool] = None
    ) -> str:
        """
        Generate an answer with the language model

        Args:
            user_message: Sanitized user text
            context: Conversation so far
            knowledge_base_data: Dataset the prompt is built from
            intent: Classified intent of the message
            use_fallback: Return the canned reply instead of raising
                (defaults to ai.enable_fallback)

        Returns:
            str: The provider's reply, or the canned reply on failure when
            fallback is enabled

        Raises:
            ProviderFailure: If the provider fails and fallback is disabled
        """
        if use_fallback is None:
            use_fallback = self.ai_config.enable_fallback

        try:
            if not self.is_ai_available():
                raise ProviderFailure("AI service is not available")

            messages = build_prompt_messages(
                user_message, context, knowledge_base_data, intent,
                history_window=self.config.conversation.history_window
            )
            with log_execution_time(self.logger, "ai_response", model=self.ai_config.model, intent=intent.value):
                return self._call_provider(messages)

        except ProviderFailure as e:
            get_error_tracker().track_error(e, context="ai_service.generate_response", intent=intent.value)
            if use_fallback:
                return self.fallback_service.get_fallback_response(intent)
            raise

    def _call_provider(self, messages: List[BaseMessage]) -> str:
        handler = self.tracing.get_callback_handler()
        callbacks = [handler] if handler else None

        try:
            response = self.retry_service.call(
                lambda: self.client.invoke(messages, callbacks=callbacks),
                max_retries=self.ai_config.max_retries,
                breaker=self.circuit_breaker,
                deadline=self.ai_config.total_timeout_seconds,
                attempt_timeout=self.ai_config.timeout_seconds
            )
        except CircuitBreakerError as e:
            raise ProviderFailure(str(e), cause=e) from e
        except Exception as e:
            raise ProviderFailure(f"AI provider request failed: {e.__class__.__name__}: {e}", cause=e) from e

        content = getattr(response, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise ProviderFailure("Empty response from AI service")

        log_model_usage(self.logger, self.ai_config.model, getattr(response, "usage_metadata", None))

        return content.strip()

    def test_connection(self) -> bool:
        if not self.is_ai_available():
            return False
        return self.client.test_connection()

    def get_status(self) -> AIStatus:
        return AIStatus(
            available=self.is_ai_available(),
            model=self.ai_config.model,
            provider=self.ai_config.provider
        )
