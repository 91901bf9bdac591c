"""
Message handler - entry point for user messages.

Enforces rate limits, validates and sanitizes input, then threads the
conversation through ConversationManager and ResponseGenerator.
"""

import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from config.app_config import AppConfig, get_config
from services.ai_service.models import AIStatus
from services.chat_service.conversation_manager import (
    ContextualInfo,
    ConversationHealth,
    ConversationManager,
    HealthStatus,
)
from services.chat_service.models import ConversationContext, Message, Sender, utc_now
from services.knowledge_service.knowledge_base import KnowledgeBase, get_knowledge_base
from services.message_service.input_validation import sanitize_message, validate_message
from services.message_service.rate_limiter import RateLimiter
from services.response_service.response_generator import ResponseGenerator
from utils.logging_config import get_logger, log_user_interaction


class MessageHandler:
    """
    One conversation's gatekeeper.

    Only RateLimitExceeded and InvalidContent leave process_message; any
    other failure is turned into an apology by the response generator.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        knowledge_base: Optional[KnowledgeBase] = None,
        conversation_manager: Optional[ConversationManager] = None,
        response_generator: Optional[ResponseGenerator] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self._clock = clock

        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.conversation_manager = conversation_manager or ConversationManager(
            config=self.config.conversation,
            assistant=self.config.assistant,
            clock=clock,
        )
        self.response_generator = response_generator or ResponseGenerator(
            knowledge_base=self.knowledge_base,
            conversation_manager=self.conversation_manager,
            config=self.config,
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.config.security.rate_limit_max_requests,
            window_ms=self.config.security.rate_limit_window_ms,
        )

        self._lock = threading.RLock()
        self._context = self.conversation_manager.resume_or_start_conversation()

    def process_message(self, raw_text: str, client_id: str = "default") -> Message:
        """
        Answer one user message

        Args:
            raw_text: Text exactly as the user sent it
            client_id: Rate-limit bucket

        Returns:
            Message: The bot reply, already appended to the conversation

        Raises:
            RateLimitExceeded: Too many messages from client_id
            InvalidContent: Empty, too long or dangerous input
        """
        self.rate_limiter.check(client_id)

        validate_message(raw_text, self.config.security.max_message_length)

        content = raw_text
        if self.config.security.enable_input_sanitization:
            content = sanitize_message(raw_text)

        with self._lock:
            if self.conversation_manager.should_reset_context(self._context):
                self._context = self.conversation_manager.start_new_session()

            user_message = Message.create(content, Sender.USER, now=self._clock())
            self._context = self.conversation_manager.add_message_to_context(self._context, user_message)

            response = self.response_generator.generate_response(content, self._context)

            bot_message = Message.create(response.content, Sender.BOT, now=self._clock())
            self._context = self.conversation_manager.add_message_to_context(response.context, bot_message)

        log_user_interaction(
            self.logger, "message",
            client_id=client_id,
            intent=response.intent.value,
            topic=response.topic,
            response_source=response.source,
            message_length=len(content),
        )
        return bot_message

    # Conversation access

    def get_context(self) -> ConversationContext:
        return self._context

    def reset_context(self) -> ConversationContext:
        """Drop the saved conversation and start over with a welcome message"""
        with self._lock:
            self.conversation_manager.clear_context()
            self._context = self.conversation_manager.start_new_session()
        log_user_interaction(self.logger, "reset")
        return self._context

    def set_context(self, context: ConversationContext) -> None:
        """Replace the conversation, e.g. when restoring it from elsewhere"""
        with self._lock:
            self._context = self.conversation_manager.handle_context_limits(context)
            self.conversation_manager.save_context(self._context)

    def get_message_history(self) -> List[Message]:
        return list(self._context.messages)

    def get_conversation_health(self) -> ConversationHealth:
        return self.conversation_manager.get_conversation_health(self._context)

    def needs_context_management(self) -> bool:
        return self.get_conversation_health().status != HealthStatus.HEALTHY

    def get_contextual_info(self) -> ContextualInfo:
        return self.conversation_manager.get_contextual_info(self._context)

    # Rate limits

    def get_rate_limit_status(self, client_id: str = "default") -> Dict[str, int]:
        return self.rate_limiter.get_status(client_id)

    def clear_rate_limit(self, client_id: str) -> None:
        self.rate_limiter.clear(client_id)

    # AI

    def get_ai_status(self) -> AIStatus:
        return self.response_generator.get_ai_status()

    def test_ai_connection(self) -> bool:
        return self.response_generator.test_ai_connection()
