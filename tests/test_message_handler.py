"""
Tests for the message handler
"""

import random

import pytest

from services.chat_service.conversation_manager import HealthStatus
from services.chat_service.models import ConversationContext, Message, Sender
from services.message_service.message_handler import MessageHandler
from services.message_service.rate_limiter import RateLimiter
from services.response_service.response_generator import ResponseGenerator
from utils.exceptions import InvalidContent, RateLimitExceeded


@pytest.fixture
def make_handler(app_config, knowledge_base, conversation_manager, make_ai_service, fake_client_cls, clock):
    """Handler wired to the frozen clock, with the AI path switched off"""

    def _make(rate_limiter=None):
        generator = ResponseGenerator(
            knowledge_base=knowledge_base,
            conversation_manager=conversation_manager,
            ai_service=make_ai_service(client=fake_client_cls(configured=False)),
            config=app_config,
            rng=random.Random(3),
        )
        return MessageHandler(
            config=app_config,
            knowledge_base=knowledge_base,
            conversation_manager=conversation_manager,
            response_generator=generator,
            rate_limiter=rate_limiter,
            clock=clock,
        )

    return _make


@pytest.fixture
def handler(make_handler):
    return make_handler()


class TestProcessMessage:
    """Test the message pipeline"""

    def test_starts_with_welcome(self, handler, app_config):
        history = handler.get_message_history()

        assert len(history) == 1
        assert history[0].sender == Sender.BOT
        assert history[0].content == app_config.assistant.render_welcome()

    def test_valid_message_gets_reply(self, handler):
        reply = handler.process_message("What are your React skills?")
        history = handler.get_message_history()

        assert reply.sender == Sender.BOT
        assert "React" in reply.content
        assert len(history) == 3
        assert history[1].sender == Sender.USER
        assert history[1].content == "What are your React skills?"
        assert history[-1] == reply

    def test_context_tracks_topic(self, handler):
        handler.process_message("What are your React skills?")
        context = handler.get_context()

        assert context.current_topic == "skills-react"
        assert context.last_asked_about == "skills"

    def test_follow_up_uses_previous_turn(self, handler):
        handler.process_message("What are your React skills?")
        reply = handler.process_message("tell me more about that")

        assert "React" in reply.content

    def test_conversation_is_persisted(self, handler, store, app_config):
        handler.process_message("Hello")

        record = store.try_load(app_config.conversation.storage_key)

        assert len(record["messages"]) == 3

    @pytest.mark.parametrize("raw,reason", [
        ("<script>alert(1)</script>", "dangerous_pattern"),
        ("", "empty"),
        ("x" * 501, "too_long"),
    ])
    def test_invalid_input_is_rejected(self, handler, raw, reason):
        with pytest.raises(InvalidContent) as excinfo:
            handler.process_message(raw)

        assert excinfo.value.reason == reason
        assert len(handler.get_message_history()) == 1

    @pytest.mark.parametrize("raw", ["    ", "<b></b>"])
    def test_blank_after_sanitizing_still_gets_an_answer(self, handler, raw):
        reply = handler.process_message(raw)

        assert reply.sender == Sender.BOT
        assert reply.content.strip()
        assert "not sure I understand" in reply.content
        assert len(handler.get_message_history()) == 3

    def test_sanitized_text_is_stored(self, handler):
        handler.process_message("<b>Hello</b>   there")

        assert handler.get_message_history()[1].content == "Hello there"

    def test_sanitization_can_be_disabled(self, handler, app_config):
        app_config.security.enable_input_sanitization = False

        handler.process_message("<b>Hello</b>")

        assert handler.get_message_history()[1].content == "<b>Hello</b>"

    def test_rate_limit(self, make_handler):
        handler = make_handler(rate_limiter=RateLimiter(max_requests=2))
        handler.process_message("Hello")
        handler.process_message("Who are you?")

        with pytest.raises(RateLimitExceeded) as excinfo:
            handler.process_message("What projects?")

        assert excinfo.value.retry_after_ms > 0
        assert len(handler.get_message_history()) == 5

    def test_rate_limit_is_per_client(self, make_handler):
        handler = make_handler(rate_limiter=RateLimiter(max_requests=1))
        handler.process_message("Hello", client_id="alice")

        handler.process_message("Hello", client_id="bob")

        with pytest.raises(RateLimitExceeded):
            handler.process_message("Hello", client_id="alice")

    def test_expired_session_restarts_before_append(self, handler, clock):
        handler.process_message("Hello")
        clock.advance(minutes=31)

        handler.process_message("Who are you?")
        history = handler.get_message_history()

        assert len(history) == 3
        assert history[0].timestamp == clock()
        assert history[1].content == "Who are you?"


class TestConversationAccess:
    """Test context management passthroughs"""

    def test_reset_context(self, handler, store, app_config):
        handler.process_message("Hello")

        context = handler.reset_context()

        assert len(context.messages) == 1
        assert context.messages[0].sender == Sender.BOT
        assert len(store.try_load(app_config.conversation.storage_key)["messages"]) == 1

    def test_set_context(self, handler, clock):
        messages = (
            Message.create("Hello", Sender.USER, now=clock()),
            Message.create("Hi!", Sender.BOT, now=clock()),
        )
        context = ConversationContext(messages=messages, current_topic="skills-react")

        handler.set_context(context)

        assert handler.get_context() == context

    def test_set_context_trims_long_conversations(self, handler, clock, app_config):
        messages = tuple(
            Message.create(f"message {i}", Sender.USER if i % 2 == 0 else Sender.BOT, now=clock())
            for i in range(60)
        )

        handler.set_context(ConversationContext(messages=messages))
        kept = handler.get_message_history()

        assert len(kept) <= app_config.conversation.max_messages
        assert kept[0].content == "message 0"

    def test_health(self, handler):
        handler.process_message("Hello")

        assert handler.get_conversation_health().status == HealthStatus.HEALTHY
        assert handler.needs_context_management() is False

    def test_contextual_info(self, handler):
        handler.process_message("What are your React skills?")

        info = handler.get_contextual_info()

        assert "skills" in info.recent_topics
        assert "react" in info.mentioned_items

    def test_rate_limit_status(self, handler, app_config):
        handler.process_message("Hello")

        status = handler.get_rate_limit_status()

        assert status["remaining"] == app_config.security.rate_limit_max_requests - 1

        handler.clear_rate_limit("default")
        assert handler.get_rate_limit_status()["remaining"] == app_config.security.rate_limit_max_requests

    def test_ai_status(self, handler):
        assert handler.get_ai_status().available is False
        assert handler.test_ai_connection() is False
